"""Semantic scheme lookup backed by FAISS.

Embeds scheme memory bodies with a local sentence-transformer model and
returns the memories most similar to a citizen's question.  The index is
persisted alongside a hash of the embedded texts and rebuilt only when the
set of scheme memories changes.

Usage::

    from memory.retriever import SchemeRetriever
    retriever = SchemeRetriever(persist_dir, model_name)
    hits = retriever.search(scheme_memories, "pension for widows", top_k=3)
"""

import hashlib
import json
import os
from typing import Optional

import faiss
import numpy as np
from sentence_transformers import SentenceTransformer

from memory.schema import MemoryRecord

_INDEX_FILE = "schemes.faiss"
_META_FILE = "schemes_meta.json"
_HASH_FILE = "schemes_hash.txt"


class SchemeRetriever:
    """Vector index over scheme memories."""

    def __init__(self, persist_dir: str, model_name: str = "all-MiniLM-L6-v2") -> None:
        self._persist_dir = persist_dir
        self._model = SentenceTransformer(model_name)

        # Memory bodies in FAISS row order
        self._texts: list[str] = []
        self._index: Optional[faiss.IndexFlatIP] = None
        self._hash: Optional[str] = None

    # ── Public API ────────────────────────────────────────────────────────

    def search(self, memories: list[MemoryRecord], query: str, top_k: int = 5) -> list[MemoryRecord]:
        """Return up to *top_k* of *memories* ranked by similarity to *query*."""
        self._ensure_index(memories)
        if not self._texts:
            return []

        n_results = min(top_k, len(self._texts))
        query_vec = self._model.encode([query], normalize_embeddings=True)
        query_vec = np.asarray(query_vec, dtype=np.float32)

        _, indices = self._index.search(query_vec, n_results)
        by_text = {m["memory"]: m for m in memories}
        return [
            by_text[self._texts[i]]
            for i in indices[0]
            if 0 <= i < len(self._texts) and self._texts[i] in by_text
        ]

    @property
    def size(self) -> int:
        return self._index.ntotal if self._index is not None else 0

    # ── Index management ──────────────────────────────────────────────────

    def _ensure_index(self, memories: list[MemoryRecord]) -> None:
        """Build or reload the index, rebuilding if the scheme set changed."""
        texts = sorted({m["memory"] for m in memories if m["memory"]})
        current_hash = hashlib.sha256(json.dumps(texts).encode()).hexdigest()
        if current_hash == self._hash:
            return

        hash_path = os.path.join(self._persist_dir, _HASH_FILE)
        index_path = os.path.join(self._persist_dir, _INDEX_FILE)
        meta_path = os.path.join(self._persist_dir, _META_FILE)

        # Try to reuse the persisted index
        if all(os.path.exists(p) for p in (hash_path, index_path, meta_path)):
            with open(hash_path, "r") as f:
                stored_hash = f.read().strip()
            if stored_hash == current_hash:
                self._index = faiss.read_index(index_path)
                with open(meta_path, "r") as f:
                    self._texts = json.load(f)
                self._hash = current_hash
                return

        self._texts = texts
        self._hash = current_hash
        if not texts:
            self._index = None
            return

        embeddings = self._model.encode(texts, normalize_embeddings=True)
        embeddings = np.asarray(embeddings, dtype=np.float32)

        index = faiss.IndexFlatIP(embeddings.shape[1])  # inner-product on normalized vecs = cosine
        index.add(embeddings)

        faiss.write_index(index, index_path)
        with open(meta_path, "w") as f:
            json.dump(texts, f)
        with open(hash_path, "w") as f:
            f.write(current_hash)

        self._index = index


# ── Module-level singleton ────────────────────────────────────────────────────

_retriever: Optional[SchemeRetriever] = None


def get_retriever() -> SchemeRetriever:
    """Return (and lazily create) the global SchemeRetriever singleton."""
    global _retriever
    if _retriever is None:
        from agent import config

        _retriever = SchemeRetriever(
            persist_dir=config.SCHEME_INDEX_DIR,
            model_name=config.SCHEME_EMBEDDING_MODEL,
        )
    return _retriever
