"""Tests for the FAISS-backed scheme retriever.

These tests verify that:
- search() returns at most top_k memories
- search() surfaces the semantically relevant scheme
- The index is rebuilt when the scheme memories change
"""

import pytest

# All tests in this module need faiss + sentence-transformers
faiss = pytest.importorskip("faiss")

from memory.context import scheme_memory_body  # noqa: E402


def _memory(scheme):
    return {"id": str(scheme["id"]), "memory": scheme_memory_body(scheme),
            "metadata": {"type": "scheme", "scheme_id": scheme["id"]}}


SCHEMES = [
    _memory({"id": 1, "scheme_name": "Old Age Pension", "description": "Monthly pension for senior citizens"}),
    _memory({"id": 2, "scheme_name": "Kanya Shiksha", "description": "Scholarship for girls studying in school"}),
    _memory({"id": 3, "scheme_name": "Kisan Credit Card", "description": "Low interest crop loans for farmers"}),
]


@pytest.fixture()
def retriever(tmp_path):
    from memory.retriever import SchemeRetriever
    return SchemeRetriever(persist_dir=str(tmp_path), model_name="all-MiniLM-L6-v2")


def test_search_returns_subset(retriever):
    result = retriever.search(SCHEMES, "money for my studies", top_k=2)
    assert 1 <= len(result) <= 2


def test_search_relevance(retriever):
    result = retriever.search(SCHEMES, "loan to buy seeds for my farm", top_k=1)
    assert result[0]["id"] == "3"


def test_rebuild_on_change(retriever):
    retriever.search(SCHEMES[:1], "pension", top_k=1)
    assert retriever.size == 1

    retriever.search(SCHEMES, "pension", top_k=1)
    assert retriever.size == 3


def test_empty_memories(retriever):
    assert retriever.search([], "anything") == []
