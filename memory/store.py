"""Memory service backends.

Both backends expose the same two calls the synchronizer and the agent rely
on::

    list_memories() -> list[MemoryRecord]
    add_memory(text, metadata) -> MemoryRecord

``LocalMemoryStore`` keeps memories in a JSON file inside the data
directory.  ``HttpMemoryService`` talks to a hosted memory API.
"""

import json
import logging
import os
import threading
import uuid
from typing import Any, Optional

import requests

from agent import config
from memory.schema import MemoryRecord

logger = logging.getLogger(__name__)


class MemoryServiceError(Exception):
    """Raised when the memory service cannot list or store memories."""


def _normalize(item: Any) -> MemoryRecord:
    """Coerce one listed item into ``{id, memory, metadata}``."""
    if not isinstance(item, dict):
        raise MemoryServiceError(f"Unexpected memory item: {item!r}")
    text = item.get("memory")
    if text is None:
        text = item.get("content")
    return {
        "id": item.get("id") or item.get("memory_id"),
        "memory": text or "",
        "metadata": item.get("metadata") or {},
    }


class LocalMemoryStore:
    """Thread-safe, file-backed list of memories."""

    def __init__(self, path: str = config.LOCAL_MEMORY_PATH) -> None:
        self._path = path
        self._lock = threading.RLock()
        if not os.path.exists(self._path):
            self._write([])

    # ── Internal I/O ──────────────────────────────────────────────────────

    def _read(self) -> list[dict]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise MemoryServiceError(f"Could not read {self._path}: {e}") from e
        if not isinstance(data, list):
            raise MemoryServiceError(f"{self._path} does not hold a memory list")
        return data

    def _write(self, data: list) -> None:
        try:
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise MemoryServiceError(f"Could not write {self._path}: {e}") from e

    # ── Public API ────────────────────────────────────────────────────────

    def list_memories(self) -> list[MemoryRecord]:
        """Return every stored memory."""
        with self._lock:
            return [_normalize(item) for item in self._read()]

    def add_memory(self, text: str, metadata: dict) -> MemoryRecord:
        """Append a memory and return it."""
        record: MemoryRecord = {
            "id": str(uuid.uuid4()),
            "memory": text,
            "metadata": dict(metadata),
        }
        with self._lock:
            data = self._read()
            data.append(record)
            self._write(data)
        return record


class HttpMemoryService:
    """Client for a hosted memory API.

    ``GET {base_url}/memories`` may answer with a bare list or with
    ``{"memories": [...]}``; items may carry their text as ``memory`` or
    ``content``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = config.HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url:
            raise ValueError("HttpMemoryService needs a base_url")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        if api_key:
            self._session.headers.update({"X-API-Key": api_key})

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise MemoryServiceError(f"{method} {url} failed: {e}") from e
        except ValueError as e:
            raise MemoryServiceError(f"{method} {url} returned invalid JSON: {e}") from e

    def list_memories(self) -> list[MemoryRecord]:
        payload = self._request("GET", "/memories")
        if isinstance(payload, dict):
            payload = payload.get("memories")
        if not isinstance(payload, list):
            raise MemoryServiceError("Memory listing did not contain a memory list")
        return [_normalize(item) for item in payload]

    def add_memory(self, text: str, metadata: dict) -> MemoryRecord:
        payload = self._request(
            "POST", "/memories", json={"content": text, "metadata": metadata},
        )
        if isinstance(payload, dict) and isinstance(payload.get("memory"), dict):
            payload = payload["memory"]
        record = _normalize(payload if isinstance(payload, dict) else {})
        # Some deployments only echo an id back.
        if not record["memory"]:
            record["memory"] = text
            record["metadata"] = record["metadata"] or dict(metadata)
        return record


# ── Module-level singleton ────────────────────────────────────────────────────

_service = None


def get_memory_service():
    """Return (and lazily create) the configured memory service."""
    global _service
    if _service is None:
        if config.MEMORY_BACKEND == "http":
            _service = HttpMemoryService(
                config.MEMORY_API_URL,
                api_key=config.MEMORY_API_KEY,
                timeout=config.HTTP_TIMEOUT,
            )
        else:
            _service = LocalMemoryStore(config.LOCAL_MEMORY_PATH)
        logger.info("Memory backend: %s", type(_service).__name__)
    return _service
