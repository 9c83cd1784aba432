"""Persistent JSON-backed chat thread store.

Keeps threads and their messages in a single JSON file inside the data
directory.  Every lookup is scoped by user id: a thread owned by someone
else behaves exactly like a missing one.
"""

import json
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from agent import config

# Thread fields exposed to API callers.
PUBLIC_THREAD_FIELDS = ("id", "title", "last_message", "last_message_at", "created_at")
PUBLIC_MESSAGE_FIELDS = ("id", "role", "content", "created_at")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ThreadStore:
    """Thread-safe, file-backed store of chat threads and messages."""

    def __init__(self, path: str = config.THREADS_PATH) -> None:
        self._path = path
        self._lock = threading.RLock()
        if not os.path.exists(self._path):
            self._write({"threads": [], "messages": []})

    # ── Internal I/O ──────────────────────────────────────────────────────

    def _read(self) -> dict:
        with open(self._path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, data: dict) -> None:
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def _find(data: dict, user_id: str, thread_id: str) -> Optional[dict]:
        for thread in data["threads"]:
            if thread["id"] == thread_id and thread["user_id"] == user_id:
                return thread
        return None

    # ── Threads ───────────────────────────────────────────────────────────

    def list_threads(self, user_id: str) -> list[dict]:
        """Return the user's threads, most recently active first."""
        with self._lock:
            threads = [t for t in self._read()["threads"] if t["user_id"] == user_id]
        return sorted(threads, key=lambda t: t.get("last_message_at") or "", reverse=True)

    def create_thread(self, user_id: str, title: str, assistant_thread_id: str) -> dict:
        now = utc_now()
        thread = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "title": title,
            "last_message": None,
            "last_message_at": now,
            "created_at": now,
            "assistant_thread_id": assistant_thread_id,
        }
        with self._lock:
            data = self._read()
            data["threads"].append(thread)
            self._write(data)
        return thread

    def get_thread(self, user_id: str, thread_id: str) -> Optional[dict]:
        with self._lock:
            return self._find(self._read(), user_id, thread_id)

    def update_thread(self, user_id: str, thread_id: str, **fields: Any) -> Optional[dict]:
        """Apply *fields* to the thread; returns ``None`` if it does not exist."""
        with self._lock:
            data = self._read()
            thread = self._find(data, user_id, thread_id)
            if thread is None:
                return None
            thread.update(fields)
            self._write(data)
            return dict(thread)

    def delete_thread(self, user_id: str, thread_id: str) -> bool:
        """Remove the thread and its messages; returns whether it existed."""
        with self._lock:
            data = self._read()
            thread = self._find(data, user_id, thread_id)
            if thread is None:
                return False
            data["threads"].remove(thread)
            data["messages"] = [m for m in data["messages"] if m["thread_id"] != thread_id]
            self._write(data)
            return True

    # ── Messages ──────────────────────────────────────────────────────────

    def list_messages(self, thread_id: str) -> list[dict]:
        """Return the thread's messages, oldest first."""
        with self._lock:
            messages = [m for m in self._read()["messages"] if m["thread_id"] == thread_id]
        return sorted(messages, key=lambda m: m["created_at"])

    def add_message(self, thread_id: str, role: str, content: str) -> dict:
        message = {
            "id": str(uuid.uuid4()),
            "thread_id": thread_id,
            "role": role,
            "content": content,
            "created_at": utc_now(),
        }
        with self._lock:
            data = self._read()
            data["messages"].append(message)
            self._write(data)
        return message


def public_view(record: dict, fields: tuple) -> dict:
    return {key: record.get(key) for key in fields}
