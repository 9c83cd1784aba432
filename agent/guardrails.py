"""Service guardrails: audit logging and per-user rate limiting.

Kept apart from nodes.py and threads.py so those stay focused on the
conversation flow.
"""

import json
import os
import threading
import time
from collections import defaultdict, deque

from agent import config


# ── Audit logger ──────────────────────────────────────────────────────────────


class AuditLogger:
    """Append-only JSON-lines log of tool invocations and memory writes."""

    def __init__(self, log_dir: str = config.AUDIT_LOG_DIR, filename: str = "audit.jsonl"):
        self._log_path = os.path.join(log_dir, filename)
        self._lock = threading.Lock()

    def log(self, event: str, **details) -> None:
        """Write a single log entry."""
        entry = {"ts": time.strftime("%Y-%m-%dT%H:%M:%S%z"), "event": event}
        for key, value in details.items():
            if isinstance(value, str):
                value = value[:500]  # keep logs compact
            entry[key] = value
        with self._lock, open(self._log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")


# Shared singleton
audit_logger = AuditLogger()


# ── Rate limiter ──────────────────────────────────────────────────────────────


class RateLimitExceeded(Exception):
    """Raised when a user sends messages faster than the configured limit."""


class RateLimiter:
    """Sliding-window rate limiter keyed by user id."""

    def __init__(
        self,
        max_calls: int = config.RATE_LIMIT_CALLS,
        window_seconds: int = config.RATE_LIMIT_WINDOW,
    ):
        self._max_calls = max_calls
        self._window = window_seconds
        self._timestamps: defaultdict[str, deque] = defaultdict(deque)
        self._lock = threading.Lock()

    def check(self, key: str) -> None:
        """Record a call for *key* and raise if its limit is exceeded."""
        now = time.time()
        with self._lock:
            stamps = self._timestamps[key]
            # Evict timestamps outside the window
            while stamps and stamps[0] <= now - self._window:
                stamps.popleft()

            if len(stamps) >= self._max_calls:
                raise RateLimitExceeded(
                    f"Rate limit exceeded: {self._max_calls} messages "
                    f"within {self._window}s. Please wait before retrying."
                )
            stamps.append(now)


# Shared singleton
rate_limiter = RateLimiter()
