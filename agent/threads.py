"""Chat thread service.

Glues the thread store, the relational records, the memory synchronizer and
the assistant graph together.  Opening a thread refreshes the citizen's
memories first; that refresh is best effort and never stops the thread from
being created.
"""

import logging
import re
import uuid
from typing import Optional

from langchain_core.messages import AIMessage

from memory.context import build_profile_context, enrich_question
from memory.sync import MemorySynchronizer, SyncFetchError, SyncReport
from records import RecordsError
from records.threads import (
    PUBLIC_MESSAGE_FIELDS,
    PUBLIC_THREAD_FIELDS,
    public_view,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New chat"
_TITLE_LIMIT = 48


class ThreadNotFound(LookupError):
    """Raised when a thread does not exist or belongs to another user."""


def make_title(content: str) -> str:
    clean = re.sub(r"\s+", " ", content).strip()
    if not clean:
        return DEFAULT_TITLE
    return f"{clean[:_TITLE_LIMIT]}..." if len(clean) > _TITLE_LIMIT else clean


def _final_reply(result: dict) -> str:
    """Pick the last assistant message without pending tool calls."""
    for message in reversed(result.get("messages", [])):
        if isinstance(message, AIMessage) and not message.tool_calls:
            content = message.content
            if isinstance(content, list):  # Gemini may return content parts
                content = "".join(
                    part.get("text", "") if isinstance(part, dict) else str(part)
                    for part in content
                )
            return content or ""
    return ""


class ChatService:
    def __init__(self, threads, records, memory_service, assistant=None, audit=None) -> None:
        self._threads = threads
        self._records = records
        self._assistant = assistant
        self._synchronizer = MemorySynchronizer(memory_service, records, audit=audit)

    @property
    def assistant(self):
        if self._assistant is None:
            from agent.graph import graph

            self._assistant = graph
        return self._assistant

    # ── Profile & memory ──────────────────────────────────────────────────

    def _profile_context(self, user_id: str) -> Optional[str]:
        profile = self._records.fetch_profile(user_id)
        if profile is None:
            return None
        return build_profile_context(profile)

    def sync_memories(self, user_id: str) -> SyncReport:
        """Run the memory synchronizer for *user_id*.

        Raises:
            SyncFetchError: If the profile, memory listing or scheme catalog
                could not be read.
        """
        try:
            context = self._profile_context(user_id)
        except RecordsError as e:
            raise SyncFetchError(f"Could not read profile for {user_id}: {e}") from e
        return self._synchronizer.synchronize(user_id, context)

    # ── Threads ───────────────────────────────────────────────────────────

    def list_threads(self, user_id: str) -> list[dict]:
        return [public_view(t, PUBLIC_THREAD_FIELDS) for t in self._threads.list_threads(user_id)]

    def create_thread(self, user_id: str) -> dict:
        """Open a thread, syncing memories first when the citizen has a profile."""
        try:
            context = self._profile_context(user_id)
        except RecordsError as e:
            logger.warning("Memory sync skipped for %s: %s", user_id, e)
            context = None

        if context is not None:
            try:
                report = self._synchronizer.synchronize(user_id, context)
                if report.failed:
                    logger.warning(
                        "Memory sync for %s left %d item(s) missing: %s",
                        user_id, len(report.failed), [(t, i) for t, i, _ in report.failed],
                    )
            except SyncFetchError as e:
                logger.warning("Memory sync skipped for %s: %s", user_id, e)

        thread = self._threads.create_thread(
            user_id, DEFAULT_TITLE, assistant_thread_id=str(uuid.uuid4()),
        )
        return public_view(thread, PUBLIC_THREAD_FIELDS)

    def rename_thread(self, user_id: str, thread_id: str, title: str) -> dict:
        title = (title or "").strip()
        if not title:
            raise ValueError("Title required")
        thread = self._threads.update_thread(user_id, thread_id, title=title)
        if thread is None:
            raise ThreadNotFound(thread_id)
        return public_view(thread, PUBLIC_THREAD_FIELDS)

    def delete_thread(self, user_id: str, thread_id: str) -> None:
        if not self._threads.delete_thread(user_id, thread_id):
            raise ThreadNotFound(thread_id)

    # ── Messages ──────────────────────────────────────────────────────────

    def _require_thread(self, user_id: str, thread_id: str) -> dict:
        thread = self._threads.get_thread(user_id, thread_id)
        if thread is None:
            raise ThreadNotFound(thread_id)
        return thread

    def list_messages(self, user_id: str, thread_id: str) -> list[dict]:
        self._require_thread(user_id, thread_id)
        return [
            public_view(m, PUBLIC_MESSAGE_FIELDS)
            for m in self._threads.list_messages(thread_id)
        ]

    def send_message(self, user_id: str, thread_id: str, content: str) -> dict:
        """Store *content*, ask the assistant, store and return its reply."""
        content = (content or "").strip()
        if not content:
            raise ValueError("Message content required")
        thread = self._require_thread(user_id, thread_id)

        user_message = self._threads.add_message(thread_id, "user", content)

        try:
            context = self._profile_context(user_id)
        except RecordsError as e:
            logger.warning("Profile unavailable for %s: %s", user_id, e)
            context = None

        result = self.assistant.invoke(
            {
                "messages": [("user", enrich_question(content, context))],
                "iteration_count": 0,
                "user_id": user_id,
            },
            config={"configurable": {"thread_id": thread["assistant_thread_id"]}},
        )
        reply = _final_reply(result)
        assistant_message = self._threads.add_message(thread_id, "assistant", reply)

        is_new_title = not thread.get("title") or thread["title"] == DEFAULT_TITLE
        updated = self._threads.update_thread(
            user_id,
            thread_id,
            title=make_title(content) if is_new_title else thread["title"],
            last_message=reply or content,
            last_message_at=utc_now(),
        )

        return {
            "userMessage": public_view(user_message, PUBLIC_MESSAGE_FIELDS),
            "assistantMessage": public_view(assistant_message, PUBLIC_MESSAGE_FIELDS),
            "thread": public_view(updated or thread, PUBLIC_THREAD_FIELDS),
        }
