"""Idempotent synchronization of profile and scheme facts into memory.

A run reads the memory listing and the active scheme catalog first, then
adds only the memories that are missing.  Existing memories are never
edited or removed, so an outdated profile fact stays until it is cleared
out of band.

Usage::

    from memory.sync import MemorySynchronizer
    report = MemorySynchronizer(memory_service, records).synchronize(
        user_id, build_profile_context(profile),
    )
    if report.failed:
        ...  # retry later; already-inserted pairs will be skipped
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from memory.context import memory_identity, profile_memory_body, scheme_memory_body
from memory.store import MemoryServiceError
from records import RecordsError

logger = logging.getLogger(__name__)


class SyncFetchError(Exception):
    """Raised when the memory listing or scheme catalog cannot be read.

    Nothing has been written when this is raised.
    """


@dataclass
class SyncReport:
    inserted: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    failed: list[tuple[str, str, str]] = field(default_factory=list)  # (type, id, error)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_dict(self) -> dict:
        return {
            "inserted": [{"type": t, "id": i} for t, i in self.inserted],
            "skipped": [{"type": t, "id": i} for t, i in self.skipped],
            "failed": [{"type": t, "id": i, "error": e} for t, i, e in self.failed],
        }


class MemorySynchronizer:
    def __init__(self, memory_service, records, audit=None) -> None:
        self._memory = memory_service
        self._records = records
        self._audit = audit

    def synchronize(self, user_id: str, profile_context: Optional[str]) -> SyncReport:
        """Add the missing profile memory and scheme memories for *user_id*.

        Raises:
            SyncFetchError: If the memory listing or the scheme catalog
                could not be read.  No memory has been added in that case.
        """
        try:
            existing = self._memory.list_memories()
        except MemoryServiceError as e:
            raise SyncFetchError(f"Could not list memories: {e}") from e

        try:
            schemes = self._records.query_active_schemes()
        except RecordsError as e:
            raise SyncFetchError(f"Could not read the scheme catalog: {e}") from e

        # Identities are taken from this one snapshot; pairs added during the
        # run are recorded too so a repeated catalog row is only added once.
        present = {memory_identity(record) for record in existing}
        present.discard(None)
        report = SyncReport()

        if profile_context:
            self._ensure(
                report, present, ("profile", str(user_id)),
                profile_memory_body(user_id, profile_context),
                {"type": "profile", "user_id": user_id},
            )

        for scheme in schemes:
            if scheme.get("id") is None:
                logger.warning("Skipping scheme without id: %r", scheme.get("scheme_name"))
                continue
            self._ensure(
                report, present, ("scheme", str(scheme["id"])),
                scheme_memory_body(scheme),
                {"type": "scheme", "scheme_id": scheme["id"]},
            )

        logger.info(
            "Memory sync for %s: %d inserted, %d skipped, %d failed",
            user_id, len(report.inserted), len(report.skipped), len(report.failed),
        )
        return report

    def _ensure(self, report: SyncReport, present: set, key: tuple[str, str],
                text: str, metadata: dict) -> None:
        if key in present:
            report.skipped.append(key)
            return
        try:
            self._memory.add_memory(text, metadata)
        except MemoryServiceError as e:
            logger.warning("Could not add %s memory %s: %s", key[0], key[1], e)
            report.failed.append((key[0], key[1], str(e)))
            if self._audit is not None:
                self._audit.log("memory_insert_failed", type=key[0], id=key[1], error=str(e))
            return
        present.add(key)
        report.inserted.append(key)
        if self._audit is not None:
            self._audit.log("memory_inserted", type=key[0], id=key[1])
