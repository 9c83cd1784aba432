"""Synchronize a citizen's profile and the active schemes into memory.

Usage:
    python scripts/sync_memories.py <user-id> [<user-id> ...]

Exits non-zero if any listing failed or any memory could not be added.
"""

import os
import sys

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agent.guardrails import audit_logger  # noqa: E402
from agent.threads import ChatService  # noqa: E402
from memory.store import get_memory_service  # noqa: E402
from memory.sync import SyncFetchError  # noqa: E402
from records import get_records  # noqa: E402
from records.threads import ThreadStore  # noqa: E402


def main(argv: list[str]) -> int:
    if not argv:
        print(__doc__)
        return 2

    service = ChatService(
        threads=ThreadStore(),
        records=get_records(),
        memory_service=get_memory_service(),
        audit=audit_logger,
    )

    status = 0
    for user_id in argv:
        try:
            report = service.sync_memories(user_id)
        except SyncFetchError as e:
            print(f"{user_id}: aborted, nothing written ({e})")
            status = 1
            continue
        print(
            f"{user_id}: {len(report.inserted)} added, "
            f"{len(report.skipped)} already present, {len(report.failed)} failed"
        )
        for memory_type, identity, error in report.failed:
            print(f"  ✗ {memory_type}:{identity}: {error}")
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
