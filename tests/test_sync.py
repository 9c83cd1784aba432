"""Tests for the memory synchronizer."""

from unittest.mock import MagicMock

import pytest

from memory.context import memory_identity
from memory.store import MemoryServiceError
from memory.sync import MemorySynchronizer, SyncFetchError
from records import RecordsError


def _identities(store):
    return [memory_identity(m) for m in store.list_memories()]


def test_first_run_adds_profile_and_active_schemes(memory_store, records):
    report = MemorySynchronizer(memory_store, records).synchronize("user-1", "Name: Asha Devi")

    assert report.ok
    assert report.inserted == [("profile", "user-1"), ("scheme", "4"), ("scheme", "42")]
    assert sorted(_identities(memory_store)) == [
        ("profile", "user-1"), ("scheme", "4"), ("scheme", "42"),
    ]
    profile = next(m for m in memory_store.list_memories() if m["metadata"]["type"] == "profile")
    assert profile["memory"] == "[type:profile]\nuser_id:user-1\nName: Asha Devi"
    assert profile["metadata"] == {"type": "profile", "user_id": "user-1"}


def test_second_run_inserts_nothing(memory_store, records):
    MemorySynchronizer(memory_store, records).synchronize("user-1", "Name: Asha Devi")

    spy = MagicMock(wraps=memory_store)
    report = MemorySynchronizer(spy, records).synchronize("user-1", "Name: Asha Devi")

    assert spy.add_memory.call_count == 0
    assert report.inserted == []
    assert len(report.skipped) == 3
    assert len(memory_store.list_memories()) == 3


def test_other_users_profile_is_still_added(memory_store, records):
    sync = MemorySynchronizer(memory_store, records)
    sync.synchronize("user-1", "Name: Asha Devi")
    report = sync.synchronize("user-2", "Name: Someone Else")

    assert report.inserted == [("profile", "user-2")]


def test_empty_context_skips_profile(memory_store, records):
    report = MemorySynchronizer(memory_store, records).synchronize("user-1", "")

    assert ("profile", "user-1") not in report.inserted
    assert all(t == "scheme" for t, _ in _identities(memory_store))


def test_null_state_becomes_national(memory_store, records):
    MemorySynchronizer(memory_store, records).synchronize("user-1", None)

    pension = next(m for m in memory_store.list_memories() if m["metadata"]["scheme_id"] == 42)
    assert "state:National" in pension["memory"]


def test_listing_failure_writes_nothing(records):
    service = MagicMock()
    service.list_memories.side_effect = MemoryServiceError("boom")

    with pytest.raises(SyncFetchError):
        MemorySynchronizer(service, records).synchronize("user-1", "Name: A")

    service.add_memory.assert_not_called()


def test_catalog_failure_writes_nothing():
    service = MagicMock()
    service.list_memories.return_value = []
    catalog = MagicMock()
    catalog.query_active_schemes.side_effect = RecordsError("catalog down")

    with pytest.raises(SyncFetchError):
        MemorySynchronizer(service, catalog).synchronize("user-1", "Name: A")

    service.add_memory.assert_not_called()


def test_insert_failure_is_isolated(records):
    service = MagicMock()
    service.list_memories.return_value = []

    def add_memory(text, metadata):
        if metadata.get("scheme_id") == 4:
            raise MemoryServiceError("rejected")
        return {"id": "x", "memory": text, "metadata": metadata}

    service.add_memory.side_effect = add_memory
    audit = MagicMock()

    report = MemorySynchronizer(service, records, audit=audit).synchronize("user-1", "Name: A")

    assert not report.ok
    assert report.inserted == [("profile", "user-1"), ("scheme", "42")]
    assert report.failed == [("scheme", "4", "rejected")]
    assert service.add_memory.call_count == 3
    events = [c.args[0] for c in audit.log.call_args_list]
    assert events.count("memory_inserted") == 2
    assert events.count("memory_insert_failed") == 1


def test_retry_after_partial_failure_only_adds_missing(memory_store, records):
    flaky = MagicMock(wraps=memory_store)
    calls = {"n": 0}

    def add_memory(text, metadata):
        calls["n"] += 1
        if calls["n"] == 2:
            raise MemoryServiceError("timeout")
        return memory_store.add_memory(text, metadata)

    flaky.add_memory.side_effect = add_memory
    first = MemorySynchronizer(flaky, records).synchronize("user-1", "Name: A")
    assert first.failed == [("scheme", "4", "timeout")]

    retry = MemorySynchronizer(memory_store, records).synchronize("user-1", "Name: A")
    assert retry.inserted == [("scheme", "4")]
    assert len(memory_store.list_memories()) == 3


def test_duplicate_catalog_rows_added_once():
    service = MagicMock()
    service.list_memories.return_value = []
    catalog = MagicMock()
    catalog.query_active_schemes.return_value = [{"id": 1}, {"id": 1}]

    report = MemorySynchronizer(service, catalog).synchronize("user-1", "")

    assert service.add_memory.call_count == 1
    assert report.skipped == [("scheme", "1")]


def test_existing_memory_without_metadata_is_recognised():
    service = MagicMock()
    service.list_memories.return_value = [
        {"id": "m1", "memory": "[type:scheme]\nscheme_id:42\nscheme_name:Old", "metadata": {}},
    ]
    catalog = MagicMock()
    catalog.query_active_schemes.return_value = [{"id": 4}, {"id": 42}]

    report = MemorySynchronizer(service, catalog).synchronize("user-1", "")

    assert report.inserted == [("scheme", "4")]
    assert report.skipped == [("scheme", "42")]
