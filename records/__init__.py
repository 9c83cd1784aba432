"""Read access to the relational store.

Two interchangeable readers provide ``fetch_profile(user_id)`` and
``query_active_schemes()``: ``SupabaseRecords`` (PostgREST) for deployments
and ``LocalRecords`` (a JSON seed file) for development and tests.
"""


class RecordsError(Exception):
    """Raised when the relational store cannot be read."""


_records = None


def get_records():
    """Return (and lazily create) the configured records reader."""
    global _records
    if _records is None:
        from agent import config

        if config.SUPABASE_URL:
            from records.supabase import SupabaseRecords

            _records = SupabaseRecords(
                config.SUPABASE_URL, config.SUPABASE_KEY, timeout=config.HTTP_TIMEOUT,
            )
        else:
            from records.local import LocalRecords

            _records = LocalRecords(config.LOCAL_RECORDS_PATH)
    return _records
