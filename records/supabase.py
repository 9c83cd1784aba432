"""Supabase (PostgREST) reader for profiles and the scheme catalog."""

from typing import Any, Optional

import requests

from agent import config
from memory.schema import SCHEME_COLUMNS, Scheme, UserProfile
from records import RecordsError


class SupabaseRecords:
    """Thin read-only client over the PostgREST endpoint of a Supabase project."""

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = config.HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._rest_url = f"{url.rstrip('/')}/rest/v1"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Accept": "application/json",
        })

    def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        url = f"{self._rest_url}/{table}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as e:
            raise RecordsError(f"Reading {table} failed: {e}") from e
        except ValueError as e:
            raise RecordsError(f"Reading {table} returned invalid JSON: {e}") from e
        if not isinstance(rows, list):
            raise RecordsError(f"Reading {table} did not return rows")
        return rows

    def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        rows = self._select(
            "user_profiles", {"select": "*", "id": f"eq.{user_id}", "limit": "1"},
        )
        return rows[0] if rows else None

    def query_active_schemes(self) -> list[Scheme]:
        return self._select(
            "schemes", {"select": ",".join(SCHEME_COLUMNS), "is_active": "eq.true"},
        )
