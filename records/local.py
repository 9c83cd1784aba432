"""JSON seed-file reader used when no Supabase project is configured.

The file holds ``{"user_profiles": [...], "schemes": [...]}``.
"""

import json
import os
from typing import Optional

from memory.schema import SCHEME_COLUMNS, Scheme, UserProfile
from records import RecordsError


class LocalRecords:
    def __init__(self, path: str) -> None:
        self._path = path

    def _load(self) -> dict:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise RecordsError(f"Could not read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise RecordsError(f"{self._path} must hold a JSON object")
        return data

    def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        for profile in self._load().get("user_profiles", []):
            if str(profile.get("id")) == str(user_id):
                return profile
        return None

    def query_active_schemes(self) -> list[Scheme]:
        return [
            {column: scheme.get(column) for column in SCHEME_COLUMNS}
            for scheme in self._load().get("schemes", [])
            if scheme.get("is_active") is True
        ]
