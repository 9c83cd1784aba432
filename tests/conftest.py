import json
import os
import tempfile

import pytest

# Keep every store the modules create at import time out of the working tree.
os.environ.setdefault("SAHAYAK_DATA_DIR", tempfile.mkdtemp(prefix="sahayak-tests-"))
os.environ.setdefault("MEMORY_BACKEND", "local")
os.environ.pop("SUPABASE_URL", None)

SCHEMES = [
    {
        "id": 4,
        "scheme_name": "Kanya Shiksha Yojana",
        "description": "Scholarship for girls in secondary school",
        "benefits": "Rs 10,000 per year",
        "category": "Education",
        "state": "Bihar",
        "department": "Education Department",
        "application_process": "Apply through the school",
        "official_website": "https://example.gov.in/kanya",
        "is_active": True,
    },
    {
        "id": 42,
        "scheme_name": "Old Age Pension",
        "description": "Monthly pension for citizens above 60",
        "benefits": "Rs 1,000 per month",
        "category": "Social Welfare",
        "state": None,
        "department": None,
        "application_process": None,
        "official_website": None,
        "is_active": True,
    },
    {
        "id": 7,
        "scheme_name": "Retired Scheme",
        "description": "No longer offered",
        "is_active": False,
    },
]

PROFILES = [
    {
        "id": "user-1",
        "full_name": "Asha Devi",
        "gender": "female",
        "annual_income": 0,
        "state": "Bihar",
    },
]


@pytest.fixture
def records_path(tmp_path):
    path = tmp_path / "records.json"
    path.write_text(json.dumps({"user_profiles": PROFILES, "schemes": SCHEMES}))
    return str(path)


@pytest.fixture
def records(records_path):
    from records.local import LocalRecords
    return LocalRecords(records_path)


@pytest.fixture
def memory_store(tmp_path):
    from memory.store import LocalMemoryStore
    return LocalMemoryStore(str(tmp_path / "memories.json"))


@pytest.fixture
def thread_store(tmp_path):
    from records.threads import ThreadStore
    return ThreadStore(str(tmp_path / "threads.json"))
