"""Centralized service configuration.

Reads from environment variables with sensible defaults so that the chat
backend works out of the box (local JSON stores) while remaining fully
customizable for a deployment against Supabase and a hosted memory service.
"""

import os

from dotenv import load_dotenv

load_dotenv()


# ── LLM Settings ──────────────────────────────────────────────────────────────
MODEL_NAME: str = os.getenv("AGENT_MODEL", "gemini-2.0-flash")
TEMPERATURE: float = float(os.getenv("AGENT_TEMPERATURE", "0.0"))
MAX_ITERATIONS: int = int(os.getenv("AGENT_MAX_ITERATIONS", "6"))
DATA_DIR = os.path.abspath(os.getenv("SAHAYAK_DATA_DIR", "./workspace"))
os.makedirs(DATA_DIR, exist_ok=True)

# ── Memory service ────────────────────────────────────────────────────────────
MEMORY_BACKEND: str = os.getenv("MEMORY_BACKEND", "local")  # "local" | "http"
MEMORY_API_URL: str = os.getenv("MEMORY_API_URL", "")
MEMORY_API_KEY: str = os.getenv("MEMORY_API_KEY", "")
LOCAL_MEMORY_PATH: str = os.path.join(DATA_DIR, "memories.json")

# ── Relational store ──────────────────────────────────────────────────────────
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")
LOCAL_RECORDS_PATH: str = os.getenv(
    "SAHAYAK_RECORDS_PATH", os.path.join(DATA_DIR, "records.json")
)
THREADS_PATH: str = os.path.join(DATA_DIR, "threads.json")

HTTP_TIMEOUT: float = float(os.getenv("SAHAYAK_HTTP_TIMEOUT", "20"))  # seconds

# ── Safety & rate-limiting ────────────────────────────────────────────────────
RATE_LIMIT_CALLS: int = int(os.getenv("SAHAYAK_RATE_LIMIT_CALLS", "20"))
RATE_LIMIT_WINDOW: int = int(os.getenv("SAHAYAK_RATE_LIMIT_WINDOW", "60"))  # seconds

AUDIT_LOG_DIR: str = os.path.join(DATA_DIR, ".audit_logs")
os.makedirs(AUDIT_LOG_DIR, exist_ok=True)

# ── Scheme retrieval ──────────────────────────────────────────────────────────
SCHEME_RETRIEVAL_ENABLED: bool = (
    os.getenv("SCHEME_RETRIEVAL_ENABLED", "false").lower() in ("1", "true", "yes")
)
SCHEME_RETRIEVAL_TOP_K: int = int(os.getenv("SCHEME_RETRIEVAL_TOP_K", "5"))
SCHEME_EMBEDDING_MODEL: str = os.getenv("SCHEME_EMBEDDING_MODEL", "all-MiniLM-L6-v2")
SCHEME_INDEX_DIR: str = os.path.join(DATA_DIR, ".scheme_index")
os.makedirs(SCHEME_INDEX_DIR, exist_ok=True)

# ── API Keys ──────────────────────────────────────────────────────────────────
GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")

# ── System prompt ─────────────────────────────────────────────────────────────
SYSTEM_PROMPT: str = os.getenv(
    "AGENT_SYSTEM_PROMPT",
    (
        "You are Sahayak, an assistant that helps citizens discover government "
        "and organization welfare schemes. Use the scheme tools to look up "
        "schemes before answering questions about them. Explain eligibility in "
        "plain language, point out what the citizen may still need to qualify, "
        "and never invent benefits, deadlines or websites."
    ),
)
