import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_int(name: str, default: str) -> int:
    """Read an integer setting, failing loudly on a malformed value"""
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid integer for {name}: {raw!r}") from None


# Database - SQLite is only meant for local development and tests
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./opsuite.db")

# Frontend base URL (booking widget + dashboard)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Scheduling engine
# IANA zone used when a business has no (or an unknown) timezone configured
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")
SLOT_GRANULARITY_MINUTES = _env_int("SLOT_GRANULARITY_MINUTES", "30")
# A requested booking time is accepted when it is strictly closer than this to a free slot
SLOT_TOLERANCE_MINUTES = _env_int("SLOT_TOLERANCE_MINUTES", "30")
DEFAULT_JOB_DURATION_MINUTES = _env_int("DEFAULT_JOB_DURATION_MINUTES", "60")
# Upper bound on recurrence loop steps per expansion, regardless of stored config
MAX_RECURRENCE_OCCURRENCES = _env_int("MAX_RECURRENCE_OCCURRENCES", "999")

if SLOT_GRANULARITY_MINUTES < 1:
    raise ValueError(f"SLOT_GRANULARITY_MINUTES must be >= 1, got {SLOT_GRANULARITY_MINUTES}")
if MAX_RECURRENCE_OCCURRENCES < 1:
    raise ValueError(f"MAX_RECURRENCE_OCCURRENCES must be >= 1, got {MAX_RECURRENCE_OCCURRENCES}")
