"""
Runtime configuration for the Sanatan Pustak portal, read from the environment.
"""

import os


def _float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "pustak")
PORT = _int("PORT", 8000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Quiet period before a reading position is written back
PROGRESS_DEBOUNCE_SECONDS = _float("PROGRESS_DEBOUNCE_SECONDS", 1.0)
FEATURED_LIMIT = _int("FEATURED_LIMIT", 4)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
