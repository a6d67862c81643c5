"""Runtime configuration for the scraping service.

Values are read from the environment (``.env`` is loaded by ``app.main``)
and exposed as module-level constants.
"""

import os


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


APP_ENV = os.getenv("APP_ENV", "production")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Timeout for one-shot scrape requests (seconds)
SCRAPE_TIMEOUT = _float_env("SCRAPE_TIMEOUT", 30.0)

# Interactive sessions wait longer for slow directory pages
SESSION_FETCH_TIMEOUT = _float_env("SESSION_FETCH_TIMEOUT", 60.0)

MAX_REDIRECTS = _int_env("MAX_REDIRECTS", 5)

SESSION_MAX_AGE_HOURS = _float_env("SESSION_MAX_AGE_HOURS", 24.0)

# 0 disables the background cleanup task
SESSION_CLEANUP_INTERVAL_SECONDS = _float_env("SESSION_CLEANUP_INTERVAL_SECONDS", 3600.0)

# Fixed wait before re-fetching a page for extraction
SETTLE_DELAY_SECONDS = _float_env("SETTLE_DELAY_SECONDS", 0.0)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")


def is_development() -> bool:
    """Return True when detailed error payloads may be exposed."""
    return APP_ENV.lower() in ("development", "dev", "local")
