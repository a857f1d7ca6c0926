"""
config.py
---------
Central configuration for the pandal route planner.
All secrets loaded from environment variables — never hard-coded.

Values are read once at import time.  Engine components never read this
module on their own; they receive settings through their constructors or
through the ``from_config()`` factories.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the backend directory (if it exists) so env vars in that file
# are picked up by os.getenv() below.  Won't override vars already set in the shell.
_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# ── Google Maps Platform (Directions / Geocoding / Places) ────────────────────
# Obtain at: https://console.cloud.google.com/apis/credentials
# Enable:  Directions API + Geocoding API + Places API
# Set env: GOOGLE_MAPS_API_KEY=AIza...
# When empty every provider call fails fast and directions fall back to the
# Haversine approximation.
GOOGLE_MAPS_API_KEY: str  = os.getenv("GOOGLE_MAPS_API_KEY", "")
GOOGLE_MAPS_BASE_URL: str = os.getenv("GOOGLE_MAPS_BASE_URL", "https://maps.googleapis.com/maps/api")
# Timeout in seconds for every provider HTTP call
PROVIDER_TIMEOUT_S: float = float(os.getenv("PROVIDER_TIMEOUT_S", "10"))

# ── Request limits ────────────────────────────────────────────────────────────
MAX_PANDALS_WALKING: int = int(os.getenv("MAX_PANDALS_WALKING", "8"))
MAX_PANDALS_OTHER:   int = int(os.getenv("MAX_PANDALS_OTHER",   "15"))

# ── Food stops ────────────────────────────────────────────────────────────────
FOOD_SEARCH_RADIUS_KM:   float = float(os.getenv("FOOD_SEARCH_RADIUS_KM", "0.5"))
FOOD_LOOKUP_WORKERS:     int   = int(os.getenv("FOOD_LOOKUP_WORKERS",     "4"))
FOOD_MIDPOINT_SAMPLES:   int   = int(os.getenv("FOOD_MIDPOINT_SAMPLES",   "3"))
FOOD_OPTIONS_PER_SAMPLE: int   = int(os.getenv("FOOD_OPTIONS_PER_SAMPLE", "3"))

# ── Local stop ordering ───────────────────────────────────────────────────────
# Distance Matrix is only requested for up to this many points; larger lists
# are ordered on Haversine estimates alone.
STOP_ORDER_MATRIX_MAX_POINTS: int = int(os.getenv("STOP_ORDER_MATRIX_MAX_POINTS", "10"))
# Time spent at each pandal, added to every hop when ordering by time
PANDAL_VISIT_MINUTES: int = int(os.getenv("PANDAL_VISIT_MINUTES", "25"))

# ── Fallback route ────────────────────────────────────────────────────────────
# Walking pace used for every transport mode when the provider is down.
FALLBACK_MINUTES_PER_KM: float = float(os.getenv("FALLBACK_MINUTES_PER_KM", "12"))

# ── Observability ─────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
# Structured JSONL event log (one file per request id)
LOGS_DIR: str = os.getenv("LOGS_DIR", str(Path(__file__).resolve().parent / "logs"))
EVENT_LOG_ENABLED: bool = _flag("EVENT_LOG_ENABLED", "false")

# ── PostgreSQL (pandal / food-place catalogue + saved routes) ─────────────────
POSTGRES_HOST: str     = os.getenv("POSTGRES_HOST",     "localhost")
POSTGRES_PORT: int     = int(os.getenv("POSTGRES_PORT", "5432"))
POSTGRES_DB: str       = os.getenv("POSTGRES_DB",       "pandal_navigator")
POSTGRES_USER: str     = os.getenv("POSTGRES_USER",     "pandal_user")
POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "pandal_pass")
POSTGRES_MIN_CONN: int = int(os.getenv("POSTGRES_MIN_CONN", "1"))
POSTGRES_MAX_CONN: int = int(os.getenv("POSTGRES_MAX_CONN", "10"))
# Server-side cap on any single catalogue query
POSTGRES_STATEMENT_TIMEOUT_MS: int = int(os.getenv("POSTGRES_STATEMENT_TIMEOUT_MS", "5000"))
