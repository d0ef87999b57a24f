"""Sync client configuration (environment / ``.env`` via python-decouple)."""

from decouple import config

DISTRIBUTION_API_URL = config(
    "DISTRIBUTION_API_URL", default="http://localhost:8000/api/v1/"
)
DISTRIBUTION_API_TIMEOUT = config("DISTRIBUTION_API_TIMEOUT", default=10.0, cast=float)
SYNC_POLL_INTERVAL_SECONDS = config("SYNC_POLL_INTERVAL_SECONDS", default=5.0, cast=float)
