"""Environment-driven settings."""

from __future__ import annotations

import os


class Settings:
    """Runtime settings read from ``TALLY_*`` environment variables."""

    DB_FILE: str = os.getenv("TALLY_DB_FILE", "tally.json")
    LOG_LEVEL: str = os.getenv("TALLY_LOG_LEVEL", "WARNING").upper()
    DEFAULT_SORT: str = os.getenv("TALLY_DEFAULT_SORT", "dueDateAscending")
    UNASSIGNED_LABEL: str = os.getenv("TALLY_UNASSIGNED_LABEL", "(unassigned)")


settings = Settings()
