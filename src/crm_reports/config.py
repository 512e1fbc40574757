"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads environment variables (optionally from a `.env` file in the project
root) used by the CLI, the dashboard and the report cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

@dataclass(frozen=True)
class Settings:
    """Container for application configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI for the CRM collections (may be empty).
        mongo_db: MongoDB database holding the CRM collections.
        report_cache_size: Maximum number of memoized report results.
        log_level: Logging level name for `configure_logging`.
    """
    mongo_uri: str
    mongo_db: str
    report_cache_size: int
    log_level: str



def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `REPORT_CACHE_SIZE` is not a positive integer.
    """
    mongo_uri = os.getenv("MONGO_URI", "").strip()
    mongo_db = os.getenv("MONGO_DB", "crm")
    raw_cache_size = os.getenv("REPORT_CACHE_SIZE", "64").strip()
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

    try:
        report_cache_size = int(raw_cache_size)
    except ValueError:
        report_cache_size = 0

    if report_cache_size <= 0:
        raise RuntimeError(
            "REPORT_CACHE_SIZE must be a positive integer "
            f"(got {raw_cache_size!r})."
        )

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=mongo_db,
        report_cache_size=report_cache_size,
        log_level=log_level,
    )
