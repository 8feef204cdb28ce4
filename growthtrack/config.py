"""
Application settings for growthtrack.

Settings are read from environment variables once and shared through
``get_settings()``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from growthtrack.db.client import is_configured as supabase_configured


PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_TABLE_DIR = PROJECT_ROOT / "knowledge" / "growth" / "data"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

STORAGE_BACKENDS = ("supabase", "memory")

_LOGGER = logging.getLogger(__name__)


class Settings:
    """Runtime configuration."""

    def __init__(self):
        table_dir = os.environ.get("GROWTHTRACK_TABLE_DIR")
        self.table_dir = Path(table_dir) if table_dir else DEFAULT_TABLE_DIR
        self.log_level = os.environ.get("LOGLEVEL", "info").lower()
        requested = os.environ.get("GROWTHTRACK_STORAGE")
        self.storage = self._resolve_storage(requested)
        # False when memory storage is only the fallback for a missing Supabase setup
        self.storage_explicit = bool(requested)

    @staticmethod
    def _resolve_storage(value: Optional[str]) -> str:
        if value:
            value = value.lower()
            if value not in STORAGE_BACKENDS:
                raise ValueError(
                    f"GROWTHTRACK_STORAGE must be one of {', '.join(STORAGE_BACKENDS)}, got {value!r}"
                )
            return value
        if supabase_configured():
            return "supabase"
        _LOGGER.warning("Supabase is not configured, falling back to in-memory storage")
        return "memory"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the application settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (useful for testing)."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from a textual level such as ``"info"``."""
    name = (level or get_settings().log_level).lower()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {name}")
    logging.basicConfig(
        level=LOG_LEVELS[name],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
