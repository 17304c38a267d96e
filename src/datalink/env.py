"""Configuration read from DATALINK_* environment variables."""

import os
from pathlib import Path
from typing import Any, Callable, Optional


def _get_number(key: str, default: Any, cast: Callable[[str], Any]) -> Any:
    val = os.environ.get(key, "").strip()
    if not val:
        return default
    try:
        return cast(val)
    except ValueError:
        return default


def get_int(key: str, default: int) -> int:
    """Get integer env var; unparseable values give the default."""
    return _get_number(key, default, int)


def get_float(key: str, default: float) -> float:
    """Get float env var; unparseable values give the default."""
    return _get_number(key, default, float)


def get_bool(key: str, default: bool = False) -> bool:
    """Get boolean env var (1/true/yes/on are true)."""
    val = os.environ.get(key, "").strip().lower()
    if not val:
        return default
    return val in ("1", "true", "yes", "on")


def get_path(key: str, default: str) -> Path:
    """Get an absolute path from an env var, expanding ~."""
    return Path(os.environ.get(key) or default).expanduser().resolve()


class Config:
    """Configuration loaded from environment variables."""

    def __init__(self):
        self.datalink_debug = get_bool("DATALINK_DEBUG", False)

        # Fetch retries (exponential backoff, capped)
        self.retry_attempts = max(1, get_int("DATALINK_RETRY_ATTEMPTS", 2))
        self.retry_backoff_s = get_float("DATALINK_RETRY_BACKOFF_S", 1.0)
        self.retry_backoff_max_s = get_float("DATALINK_RETRY_BACKOFF_MAX_S", 8.0)

        # Layout
        self.chart_band_rows = max(0, get_int("DATALINK_CHART_BAND_ROWS", 15))
        self.sheet_name_max = get_int("DATALINK_SHEET_NAME_MAX", 31)

        # Export parameter defaults
        self.default_limit = get_int("DATALINK_DEFAULT_LIMIT", 100)

        # Paths
        self.out_dir = get_path("OUT_DIR", "./out")


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
