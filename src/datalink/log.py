"""Console logging for report builds.

Lines look like "[2024-01-15 10:30:45] WARN: message" with a UTC timestamp.
info and debug go to stdout, warn and error to stderr; debug is shown only
when DATALINK_DEBUG is set.
"""

import sys
from datetime import datetime, timezone
from typing import TextIO

from .env import get_config

PREFIXES = {
    "info": "",
    "debug": "DEBUG: ",
    "warn": "WARN: ",
    "error": "ERROR: ",
}


def _ts() -> str:
    """Current UTC timestamp string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _emit(level: str, msg: str, stream: TextIO) -> None:
    print(f"[{_ts()}] {PREFIXES[level]}{msg}", file=stream)


def info(msg: str) -> None:
    _emit("info", msg, sys.stdout)


def debug(msg: str) -> None:
    if get_config().datalink_debug:
        _emit("debug", msg, sys.stdout)


def warn(msg: str) -> None:
    """Degraded data or a failed fetch that the report survives."""
    _emit("warn", msg, sys.stderr)


def error(msg: str) -> None:
    _emit("error", msg, sys.stderr)
