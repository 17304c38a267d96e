"""Shared formatting functions for display values."""

import math
from typing import Any, Optional

NA = "NA"


def format_value(value: Any) -> str:
    """Format a value for display."""
    if value is None:
        return NA
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def format_bool(value: Any) -> str:
    """Render a boolean flag as TRUE/FALSE, anything else as NA."""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.upper()
    return NA


def format_list(value: Any) -> str:
    """Render a list as bullet lines, prefixed so hosts keep it as text."""
    if not isinstance(value, (list, tuple)):
        return NA if value is None else str(value)
    if not value:
        return NA
    return "'" + "\n".join(f"• {item}" for item in value)


def format_duration(seconds: Optional[float]) -> str:
    """Format duration in seconds to human readable string (days, hours, minutes, seconds)."""
    if seconds is None or not math.isfinite(seconds):
        return NA

    seconds = int(seconds)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    mins = (seconds % 3600) // 60
    secs = seconds % 60

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0 or days > 0:
        parts.append(f"{hours}h")
    if mins > 0 or hours > 0 or days > 0:
        parts.append(f"{mins}m")
    parts.append(f"{secs}s")

    return " ".join(parts)


def format_uptime(seconds: Any) -> str:
    """Format uptime seconds to human readable string (days, hours, minutes)."""
    if seconds is None or isinstance(seconds, bool):
        return NA
    try:
        seconds = int(float(seconds))
    except (TypeError, ValueError, OverflowError):
        return NA

    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    mins = (seconds % 3600) // 60

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0 or days > 0:
        parts.append(f"{hours}h")
    parts.append(f"{mins}m")

    return " ".join(parts)
