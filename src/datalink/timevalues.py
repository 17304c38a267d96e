"""Conversion between raw reading timestamps and spreadsheet serial dates.

A grid date is a float day count where the integer part is the number of
days since 1899-12-30 and the fraction is the time of day. All conversions
are done in UTC.
"""

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

# Days between the spreadsheet epoch (1899-12-30) and the Unix epoch
GRID_EPOCH_OFFSET = 25569
MS_PER_DAY = 86_400_000

# Numeric epoch unit thresholds
MICROSECONDS_THRESHOLD = 1e14
MILLISECONDS_THRESHOLD = 1e12
SECONDS_THRESHOLD = 1e9
GRID_DATE_MAX = 100000

DATE_STYLES = ("datetime", "date", "time")

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# FogLAMP reading timestamps: "2024-01-15 10:30:45.123456"
_FOGLAMP_TS = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?$"
)


def _datetime_to_ms(dt: datetime) -> int:
    """Milliseconds since the Unix epoch, naive datetimes taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - _UNIX_EPOCH
    return (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds // 1000


def _ms_to_grid(ms: float) -> float:
    return ms / MS_PER_DAY + GRID_EPOCH_OFFSET


def parse_foglamp_timestamp(text: str) -> Optional[int]:
    """
    Parse a FogLAMP reading timestamp to epoch milliseconds.

    The fractional part may have any number of digits; it is read as
    microseconds (padded or cut to 6 digits) and floored to milliseconds.

    Args:
        text: Timestamp like "2024-01-15 10:30:45.123456"

    Returns:
        Epoch milliseconds (UTC), or None if the text does not match
    """
    match = _FOGLAMP_TS.match(text.strip())
    if not match:
        return None

    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction = (match.group(7) or "")[:6].ljust(6, "0")

    try:
        dt = datetime(
            year, month, day, hour, minute, second, int(fraction),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None

    return _datetime_to_ms(dt)


def _parse_iso(text: str) -> Optional[int]:
    """Parse an ISO-8601 string to epoch milliseconds."""
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    return _datetime_to_ms(dt)


def _number_to_grid(value: float) -> Optional[float]:
    """Apply the epoch unit heuristic to a bare number."""
    if not math.isfinite(value):
        return None

    if value > MICROSECONDS_THRESHOLD:
        return _ms_to_grid(value / 1000)
    if value > MILLISECONDS_THRESHOLD:
        return _ms_to_grid(value)
    if value > SECONDS_THRESHOLD:
        return _ms_to_grid(value * 1000)
    if GRID_EPOCH_OFFSET < value < GRID_DATE_MAX:
        return float(value)
    return _ms_to_grid(value)


def _string_to_grid(text: str) -> Optional[float]:
    ms = parse_foglamp_timestamp(text)
    if ms is not None:
        return _ms_to_grid(ms)

    ms = _parse_iso(text)
    if ms is not None:
        return _ms_to_grid(ms)

    try:
        number = float(text.strip())
    except ValueError:
        return None
    return _number_to_grid(number)


def to_grid_date(raw: Any) -> Optional[float]:
    """
    Convert a raw timestamp into a grid date.

    Accepted inputs, tried in this order for strings: FogLAMP timestamp,
    ISO-8601, numeric text. Numbers go through the epoch heuristic:
    above 1e14 microseconds, above 1e12 milliseconds, above 1e9 seconds,
    between 25569 and 100000 already a grid date, anything else milliseconds.

    Args:
        raw: String, number, datetime or date

    Returns:
        Grid date, or None if the value cannot be interpreted
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return _ms_to_grid(_datetime_to_ms(raw))
    if isinstance(raw, date):
        midnight = datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
        return _ms_to_grid(_datetime_to_ms(midnight))
    if isinstance(raw, (int, float)):
        return _number_to_grid(raw)
    if isinstance(raw, str):
        return _string_to_grid(raw)
    return None


def from_grid_date(value: float) -> datetime:
    """Convert a grid date back to a UTC datetime, to the nearest millisecond."""
    ms = round((value - GRID_EPOCH_OFFSET) * MS_PER_DAY)
    return _UNIX_EPOCH + timedelta(milliseconds=ms)


def format_grid_date(value: Any, style: str = "datetime") -> str:
    """
    Format a grid date as a human-readable label.

    Args:
        value: Grid date
        style: "datetime" (MM/DD/YYYY hh:mm:ss AM), "date" or "time"

    Returns:
        Label string, or "" for non-numeric input
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ""
    if not math.isfinite(value):
        return ""

    try:
        dt = from_grid_date(value)
    except (OverflowError, ValueError):
        return ""

    hour12 = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    date_part = f"{dt.month:02d}/{dt.day:02d}/{dt.year:04d}"
    time_part = f"{hour12:02d}:{dt.minute:02d}:{dt.second:02d} {meridiem}"

    if style not in DATE_STYLES or style == "datetime":
        return f"{date_part} {time_part}"
    return date_part if style == "date" else time_part
