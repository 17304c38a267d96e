"""Extract values from upstream payloads of varying shape."""

import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

# Stat key aliases accepted from summary endpoints
MIN_KEYS = ("min", "minimum")
MAX_KEYS = ("max", "maximum")
AVERAGE_KEYS = ("average", "avg", "mean")
STAT_KEYS = MIN_KEYS + MAX_KEYS + AVERAGE_KEYS

# Timespan key aliases, probed in order
OLDEST_KEYS = ("oldest", "start", "first", "minimum", "min", "from", "earliest")
NEWEST_KEYS = ("newest", "end", "last", "maximum", "max", "to", "latest")

COUNT_KEYS = ("count", "readings", "readingCount", "reading_count", "total")
ASSET_NAME_KEYS = ("asset", "asset_code", "assetCode", "name", "code")


@dataclass
class DatapointStats:
    """Min/max/average for one datapoint, as reported or derived."""

    min: Any = None
    max: Any = None
    average: Any = None
    count: Optional[int] = None


def coerce_to_float(value: Any) -> Optional[float]:
    """
    Safely coerce a value to a finite float.

    Booleans are not numbers here; numeric strings are accepted.

    Args:
        value: Any value

    Returns:
        Float value, or None if conversion fails
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value)
        except ValueError:
            return None
    else:
        return None

    return result if math.isfinite(result) else None


def first_present(obj: Any, keys: tuple[str, ...]) -> Optional[Any]:
    """Return the value of the first key in obj that is present and not None."""
    if not isinstance(obj, dict):
        return None
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return None


def probe_count(obj: Any) -> Optional[int]:
    """Find a reading count in obj under any of the known count keys."""
    value = coerce_to_float(first_present(obj, COUNT_KEYS))
    if value is None:
        return None
    return int(value)


def asset_name_of(item: Any) -> Optional[str]:
    """Get the asset name from a plain name or an asset object."""
    if isinstance(item, str):
        name = item.strip()
    elif isinstance(item, dict):
        value = first_present(item, ASSET_NAME_KEYS)
        name = str(value).strip() if value is not None else ""
    else:
        return None
    return name or None


def normalize_asset_names(items: Any) -> list[str]:
    """Distinct asset names from a list of names or asset objects, sorted."""
    if not isinstance(items, (list, tuple)):
        return []
    names = {asset_name_of(item) for item in items}
    names.discard(None)
    return sorted(names)


def _has_stats(obj: Any) -> bool:
    return isinstance(obj, dict) and any(key in obj for key in STAT_KEYS)


def _to_stats(obj: dict[str, Any]) -> DatapointStats:
    return DatapointStats(
        min=first_present(obj, MIN_KEYS),
        max=first_present(obj, MAX_KEYS),
        average=first_present(obj, AVERAGE_KEYS),
        count=probe_count(obj),
    )


def _decode_flat_stats(
    payload: Any, datapoint: Optional[str]
) -> Optional[dict[str, DatapointStats]]:
    """{"min": 1, "max": 5, "average": 3}"""
    if not _has_stats(payload):
        return None
    name = datapoint or payload.get("datapoint") or "value"
    return {str(name): _to_stats(payload)}


def _decode_datapoint_map(
    payload: Any, datapoint: Optional[str]
) -> Optional[dict[str, DatapointStats]]:
    """{"temperature": {"min": 1, ...}, "humidity": {...}}"""
    if not isinstance(payload, dict):
        return None
    decoded = {
        str(name): _to_stats(stats)
        for name, stats in payload.items()
        if _has_stats(stats)
    }
    return decoded or None


def _decode_single_key_list(
    payload: Any, datapoint: Optional[str]
) -> Optional[dict[str, DatapointStats]]:
    """[{"temperature": {"min": 1, ...}}, {"datapoint": "humidity", "min": 2, ...}]"""
    if not isinstance(payload, list):
        return None
    decoded: dict[str, DatapointStats] = {}
    for item in payload:
        if not isinstance(item, dict):
            continue
        if _has_stats(item):
            name = item.get("datapoint") or item.get("name") or datapoint or "value"
            decoded[str(name)] = _to_stats(item)
            continue
        for name, stats in item.items():
            if _has_stats(stats):
                decoded[str(name)] = _to_stats(stats)
    return decoded or None


SummaryDecoder = Callable[[Any, Optional[str]], Optional[dict[str, DatapointStats]]]

SUMMARY_DECODERS: tuple[SummaryDecoder, ...] = (
    _decode_flat_stats,
    _decode_datapoint_map,
    _decode_single_key_list,
)


def decode_summary(
    payload: Any, datapoint: Optional[str] = None
) -> Optional[dict[str, DatapointStats]]:
    """
    Decode a summary payload into per-datapoint stats.

    Shape detectors are tried in order; the first that recognizes the
    payload wins.

    Args:
        payload: Raw summary response
        datapoint: Name used for a flat stats object with no name of its own

    Returns:
        Mapping of datapoint name to stats, or None if the shape is unknown
    """
    for decoder in SUMMARY_DECODERS:
        decoded = decoder(payload, datapoint)
        if decoded is not None:
            return decoded
    return None


def decode_timespan(payload: Any) -> Optional[tuple[Any, Any]]:
    """
    Decode a timespan payload into raw (oldest, newest) timestamps.

    Accepts an object or a list whose first object carries the span.

    Returns:
        (oldest, newest) raw values, or None if neither is present
    """
    candidates = payload if isinstance(payload, list) else [payload]
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        oldest = first_present(candidate, OLDEST_KEYS)
        newest = first_present(candidate, NEWEST_KEYS)
        if oldest is not None or newest is not None:
            return (oldest, newest)
    return None
