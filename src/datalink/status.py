"""Multi-instance status report builder."""

from typing import Any, Awaitable, Callable, Optional

from .extract import asset_name_of, coerce_to_float, probe_count
from .fetch import InstanceBundle, settle
from .formatters import NA, format_bool, format_list, format_uptime
from .normalize import Cell, Table, normalize_table
from . import log

PING_FIELDS = (
    "uptime",
    "dataRead",
    "dataSent",
    "dataPurged",
    "authenticationOptional",
    "serviceName",
    "hostName",
    "ipAddresses",
    "health",
    "safeMode",
    "version",
)
BOOLEAN_FIELDS = frozenset(("authenticationOptional", "safeMode"))
LIST_FIELDS = frozenset(("ipAddresses",))

STATISTICS_KEYS = ("READINGS", "BUFFERED", "DISCARDED", "UNSENT", "PURGED", "UNSNPURGED")

SECTION_PING = "Ping"
SECTION_STATISTICS = "Statistics"
SECTION_ASSETS = "Assets"


def decode_statistics(payload: Any) -> dict[str, Any]:
    """Statistics as key -> value from a list of {key, value} or a plain map."""
    if isinstance(payload, dict):
        return {str(k): v for k, v in payload.items()}
    result: dict[str, Any] = {}
    if isinstance(payload, list):
        for item in payload:
            if isinstance(item, dict) and "key" in item:
                result[str(item["key"])] = item.get("value")
    return result


def decode_asset_counts(payload: Any) -> dict[str, Optional[int]]:
    """Asset name -> reading count from an asset list response."""
    items = payload.get("assets") if isinstance(payload, dict) else payload
    counts: dict[str, Optional[int]] = {}
    if not isinstance(items, list):
        return counts
    for item in items:
        name = asset_name_of(item)
        if name is not None:
            counts[name] = probe_count(item) if isinstance(item, dict) else None
    return counts


def format_ping_field(name: str, value: Any) -> Cell:
    """Render one ping field for display."""
    if name == "uptime":
        return format_uptime(value)
    if name in BOOLEAN_FIELDS:
        return format_bool(value)
    if name in LIST_FIELDS:
        return format_list(value)
    if value is None:
        return NA
    if isinstance(value, (list, tuple)):
        return format_list(value)
    if isinstance(value, bool):
        return format_bool(value)
    return value


def _number_or_na(value: Any) -> Cell:
    number = coerce_to_float(value)
    if number is None:
        return NA
    return int(number) if number.is_integer() else number


def _display_name(url: str, bundle: Optional[InstanceBundle]) -> str:
    if bundle is not None and isinstance(bundle.ping, dict):
        host = bundle.ping.get("hostName")
        if host:
            return str(host)
    return url


def _bundle_from(url: str, value: Any) -> Optional[InstanceBundle]:
    if isinstance(value, InstanceBundle):
        return value
    if isinstance(value, dict):
        return InstanceBundle(
            url=url,
            ping=value.get("ping"),
            statistics=value.get("statistics"),
            assets=value.get("assets"),
        )
    return None


async def build_status_report(
    instance_urls: list[str],
    per_instance_fetch: Callable[[str], Awaitable[Any]],
) -> Table:
    """
    Build a field-by-instance status table.

    Instances are fetched concurrently and joined all-settled; an instance
    whose fetch fails gets an all-NA column.

    Args:
        instance_urls: Base URLs of the instances, one column each
        per_instance_fetch: Coroutine function returning an InstanceBundle
            (or a dict with ping/statistics/assets)

    Returns:
        Table whose label_rows mark the Ping, Statistics and Assets sections
    """
    results = await settle([per_instance_fetch(url) for url in instance_urls])

    bundles: list[Optional[InstanceBundle]] = []
    for url, result in zip(instance_urls, results):
        if not result.ok:
            log.warn(f"{url}: status fetch failed: {result.error}")
            bundles.append(None)
            continue
        bundle = _bundle_from(url, result.value)
        if bundle is None:
            log.warn(f"{url}: unexpected status result {type(result.value).__name__}")
        bundles.append(bundle)

    pings = [b.ping if b is not None and isinstance(b.ping, dict) else None for b in bundles]
    stats = [decode_statistics(b.statistics) if b is not None else None for b in bundles]
    assets = [
        decode_asset_counts(b.assets) if b is not None and b.assets is not None else None
        for b in bundles
    ]

    headers: list[Cell] = ["Field"] + [
        _display_name(url, b) for url, b in zip(instance_urls, bundles)
    ]
    rows: list[list[Cell]] = [["URL"] + list(instance_urls)]
    label_rows: list[int] = []

    label_rows.append(len(rows))
    rows.append([SECTION_PING])
    for name in PING_FIELDS:
        rows.append(
            [name]
            + [NA if p is None else format_ping_field(name, p.get(name)) for p in pings]
        )

    label_rows.append(len(rows))
    rows.append([SECTION_STATISTICS])
    for key in STATISTICS_KEYS:
        rows.append([key] + [NA if s is None else _number_or_na(s.get(key)) for s in stats])

    asset_names = sorted({name for a in assets if a for name in a})
    label_rows.append(len(rows))
    rows.append([SECTION_ASSETS])
    for name in asset_names:
        row: list[Cell] = [name]
        for a in assets:
            if a is None or name not in a:
                row.append(NA)
            else:
                count = a[name]
                row.append(NA if count is None else count)
        rows.append(row)

    log.debug(
        f"Status report: {len(instance_urls)} instance(s), {len(asset_names)} asset(s)"
    )
    return normalize_table(Table(headers, rows, label_rows))
