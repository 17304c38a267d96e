"""Summary, timespan and combined multi-asset report builders."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from .extract import (
    DatapointStats,
    coerce_to_float,
    decode_summary,
    decode_timespan,
    normalize_asset_names,
    asset_name_of,
    probe_count,
)
from .fetch import AssetBundle, settle
from .formatters import NA, format_duration
from .layout import GridRegion
from .normalize import Cell, Table, normalize, normalize_table
from .readings import no_data_table, parse_readings
from .timevalues import to_grid_date
from . import log

SUMMARY_HEADERS = ["Asset Name", "Datapoint", "Min", "Max", "Average"]
TIMESPAN_HEADERS = [
    "Asset Name",
    "Oldest Reading Timestamp",
    "Newest Reading Timestamp",
    "Duration",
]

COMBINED_ASSET_TITLE = "Asset-wise Summary"
COMBINED_DATAPOINT_TITLE = "Datapoint-wise Summary"
COMBINED_ASSET_LABELS = [
    "SNo.",
    "Assets",
    "Readings",
    "Oldest Reading Timestamp",
    "Newest Reading Timestamp",
]
COMBINED_DATAPOINT_HEADERS = ["SNo.", "Asset", "Datapoint", "Min", "Max", "Average"]


@dataclass
class AssetSummaryEntry:
    """Per-asset aggregate used while building a report."""

    asset_name: str
    reading_count: Optional[int] = None
    oldest: Optional[float] = None
    newest: Optional[float] = None
    datapoint_stats: dict[str, DatapointStats] = field(default_factory=dict)
    failed: bool = False

    @property
    def has_stats(self) -> bool:
        return len(self.datapoint_stats) > 0


def derive_asset_summary(readings: Any, asset_name: str) -> AssetSummaryEntry:
    """
    Compute count, time span and per-datapoint stats from raw readings.

    Single pass over the readings. Only numeric values (numbers or numeric
    strings, not booleans) contribute to the stats.

    Args:
        readings: Records or a raw readings response
        asset_name: Asset the readings belong to

    Returns:
        AssetSummaryEntry with stats sorted by datapoint name
    """
    records = parse_readings(readings, asset_name)

    oldest: Optional[float] = None
    newest: Optional[float] = None
    # name -> [min, max, total, count]
    acc: dict[str, list[float]] = {}

    for record in records:
        grid = to_grid_date(record.timestamp)
        if grid is not None:
            oldest = grid if oldest is None else min(oldest, grid)
            newest = grid if newest is None else max(newest, grid)

        for name, raw in record.values.items():
            value = coerce_to_float(raw)
            if value is None:
                continue
            slot = acc.get(name)
            if slot is None:
                acc[name] = [value, value, value, 1]
            else:
                slot[0] = min(slot[0], value)
                slot[1] = max(slot[1], value)
                slot[2] += value
                slot[3] += 1

    stats = {
        name: DatapointStats(
            min=slot[0],
            max=slot[1],
            average=slot[2] / slot[3],
            count=int(slot[3]),
        )
        for name, slot in sorted(acc.items())
    }
    return AssetSummaryEntry(
        asset_name=asset_name,
        reading_count=len(records),
        oldest=oldest,
        newest=newest,
        datapoint_stats=stats,
    )


def _stat_cell(value: Any) -> Cell:
    if value is None:
        return NA
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    number = coerce_to_float(value)
    return number if number is not None else str(value)


def _grid_or_blank(value: Optional[float]) -> Cell:
    return "" if value is None else value


def _duration_cell(oldest: Optional[float], newest: Optional[float]) -> Cell:
    if oldest is None or newest is None:
        return NA
    seconds = round(abs(newest - oldest) * 86400)
    return format_duration(seconds)


def build_summary_table(
    payload: Any,
    asset_name: str,
    datapoint: Optional[str] = None,
    fallback_readings: Any = None,
) -> Table:
    """
    Build the min/max/average table for one asset.

    Args:
        payload: Raw summary response
        asset_name: Asset the summary belongs to
        datapoint: Restrict output to this datapoint
        fallback_readings: Readings to derive stats from when the payload
            shape is not recognized

    Returns:
        Table with one row per datapoint, or a single NA row
    """
    stats = decode_summary(payload, datapoint)
    if stats is None and fallback_readings is not None:
        log.debug(f"{asset_name}: deriving summary from readings")
        stats = derive_asset_summary(fallback_readings, asset_name).datapoint_stats

    if stats and datapoint:
        if datapoint in stats:
            stats = {datapoint: stats[datapoint]}
        else:
            log.warn(f"{asset_name}: no summary for datapoint {datapoint}")
            stats = None
    elif not stats:
        log.warn(f"{asset_name}: unrecognized summary payload")

    if not stats:
        rows = [[asset_name, datapoint or NA, NA, NA, NA]]
    else:
        rows = [
            [
                asset_name,
                name,
                _stat_cell(stats[name].min),
                _stat_cell(stats[name].max),
                _stat_cell(stats[name].average),
            ]
            for name in sorted(stats)
        ]

    return normalize_table(Table(list(SUMMARY_HEADERS), rows))


def build_timespan_table(
    payload: Any,
    asset_name: str,
    datapoint: Optional[str] = None,
    fallback_readings: Any = None,
) -> Table:
    """
    Build the oldest/newest reading table for one asset.

    Args:
        payload: Raw timespan response
        asset_name: Asset the span belongs to
        datapoint: When deriving, only readings carrying this datapoint count
        fallback_readings: Readings to derive the span from when the payload
            shape is not recognized

    Returns:
        Single-row table; timestamps are grid dates
    """
    span = decode_timespan(payload)
    oldest: Optional[float] = None
    newest: Optional[float] = None

    if span is not None:
        oldest, newest = to_grid_date(span[0]), to_grid_date(span[1])
    elif fallback_readings is not None:
        log.debug(f"{asset_name}: deriving timespan from readings")
        records = parse_readings(fallback_readings, asset_name)
        if datapoint:
            records = [r for r in records if datapoint in r.values]
        entry = derive_asset_summary(records, asset_name)
        oldest, newest = entry.oldest, entry.newest

    if oldest is None and newest is None:
        log.warn(f"{asset_name}: no usable timespan")
        row: list[Cell] = [asset_name, NA, NA, NA]
    else:
        row = [
            asset_name,
            _grid_or_blank(oldest),
            _grid_or_blank(newest),
            _duration_cell(oldest, newest),
        ]

    return normalize_table(Table(list(TIMESPAN_HEADERS), [row]))


def _bundle_from(value: Any) -> AssetBundle:
    if isinstance(value, AssetBundle):
        return value
    if isinstance(value, dict):
        return AssetBundle(
            summary=value.get("summary"),
            timespan=value.get("timespan"),
            readings=value.get("readings"),
        )
    return AssetBundle()


def _timespan_count(payload: Any) -> Optional[int]:
    candidates = payload if isinstance(payload, list) else [payload]
    for candidate in candidates:
        count = probe_count(candidate)
        if count is not None:
            return count
    return None


def _summary_count(stats: Optional[dict[str, DatapointStats]]) -> Optional[int]:
    counts = [s.count for s in (stats or {}).values() if s.count is not None]
    return max(counts) if counts else None


def entry_from_bundle(
    asset_name: str, bundle: AssetBundle, listed_count: Optional[int] = None
) -> AssetSummaryEntry:
    """
    Reduce fetched payloads for one asset into an AssetSummaryEntry.

    Stats and span come from the summary/timespan payloads; when either is
    unrecognized and readings were fetched, they are derived locally. The
    reading count is taken from the asset list, then the timespan, then
    the summary, then the derived count.
    """
    stats = decode_summary(bundle.summary)
    span = decode_timespan(bundle.timespan)

    derived: Optional[AssetSummaryEntry] = None
    if (stats is None or span is None) and bundle.readings is not None:
        derived = derive_asset_summary(bundle.readings, asset_name)

    if stats is None and derived is not None:
        stats = derived.datapoint_stats

    if span is not None:
        oldest, newest = to_grid_date(span[0]), to_grid_date(span[1])
    elif derived is not None:
        oldest, newest = derived.oldest, derived.newest
    else:
        oldest = newest = None

    count = listed_count
    if count is None:
        count = _timespan_count(bundle.timespan)
    if count is None:
        count = _summary_count(stats)
    if count is None and derived is not None:
        count = derived.reading_count

    return AssetSummaryEntry(
        asset_name=asset_name,
        reading_count=count,
        oldest=oldest,
        newest=newest,
        datapoint_stats=stats or {},
    )


@dataclass
class CombinedReport:
    """
    Two stacked tables as one rectangular block.

    headers is the first row of the block (the title band) and rows the
    rest; regions and date_rows index the block with headers as row 0.
    """

    headers: list[Cell]
    rows: list[list[Cell]]
    regions: list[GridRegion]
    entries: list[AssetSummaryEntry]
    date_rows: list[int] = field(default_factory=list)

    @property
    def width(self) -> int:
        return len(self.headers)

    @property
    def table(self) -> Table:
        return Table(list(self.headers), [list(r) for r in self.rows])


def _asset_table_rows(entries: list[AssetSummaryEntry]) -> list[list[Cell]]:
    rows: list[list[Cell]] = [[label] for label in COMBINED_ASSET_LABELS]
    for serial, entry in enumerate(entries, start=1):
        rows[0].append(serial)
        rows[1].append(entry.asset_name)
        if entry.failed:
            rows[2].append(NA)
            rows[3].append(NA)
            rows[4].append(NA)
            continue
        rows[2].append(NA if entry.reading_count is None else entry.reading_count)
        rows[3].append(_grid_or_blank(entry.oldest))
        rows[4].append(_grid_or_blank(entry.newest))
    return rows


def _datapoint_table_rows(entries: list[AssetSummaryEntry]) -> list[list[Cell]]:
    rows: list[list[Cell]] = []
    serial = 1
    for entry in entries:
        if entry.failed or not entry.has_stats:
            rows.append([serial, entry.asset_name, NA, NA, NA, NA])
            serial += 1
            continue
        for name in sorted(entry.datapoint_stats):
            stats = entry.datapoint_stats[name]
            rows.append(
                [
                    serial,
                    entry.asset_name,
                    name,
                    _stat_cell(stats.min),
                    _stat_cell(stats.max),
                    _stat_cell(stats.average),
                ]
            )
            serial += 1
    return rows


def assemble_combined(entries: list[AssetSummaryEntry]) -> CombinedReport:
    """Lay out the asset-wise and datapoint-wise tables as one block."""
    asset_rows = _asset_table_rows(entries)
    datapoint_rows = _datapoint_table_rows(entries)
    width = max(len(asset_rows[0]), len(COMBINED_DATAPOINT_HEADERS))

    block: list[list[Cell]] = [[COMBINED_ASSET_TITLE]]
    regions = [GridRegion(0, 0, 1, width, "label", merge=True)]

    first_asset_row = len(block)
    block.extend(asset_rows)
    regions.append(GridRegion(first_asset_row, 0, len(asset_rows), 1, "header"))
    regions.append(
        GridRegion(first_asset_row, 1, len(asset_rows), width - 1, "value")
    )
    date_rows = [first_asset_row + 3, first_asset_row + 4]

    regions.append(GridRegion(len(block), 0, 1, width, "spacer"))
    block.append([])

    regions.append(GridRegion(len(block), 0, 1, width, "label", merge=True))
    block.append([COMBINED_DATAPOINT_TITLE])

    regions.append(GridRegion(len(block), 0, 1, width, "header"))
    block.append(list(COMBINED_DATAPOINT_HEADERS))

    if datapoint_rows:
        regions.append(GridRegion(len(block), 0, len(datapoint_rows), width, "value"))
        block.extend(datapoint_rows)

    block = normalize(block, width)
    return CombinedReport(
        headers=block[0],
        rows=block[1:],
        regions=regions,
        entries=entries,
        date_rows=date_rows,
    )


def no_data_combined() -> CombinedReport:
    """Combined report block holding only the no-data sentinel."""
    table = no_data_table()
    return CombinedReport(
        headers=list(table.headers),
        rows=[list(r) for r in table.rows],
        regions=[
            GridRegion(0, 0, 1, 1, "header"),
            GridRegion(1, 0, 1, 1, "value"),
        ],
        entries=[],
    )


async def build_combined_report(
    asset_list: Any,
    per_asset_fetch: Callable[[str], Awaitable[Any]],
) -> CombinedReport:
    """
    Build the combined report for many assets of one instance.

    Every asset is fetched concurrently and the results are joined
    all-settled: an asset whose fetch fails is shown with NA cells and
    the report still completes.

    Args:
        asset_list: Asset names or asset objects (name under asset,
            asset_code, assetCode, name or code; optional count)
        per_asset_fetch: Coroutine function returning an AssetBundle
            (or a dict with summary/timespan/readings) for an asset name

    Returns:
        CombinedReport block with regions
    """
    names = normalize_asset_names(asset_list)
    if not names:
        log.info("Combined report: no assets listed")
        return no_data_combined()

    listed_counts: dict[str, Optional[int]] = {}
    for item in asset_list or []:
        name = asset_name_of(item)
        if name is not None and listed_counts.get(name) is None:
            listed_counts[name] = probe_count(item)

    log.debug(f"Combined report: fetching {len(names)} asset(s)")
    results = await settle([per_asset_fetch(name) for name in names])

    entries = []
    for name, result in zip(names, results):
        if not result.ok:
            log.warn(f"{name}: fetch failed, marking NA: {result.error}")
            entries.append(AssetSummaryEntry(asset_name=name, failed=True))
            continue
        entries.append(
            entry_from_bundle(name, _bundle_from(result.value), listed_counts.get(name))
        )

    failed = sum(1 for e in entries if e.failed)
    if failed:
        log.info(f"Combined report: {failed}/{len(entries)} asset(s) unavailable")
    return assemble_combined(entries)
