"""Reading records and the raw readings table."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .extract import first_present
from .normalize import Table, normalize_table
from .timevalues import to_grid_date
from . import log

NO_DATA_HEADERS = ["No Data"]
NO_DATA_ROW = ["No readings found"]

RAW_HEADERS = ["Timestamp", "Asset Name"]

TIMESTAMP_KEYS = ("user_ts", "timestamp", "ts")
# Keys of a flat reading object that are not datapoints
RESERVED_KEYS = frozenset(
    ("timestamp", "user_ts", "ts", "asset_code", "assetCode", "asset", "id", "read_key")
)


@dataclass
class ReadingRecord:
    """One timestamped reading of an asset."""

    timestamp: Any
    asset_name: str
    values: dict[str, Any] = field(default_factory=dict)


def parse_readings(payload: Any, asset_name: str) -> list[ReadingRecord]:
    """
    Parse a readings response into records.

    Accepts a list of reading objects, either with a nested "reading" dict
    or with datapoints at the top level (single-datapoint endpoints), or
    an object wrapping that list under "readings". ReadingRecord items are
    passed through.

    Args:
        payload: Raw readings response
        asset_name: Asset the readings belong to, used when a record has none

    Returns:
        List of records in payload order
    """
    if isinstance(payload, dict):
        items = payload.get("readings")
        if not isinstance(items, list):
            items = [payload] if first_present(payload, TIMESTAMP_KEYS) is not None else []
    elif isinstance(payload, (list, tuple)):
        items = payload
    else:
        return []

    records: list[ReadingRecord] = []
    skipped = 0
    for item in items:
        if isinstance(item, ReadingRecord):
            records.append(item)
            continue
        if not isinstance(item, dict):
            skipped += 1
            continue

        reading = item.get("reading")
        if isinstance(reading, dict):
            values = dict(reading)
        else:
            values = {k: v for k, v in item.items() if k not in RESERVED_KEYS}

        name = first_present(item, ("asset_code", "assetCode", "asset")) or asset_name
        records.append(
            ReadingRecord(
                timestamp=first_present(item, TIMESTAMP_KEYS),
                asset_name=str(name),
                values=values,
            )
        )

    if skipped:
        log.debug(f"{asset_name}: skipped {skipped} malformed reading(s)")
    return records


def no_data_table() -> Table:
    """The sentinel table used when there is nothing to show."""
    return Table(list(NO_DATA_HEADERS), [list(NO_DATA_ROW)])


def is_no_data(table: Table) -> bool:
    """Whether table is the no-readings sentinel."""
    return table.headers == NO_DATA_HEADERS


def select_datapoints(records: list[ReadingRecord], datapoint: Optional[str] = None) -> list[str]:
    """Columns to show: the requested datapoint, else every datapoint sorted."""
    if datapoint:
        return [datapoint]
    return sorted({name for record in records for name in record.values})


def build_raw_table(
    readings: Any, asset_name: str, datapoint: Optional[str] = None
) -> Table:
    """
    Build the raw readings table for one asset.

    Args:
        readings: Records or a raw readings response
        asset_name: Asset shown when a record carries no name
        datapoint: Restrict output to this datapoint

    Returns:
        Table with Timestamp, Asset Name and one column per datapoint, or
        the no-data sentinel when there are no readings
    """
    records = parse_readings(readings, asset_name)
    if not records:
        log.debug(f"{asset_name}: no readings")
        return no_data_table()

    datapoints = select_datapoints(records, datapoint)
    rows = []
    for record in records:
        grid = to_grid_date(record.timestamp)
        row: list[Any] = ["" if grid is None else grid, record.asset_name or asset_name]
        row.extend(record.values.get(name, "") for name in datapoints)
        rows.append(row)

    log.debug(f"{asset_name}: {len(rows)} readings, {len(datapoints)} datapoint(s)")
    return normalize_table(Table(RAW_HEADERS + datapoints, rows))
