"""Grid layout composition: placement, regions, merges and styles."""

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Sequence

from .charts import ChartSpec, build_chart_spec
from .env import get_config
from .formatters import format_value
from .naming import CellRange
from .normalize import Cell, Table, normalize, normalize_table
from .readings import is_no_data
from . import log

DATE_FORMAT = "mm/dd/yyyy hh:mm:ss AM/PM"
DATE_DISPLAY_WIDTH = 22

MIN_COLUMN_WIDTH = 8
MAX_COLUMN_WIDTH = 60

REGION_KINDS = ("label", "header", "value", "spacer")


@dataclass(frozen=True)
class StyleDirective:
    """Visual style for a region. Colors are hex RGB without '#'."""

    fill: Optional[str] = None
    font_color: Optional[str] = None
    bold: bool = False
    horizontal: Optional[str] = None
    vertical: Optional[str] = None
    border_color: Optional[str] = None
    wrap: bool = False


HEADER_STYLE = StyleDirective(
    fill="4472C4", font_color="FFFFFF", bold=True, horizontal="center", vertical="center"
)
LABEL_STYLE = StyleDirective(fill="D9E1F2", bold=True, horizontal="left", vertical="center")
VALUE_STYLE = StyleDirective(border_color="D1D5DB", horizontal="left", vertical="top")
SPACER_STYLE = StyleDirective()

DEFAULT_STYLES = {
    "label": LABEL_STYLE,
    "header": HEADER_STYLE,
    "value": VALUE_STYLE,
    "spacer": SPACER_STYLE,
}


@dataclass(frozen=True)
class GridRegion:
    """A styled rectangular block of a written report."""

    row_start: int
    col_start: int
    row_span: int
    col_span: int
    kind: str
    style: Optional[StyleDirective] = None
    merge: bool = False

    def __post_init__(self):
        if self.kind not in REGION_KINDS:
            raise ValueError(f"unknown region kind: {self.kind}")

    @property
    def resolved_style(self) -> StyleDirective:
        return self.style if self.style is not None else DEFAULT_STYLES[self.kind]

    @property
    def cell_range(self) -> CellRange:
        return CellRange(self.row_start, self.col_start, self.row_span, self.col_span)

    def offset(self, rows: int, cols: int) -> "GridRegion":
        """Copy shifted by rows and cols."""
        return replace(self, row_start=self.row_start + rows, col_start=self.col_start + cols)

    def overlaps(self, other: "GridRegion") -> bool:
        a, b = self.cell_range, other.cell_range
        return (
            a.row_start < b.row_end and b.row_start < a.row_end
            and a.col_start < b.col_end and b.col_start < a.col_end
        )


@dataclass(frozen=True)
class NumberFormat:
    """Number format applied to a block of cells."""

    cell_range: CellRange
    number_format: str


@dataclass
class GridPackage:
    """Everything a host needs to write one report."""

    sheet_name: str
    cells: list[list[Cell]]
    origin: tuple[int, int] = (0, 0)
    regions: list[GridRegion] = field(default_factory=list)
    number_formats: list[NumberFormat] = field(default_factory=list)
    column_widths: dict[int, float] = field(default_factory=dict)
    chart: Optional[ChartSpec] = None

    @property
    def row_count(self) -> int:
        return len(self.cells)

    @property
    def col_count(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    @property
    def extent(self) -> CellRange:
        """The written rectangle in absolute coordinates."""
        return CellRange(self.origin[0], self.origin[1], self.row_count, self.col_count)


def _display_length(value: Any) -> int:
    if isinstance(value, str):
        return max((len(line) for line in value.split("\n")), default=0)
    return len(format_value(value))


def compute_column_widths(
    rows: list[list[Cell]],
    start_col: int = 0,
    date_columns: Sequence[int] = (),
    skip_rows: Sequence[int] = (),
) -> dict[int, float]:
    """
    Column widths from content length, clamped to a readable range.

    Args:
        rows: Rectangular cells including the header row
        start_col: Absolute column of rows[*][0]
        date_columns: Relative columns shown as formatted dates
        skip_rows: Relative rows left out (merged label bands)

    Returns:
        Absolute column index -> width in characters
    """
    skip = set(skip_rows)
    widths: dict[int, float] = {}
    for col in range(len(rows[0]) if rows else 0):
        longest = max(
            (_display_length(row[col]) for i, row in enumerate(rows) if i not in skip),
            default=0,
        )
        if col in date_columns:
            longest = max(longest, DATE_DISPLAY_WIDTH)
        widths[start_col + col] = float(
            min(MAX_COLUMN_WIDTH, max(MIN_COLUMN_WIDTH, longest + 2))
        )
    return widths


def _value_regions(
    first_row: int,
    start_col: int,
    row_count: int,
    width: int,
    label_rows: Sequence[int],
    value_style: Optional[StyleDirective],
) -> list[GridRegion]:
    """Value regions for data rows, split around merged label rows."""
    regions = []
    labels = set(label_rows)
    run_start: Optional[int] = None
    for i in range(row_count + 1):
        is_value = i < row_count and i not in labels
        if is_value and run_start is None:
            run_start = i
        elif not is_value and run_start is not None:
            regions.append(
                GridRegion(first_row + run_start, start_col, i - run_start, width,
                           "value", style=value_style)
            )
            run_start = None
        if i < row_count and i in labels:
            regions.append(GridRegion(first_row + i, start_col, 1, width, "label", merge=True))
    return regions


def compose_table(
    table: Table,
    sheet_name: str,
    start_row: int = 0,
    start_col: int = 0,
    chart_band: int = 0,
    date_columns: Sequence[int] = (),
    value_style: Optional[StyleDirective] = None,
) -> GridPackage:
    """
    Place a table at (start_row, start_col).

    Optional blank band rows are reserved above the header. The header row
    is one region; data rows form value regions, with each of
    table.label_rows as a merged label band.

    Args:
        table: Builder output; normalized here
        sheet_name: Target sheet
        start_row: Absolute 0-based row of the first written row
        start_col: Absolute 0-based column of the first written column
        chart_band: Blank rows reserved above the header
        date_columns: Relative columns holding grid dates
        value_style: Override for the value region style

    Returns:
        GridPackage whose regions tile its cells exactly
    """
    t = normalize_table(table)
    width = t.width
    cells: list[list[Cell]] = [[""] * width for _ in range(chart_band)]
    cells.append(list(t.headers))
    cells.extend(t.rows)

    regions: list[GridRegion] = []
    if chart_band:
        regions.append(GridRegion(start_row, start_col, chart_band, width, "spacer"))

    header_row = start_row + chart_band
    regions.append(GridRegion(header_row, start_col, 1, width, "header"))
    regions.extend(
        _value_regions(header_row + 1, start_col, len(t.rows), width, t.label_rows, value_style)
    )

    number_formats = [
        NumberFormat(CellRange(header_row + 1, start_col + col, len(t.rows), 1), DATE_FORMAT)
        for col in date_columns
        if t.rows and col < width
    ]

    widths = compute_column_widths(
        [t.headers] + t.rows,
        start_col=start_col,
        date_columns=date_columns,
        skip_rows=[i + 1 for i in t.label_rows],
    )

    return GridPackage(
        sheet_name=sheet_name,
        cells=cells,
        origin=(start_row, start_col),
        regions=regions,
        number_formats=number_formats,
        column_widths=widths,
    )


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compose_raw(
    table: Table,
    sheet_name: str,
    start_row: int = 0,
    start_col: int = 0,
    with_chart: bool = True,
) -> GridPackage:
    """
    Place a raw readings table with a chart band above it.

    The chart plots every datapoint column that holds at least one number
    against the Timestamp column. Without a chart (no-data sentinel, fewer
    than two time points, or no numeric columns) no band is reserved.
    """
    if is_no_data(table):
        return compose_table(table, sheet_name, start_row, start_col)

    t = normalize_table(table)
    band = get_config().chart_band_rows if with_chart else 0

    chart: Optional[ChartSpec] = None
    if band:
        first_data_row = start_row + band + 1
        series_cols = [
            col for col in range(2, t.width)
            if any(_is_numeric(row[col]) for row in t.rows)
        ]
        chart = build_chart_spec(
            grid_dates=[row[0] for row in t.rows],
            category_region=CellRange(first_data_row, start_col, len(t.rows), 1),
            series_regions=[
                CellRange(first_data_row, start_col + col, len(t.rows), 1)
                for col in series_cols
            ],
            series_names=[str(t.headers[col]) for col in series_cols],
            anchor_start=(start_row, start_col),
            anchor_end=(start_row + band - 1, start_col + t.width - 1),
            title=sheet_name,
        )
        if chart is None:
            band = 0

    package = compose_table(t, sheet_name, start_row, start_col, chart_band=band, date_columns=(0,))
    package.chart = chart
    return package


def compose_summary(table: Table, sheet_name: str, start_row: int = 0, start_col: int = 0) -> GridPackage:
    """Place a summary table."""
    return compose_table(table, sheet_name, start_row, start_col)


def compose_timespan(table: Table, sheet_name: str, start_row: int = 0, start_col: int = 0) -> GridPackage:
    """Place a timespan table; oldest and newest columns are dates."""
    return compose_table(table, sheet_name, start_row, start_col, date_columns=(1, 2))


def compose_combined(report, sheet_name: str, start_row: int = 0, start_col: int = 0) -> GridPackage:
    """
    Place a combined report block.

    The builder's block-relative regions are shifted to the absolute
    position; the oldest/newest rows of the asset table get a date format.
    """
    width = report.width
    cells = normalize([report.headers] + report.rows, width)
    regions = [r.offset(start_row, start_col) for r in report.regions]
    number_formats = [
        NumberFormat(CellRange(start_row + r, start_col + 1, 1, width - 1), DATE_FORMAT)
        for r in report.date_rows
        if width > 1
    ]
    label_rows = [r.row_start for r in report.regions if r.kind in ("label", "spacer")]
    widths = compute_column_widths(cells, start_col=start_col, skip_rows=label_rows)
    for col in range(1, width):
        widths[start_col + col] = max(widths[start_col + col], float(DATE_DISPLAY_WIDTH))

    return GridPackage(
        sheet_name=sheet_name,
        cells=cells,
        origin=(start_row, start_col),
        regions=regions,
        number_formats=number_formats,
        column_widths=widths,
    )


STATUS_VALUE_STYLE = replace(VALUE_STYLE, wrap=True)


def compose_status(table: Table, sheet_name: str, start_row: int = 0, start_col: int = 0) -> GridPackage:
    """Place a status table; section label rows become merged bands."""
    log.debug(f"Composing status sheet {sheet_name} with {len(table.rows)} row(s)")
    return compose_table(table, sheet_name, start_row, start_col, value_style=STATUS_VALUE_STYLE)


def check_tiling(package: GridPackage) -> bool:
    """Whether the package regions cover its cells exactly once."""
    extent = package.extent
    covered = 0
    for i, region in enumerate(package.regions):
        r = region.cell_range
        if (r.row_start < extent.row_start or r.col_start < extent.col_start
                or r.row_end > extent.row_end or r.col_end > extent.col_end):
            return False
        if any(region.overlaps(other) for other in package.regions[i + 1:]):
            return False
        covered += r.row_span * r.col_span
    return covered == extent.row_span * extent.col_span
