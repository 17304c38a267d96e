"""Grid host interface and the driver that writes a GridPackage to it."""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from .charts import ChartSpec
from .layout import GridPackage, StyleDirective
from .naming import CellRange
from . import log


class GridHost(Protocol):
    """Spreadsheet-like target. Coordinates are 0-based and absolute."""

    def clear_block(self, sheet: str, block: CellRange) -> None: ...

    def write_block(self, sheet: str, row: int, col: int, cells: list[list[Any]]) -> None: ...

    def set_number_format(self, sheet: str, block: CellRange, number_format: str) -> None: ...

    def merge(self, sheet: str, block: CellRange) -> None: ...

    def apply_style(self, sheet: str, block: CellRange, style: StyleDirective) -> None: ...

    def set_column_width(self, sheet: str, col: int, width: float) -> None: ...

    def add_line_chart(self, sheet: str, chart: ChartSpec) -> None: ...


class HostSession:
    """
    Caller-owned record of what has been written to each sheet.

    Rendering the same sheet again first clears the previously written
    block, so re-exports leave no stale cells, merges or charts behind.
    """

    def __init__(self):
        self.extents: dict[str, CellRange] = {}

    def previous_extent(self, sheet: str) -> Optional[CellRange]:
        return self.extents.get(sheet)

    def record(self, sheet: str, extent: CellRange) -> None:
        self.extents[sheet] = extent

    def forget(self, sheet: str) -> None:
        self.extents.pop(sheet, None)


def render_package(host: GridHost, session: HostSession, package: GridPackage) -> None:
    """
    Write a package to a host.

    Order: clear previous block, values, styles, number formats, merges,
    column widths, chart.

    Args:
        host: Target grid host
        session: Session tracking earlier writes
        package: Composed report
    """
    if host is None:
        raise ValueError("a grid host is required")
    if session is None:
        raise ValueError("a host session is required")

    sheet = package.sheet_name
    previous = session.previous_extent(sheet)
    if previous is not None:
        log.debug(f"{sheet}: clearing previous block {previous.ref}")
        host.clear_block(sheet, previous)

    row, col = package.origin
    host.write_block(sheet, row, col, package.cells)

    for region in package.regions:
        host.apply_style(sheet, region.cell_range, region.resolved_style)
    for fmt in package.number_formats:
        host.set_number_format(sheet, fmt.cell_range, fmt.number_format)
    for region in package.regions:
        if region.merge and (region.row_span > 1 or region.col_span > 1):
            host.merge(sheet, region.cell_range)
    for column, width in sorted(package.column_widths.items()):
        host.set_column_width(sheet, column, width)
    if package.chart is not None:
        host.add_line_chart(sheet, package.chart)

    session.record(sheet, package.extent)
    log.debug(
        f"{sheet}: wrote {package.row_count}x{package.col_count} at {package.extent.ref}"
    )


def _inside(block: CellRange, row: int, col: int) -> bool:
    return block.row_start <= row < block.row_end and block.col_start <= col < block.col_end


def _intersects(a: CellRange, b: CellRange) -> bool:
    return (
        a.row_start < b.row_end and b.row_start < a.row_end
        and a.col_start < b.col_end and b.col_start < a.col_end
    )


@dataclass
class MemorySheet:
    """Contents of one in-memory sheet."""

    cells: dict[tuple[int, int], Any] = field(default_factory=dict)
    number_formats: dict[tuple[int, int], str] = field(default_factory=dict)
    styles: dict[tuple[int, int], StyleDirective] = field(default_factory=dict)
    merges: list[CellRange] = field(default_factory=list)
    column_widths: dict[int, float] = field(default_factory=dict)
    charts: list[ChartSpec] = field(default_factory=list)

    def value(self, row: int, col: int) -> Any:
        return self.cells.get((row, col))


class MemoryHost:
    """Grid host that keeps everything in dictionaries."""

    def __init__(self):
        self.sheets: dict[str, MemorySheet] = {}

    def sheet(self, name: str) -> MemorySheet:
        if name not in self.sheets:
            self.sheets[name] = MemorySheet()
        return self.sheets[name]

    def clear_block(self, sheet: str, block: CellRange) -> None:
        s = self.sheet(sheet)
        for store in (s.cells, s.number_formats, s.styles):
            for key in [k for k in store if _inside(block, *k)]:
                del store[key]
        s.merges = [m for m in s.merges if not _intersects(m, block)]
        s.charts = [c for c in s.charts if not _inside(block, *c.anchor_start)]

    def write_block(self, sheet: str, row: int, col: int, cells: list[list[Any]]) -> None:
        s = self.sheet(sheet)
        for i, values in enumerate(cells):
            for j, value in enumerate(values):
                s.cells[(row + i, col + j)] = value

    def set_number_format(self, sheet: str, block: CellRange, number_format: str) -> None:
        s = self.sheet(sheet)
        for r in range(block.row_start, block.row_end):
            for c in range(block.col_start, block.col_end):
                s.number_formats[(r, c)] = number_format

    def merge(self, sheet: str, block: CellRange) -> None:
        self.sheet(sheet).merges.append(block)

    def apply_style(self, sheet: str, block: CellRange, style: StyleDirective) -> None:
        s = self.sheet(sheet)
        for r in range(block.row_start, block.row_end):
            for c in range(block.col_start, block.col_end):
                s.styles[(r, c)] = style

    def set_column_width(self, sheet: str, col: int, width: float) -> None:
        self.sheet(sheet).column_widths[col] = width

    def add_line_chart(self, sheet: str, chart: ChartSpec) -> None:
        self.sheet(sheet).charts.append(chart)
