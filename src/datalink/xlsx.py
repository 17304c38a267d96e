"""openpyxl workbook host: writes reports to .xlsx files."""

from pathlib import Path
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.chart import Reference, ScatterChart, Series
from openpyxl.chart.marker import Marker
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .charts import ChartSpec
from .layout import StyleDirective
from .naming import CellRange, cell_ref
from . import log

# Approximate size of a default row and column in chart units (cm)
ROW_HEIGHT_CM = 0.53
COLUMN_WIDTH_CM = 1.7

LEGEND_POSITIONS = {"Right": "r", "Left": "l", "Top": "t", "Bottom": "b"}


def _intersects(a: CellRange, min_row: int, min_col: int, max_row: int, max_col: int) -> bool:
    # openpyxl bounds are 1-based and inclusive
    return (
        a.row_start < max_row and min_row - 1 < a.row_end
        and a.col_start < max_col and min_col - 1 < a.col_end
    )


class WorkbookHost:
    """Grid host backed by an openpyxl Workbook."""

    def __init__(self, workbook: Optional[Workbook] = None):
        self.workbook = workbook if workbook is not None else Workbook()
        self._placeholder = self.workbook.active if workbook is None else None
        # sheet -> [(chart, anchor row, anchor col)]
        self._charts: dict[str, list[tuple[Any, int, int]]] = {}

    def worksheet(self, name: str):
        """Get or create a worksheet by name."""
        if name in self.workbook.sheetnames:
            return self.workbook[name]
        if self._placeholder is not None:
            ws = self._placeholder
            ws.title = name
            self._placeholder = None
            return ws
        return self.workbook.create_sheet(name)

    def _cells(self, ws, block: CellRange):
        for row in ws.iter_rows(
            min_row=block.row_start + 1,
            max_row=block.row_end,
            min_col=block.col_start + 1,
            max_col=block.col_end,
        ):
            yield from row

    def clear_block(self, sheet: str, block: CellRange) -> None:
        ws = self.worksheet(sheet)
        for merged in list(ws.merged_cells.ranges):
            if _intersects(block, merged.min_row, merged.min_col, merged.max_row, merged.max_col):
                ws.unmerge_cells(str(merged))

        for cell in self._cells(ws, block):
            cell.value = None
            cell.font = Font()
            cell.fill = PatternFill()
            cell.border = Border()
            cell.alignment = Alignment()
            cell.number_format = "General"

        kept = []
        for chart, row, col in self._charts.get(sheet, []):
            if block.row_start <= row < block.row_end and block.col_start <= col < block.col_end:
                # openpyxl has no public API for removing a chart
                ws._charts.remove(chart)
            else:
                kept.append((chart, row, col))
        self._charts[sheet] = kept

    def write_block(self, sheet: str, row: int, col: int, cells: list[list[Any]]) -> None:
        ws = self.worksheet(sheet)
        for i, values in enumerate(cells):
            for j, value in enumerate(values):
                cell = ws.cell(row=row + i + 1, column=col + j + 1)
                if isinstance(value, str) and value.startswith("'"):
                    # Leading apostrophe marks literal text
                    value = value[1:]
                cell.value = value
                if isinstance(value, str) and value.startswith("="):
                    cell.data_type = "s"

    def set_number_format(self, sheet: str, block: CellRange, number_format: str) -> None:
        ws = self.worksheet(sheet)
        for cell in self._cells(ws, block):
            cell.number_format = number_format

    def merge(self, sheet: str, block: CellRange) -> None:
        self.worksheet(sheet).merge_cells(
            start_row=block.row_start + 1,
            start_column=block.col_start + 1,
            end_row=block.row_end,
            end_column=block.col_end,
        )

    def apply_style(self, sheet: str, block: CellRange, style: StyleDirective) -> None:
        ws = self.worksheet(sheet)
        font = Font(bold=style.bold, color=style.font_color)
        fill = (
            PatternFill(start_color=style.fill, end_color=style.fill, fill_type="solid")
            if style.fill else PatternFill()
        )
        if style.border_color:
            side = Side(style="thin", color=style.border_color)
            border = Border(left=side, right=side, top=side, bottom=side)
        else:
            border = Border()
        alignment = Alignment(
            horizontal=style.horizontal, vertical=style.vertical, wrap_text=style.wrap
        )
        for cell in self._cells(ws, block):
            cell.font = font
            cell.fill = fill
            cell.border = border
            cell.alignment = alignment

    def set_column_width(self, sheet: str, col: int, width: float) -> None:
        self.worksheet(sheet).column_dimensions[get_column_letter(col + 1)].width = width

    def add_line_chart(self, sheet: str, chart: ChartSpec) -> None:
        """Add the chart as a scatter chart with lines over a date-valued X axis."""
        ws = self.worksheet(sheet)
        ch = ScatterChart()
        ch.title = chart.title or None
        ch.style = 13
        ch.x_axis.delete = False
        ch.y_axis.delete = False
        ch.x_axis.number_format = chart.category_format
        ch.x_axis.majorUnit = chart.major_unit_days
        ch.x_axis.scaling.min = chart.axis_min
        ch.x_axis.scaling.max = chart.axis_max
        ch.legend.position = LEGEND_POSITIONS.get(chart.legend_position, "r")

        cat = chart.category_region
        xvalues = Reference(
            ws,
            min_col=cat.col_start + 1,
            min_row=cat.row_start + 1,
            max_row=cat.row_end,
        )
        for name, region in zip(chart.series_names, chart.series_regions):
            yvalues = Reference(
                ws,
                min_col=region.col_start + 1,
                min_row=region.row_start + 1,
                max_row=region.row_end,
            )
            series = Series(yvalues, xvalues, title=name)
            series.marker = Marker(symbol="none")
            series.smooth = False
            ch.series.append(series)

        start_row, start_col = chart.anchor_start
        end_row, end_col = chart.anchor_end
        ch.height = (end_row - start_row + 1) * ROW_HEIGHT_CM
        ch.width = (end_col - start_col + 1) * COLUMN_WIDTH_CM

        ws.add_chart(ch, cell_ref(start_row, start_col))
        self._charts.setdefault(sheet, []).append((ch, start_row, start_col))

    def save(self, path: Path) -> Path:
        """Save the workbook, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(path)
        log.info(f"Wrote workbook {path}")
        return path
