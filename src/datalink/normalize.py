"""Coerce builder output into rectangular tables of host-safe cells."""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union

from .timevalues import to_grid_date

Cell = Union[str, int, float, bool]

CELL_CHAR_LIMIT = 30000
TRUNCATION_MARKER = "... [Data truncated]"


def truncate_text(text: str, limit: int = CELL_CHAR_LIMIT) -> str:
    """Cut text so that it plus the truncation marker fits within limit."""
    if len(text) <= limit:
        return text
    return text[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def normalize_cell(value: Any) -> Cell:
    """Coerce a single value into something a grid cell can hold."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else ""
    if isinstance(value, str):
        return truncate_text(value)
    if isinstance(value, (datetime, date)):
        grid = to_grid_date(value)
        return "" if grid is None else grid
    return truncate_text(str(value))


def normalize(rows: Optional[list[Any]], target_cols: int) -> list[list[Cell]]:
    """
    Make every row exactly target_cols wide.

    Short rows are padded with empty strings, long rows are cut. A row that
    is not a list is treated as a single cell; None rows become empty rows.

    Args:
        rows: Logical rows from a builder
        target_cols: Required width, computed by the caller

    Returns:
        New list of rows, each a list of normalized cells
    """
    result: list[list[Cell]] = []
    for row in rows or []:
        if row is None:
            cells: list[Any] = []
        elif isinstance(row, (list, tuple)):
            cells = list(row)
        else:
            cells = [row]

        cells = cells[:target_cols]
        normalized = [normalize_cell(c) for c in cells]
        normalized.extend([""] * (target_cols - len(normalized)))
        result.append(normalized)
    return result


def target_width(headers: list[Any], rows: Optional[list[Any]]) -> int:
    """Width of a table: the longer of the header row and any data row."""
    width = len(headers)
    for row in rows or []:
        if isinstance(row, (list, tuple)):
            width = max(width, len(row))
        elif row is not None:
            width = max(width, 1)
    return width


@dataclass
class Table:
    """Header row plus data rows, optionally with section-label row indices."""

    headers: list[Cell]
    rows: list[list[Cell]] = field(default_factory=list)
    label_rows: list[int] = field(default_factory=list)

    @property
    def width(self) -> int:
        return len(self.headers)


def normalize_table(table: Table) -> Table:
    """Return a rectangular copy of table with normalized cells."""
    width = target_width(table.headers, table.rows)
    headers = normalize([table.headers], width)[0]
    return Table(headers, normalize(table.rows, width), list(table.label_rows))
