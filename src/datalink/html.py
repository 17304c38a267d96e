"""HTML preview rendering using Jinja2 templates."""

from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from .formatters import format_duration, format_uptime, format_value
from .layout import DATE_FORMAT, GridPackage
from .timevalues import format_grid_date
from . import log

_jinja_env: Optional[Environment] = None


def get_jinja_env() -> Environment:
    """Get or create the singleton Jinja2 environment.

    Uses PackageLoader to load templates from src/datalink/templates/
    with autoescape enabled for security.
    """
    global _jinja_env
    if _jinja_env is not None:
        return _jinja_env

    env = Environment(
        loader=PackageLoader("datalink", "templates"),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )

    env.filters["format_value"] = format_value
    env.filters["format_duration"] = format_duration
    env.filters["format_uptime"] = format_uptime
    env.filters["format_grid_date"] = format_grid_date

    _jinja_env = env
    return env


def display_text(value: Any, number_format: Optional[str] = None) -> str:
    """Text a cell would show in a spreadsheet."""
    if number_format == DATE_FORMAT and isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_grid_date(value)
    if value == "" or value is None:
        return ""
    if isinstance(value, str):
        return value[1:] if value.startswith("'") else value
    return format_value(value)


def build_grid_rows(package: GridPackage) -> list[list[dict[str, Any]]]:
    """
    Convert a package into HTML table rows.

    Each cell becomes a dict with text, kind, colspan and rowspan; cells
    covered by a merge are left out.
    """
    row0, col0 = package.origin
    kinds: dict[tuple[int, int], str] = {}
    spans: dict[tuple[int, int], tuple[int, int]] = {}
    covered: set[tuple[int, int]] = set()
    formats: dict[tuple[int, int], str] = {}

    for region in package.regions:
        r = region.cell_range
        for row in range(r.row_start, r.row_end):
            for col in range(r.col_start, r.col_end):
                kinds[(row, col)] = region.kind
        if region.merge:
            spans[(r.row_start, r.col_start)] = (r.row_span, r.col_span)
            covered.update(
                (row, col)
                for row in range(r.row_start, r.row_end)
                for col in range(r.col_start, r.col_end)
                if (row, col) != (r.row_start, r.col_start)
            )

    for fmt in package.number_formats:
        r = fmt.cell_range
        for row in range(r.row_start, r.row_end):
            for col in range(r.col_start, r.col_end):
                formats[(row, col)] = fmt.number_format

    rows = []
    for i, values in enumerate(package.cells):
        row = row0 + i
        out = []
        for j, value in enumerate(values):
            col = col0 + j
            if (row, col) in covered:
                continue
            rowspan, colspan = spans.get((row, col), (1, 1))
            out.append(
                {
                    "text": display_text(value, formats.get((row, col))),
                    "kind": kinds.get((row, col), "value"),
                    "rowspan": rowspan,
                    "colspan": colspan,
                }
            )
        rows.append(out)
    return rows


def render_package_html(package: GridPackage, chart_svg: Optional[str] = None) -> str:
    """
    Render a package as a standalone HTML page.

    Args:
        package: Composed report
        chart_svg: Optional SVG markup shown above the table

    Returns:
        HTML string
    """
    env = get_jinja_env()
    template = env.get_template("report.html")
    return template.render(
        title=package.sheet_name,
        rows=build_grid_rows(package),
        chart_svg=chart_svg,
    )


def write_html(package: GridPackage, path: Path, chart_svg: Optional[str] = None) -> Path:
    """Render a package and write it to path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_package_html(package, chart_svg), encoding="utf-8")
    log.debug(f"Wrote {path}")
    return path
