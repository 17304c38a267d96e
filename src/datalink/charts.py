"""Chart descriptors with adaptive time-axis granularity, and SVG previews."""

import io
import math
from dataclasses import dataclass, field
from typing import Any, Optional

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server-side rendering
import matplotlib.pyplot as plt
import matplotlib.dates as mdates

from .naming import CellRange
from .timevalues import from_grid_date
from . import log

SECONDS_PER_DAY = 86400

# Upper bound (inclusive, seconds) of the data span for each axis unit
SECONDS_SPAN_MAX = 300
MINUTES_SPAN_MAX = 7200
HOURS_SPAN_MAX = 172800

TARGET_TICKS = 8
NICE_MULTIPLIERS = (1, 2, 5, 10)

LEGEND_POSITION = "Right"


@dataclass(frozen=True)
class TimeScale:
    """Axis unit chosen for a data span."""

    unit: str
    category_format: str
    unit_seconds: int
    strftime: str


TIME_SCALES = {
    "seconds": TimeScale("seconds", "hh:mm:ss", 1, "%H:%M:%S"),
    "minutes": TimeScale("minutes", "hh:mm", 60, "%H:%M"),
    "hours": TimeScale("hours", "mm/dd hh:mm", 3600, "%m/%d %H:%M"),
    "days": TimeScale("days", "mm/dd/yyyy", SECONDS_PER_DAY, "%m/%d/%Y"),
}


@dataclass
class ChartSpec:
    """Host-independent description of a time-series line chart."""

    category_region: CellRange
    series_regions: list[CellRange]
    series_names: list[str]
    category_format: str
    major_unit: float
    major_unit_scale: str
    axis_min: float
    axis_max: float
    anchor_start: tuple[int, int]
    anchor_end: tuple[int, int]
    legend_position: str = LEGEND_POSITION
    title: str = ""
    category_labels: list[str] = field(default_factory=list)

    @property
    def major_unit_days(self) -> float:
        """Major unit expressed in days, the native unit of a date axis."""
        return self.major_unit * TIME_SCALES[self.major_unit_scale].unit_seconds / SECONDS_PER_DAY


def select_time_scale(total_seconds: float) -> TimeScale:
    """Pick the axis unit for a span: seconds up to 5 min, minutes up to 2 h, hours up to 2 days."""
    if total_seconds <= SECONDS_SPAN_MAX:
        return TIME_SCALES["seconds"]
    if total_seconds <= MINUTES_SPAN_MAX:
        return TIME_SCALES["minutes"]
    if total_seconds <= HOURS_SPAN_MAX:
        return TIME_SCALES["hours"]
    return TIME_SCALES["days"]


def nice_step(x: float) -> float:
    """
    Round x to the nearest of 1, 2, 5 or 10 times a power of ten.

    Args:
        x: Raw step size

    Returns:
        Nice step, or 1 for non-positive input
    """
    if not isinstance(x, (int, float)) or not math.isfinite(x) or x <= 0:
        return 1
    base = 10 ** math.floor(math.log10(x))
    return min((m * base for m in NICE_MULTIPLIERS), key=lambda step: abs(step - x))


def span_seconds(grid_min: float, grid_max: float) -> float:
    """Span between two grid dates in seconds, rounded to the millisecond."""
    return round((grid_max - grid_min) * SECONDS_PER_DAY, 3)


def build_chart_spec(
    grid_dates: list[Any],
    category_region: CellRange,
    series_regions: list[CellRange],
    series_names: list[str],
    anchor_start: tuple[int, int],
    anchor_end: tuple[int, int],
    title: str = "",
) -> Optional[ChartSpec]:
    """
    Describe a line chart over placed time and value columns.

    Args:
        grid_dates: Values of the time column (non-numbers are ignored)
        category_region: Placed time column
        series_regions: Placed value columns, one per series
        series_names: Legend entries, parallel to series_regions
        anchor_start: Top-left cell of the chart
        anchor_end: Bottom-right cell of the chart
        title: Chart title

    Returns:
        ChartSpec, or None when fewer than two time points exist
    """
    points = [
        g for g in grid_dates
        if isinstance(g, (int, float)) and not isinstance(g, bool) and math.isfinite(g)
    ]
    if len(points) < 2 or not series_regions:
        log.debug(f"No chart: {len(points)} time point(s), {len(series_regions)} series")
        return None

    axis_min, axis_max = min(points), max(points)
    total = span_seconds(axis_min, axis_max)
    scale = select_time_scale(total)
    major = nice_step((total / scale.unit_seconds) / TARGET_TICKS)

    return ChartSpec(
        category_region=category_region,
        series_regions=list(series_regions),
        series_names=list(series_names),
        category_format=scale.category_format,
        major_unit=major,
        major_unit_scale=scale.unit,
        axis_min=axis_min,
        axis_max=axis_max,
        anchor_start=anchor_start,
        anchor_end=anchor_end,
        title=title,
        category_labels=[
            from_grid_date(g).strftime(scale.strftime) for g in (axis_min, axis_max)
        ],
    )


def _column_values(
    cells: list[list[Any]], origin: tuple[int, int], region: CellRange
) -> list[Any]:
    row0, col0 = origin
    col = region.col_start - col0
    return [
        cells[r - row0][col]
        for r in range(region.row_start, region.row_end)
        if 0 <= r - row0 < len(cells)
    ]


def _configure_x_axis(ax, spec: ChartSpec) -> None:
    """Configure X-axis locator and formatter from the chart's time scale."""
    scale = TIME_SCALES[spec.major_unit_scale]
    interval = max(1, int(round(spec.major_unit)))
    if scale.unit == "seconds":
        locator = mdates.SecondLocator(interval=interval)
    elif scale.unit == "minutes":
        locator = mdates.MinuteLocator(interval=interval)
    elif scale.unit == "hours":
        locator = mdates.HourLocator(interval=interval)
    else:
        locator = mdates.DayLocator(interval=interval)

    ax.xaxis.set_major_locator(locator)
    ax.xaxis.set_major_formatter(mdates.DateFormatter(scale.strftime))
    plt.setp(ax.xaxis.get_majorticklabels(), rotation=30, ha='right')


def render_chart_svg(
    spec: ChartSpec,
    cells: list[list[Any]],
    origin: tuple[int, int] = (0, 0),
    width: int = 800,
    height: int = 320,
) -> str:
    """Render a chart descriptor as SVG using matplotlib.

    Args:
        spec: Chart descriptor
        cells: Cell block the descriptor's regions point into
        origin: Absolute (row, col) of cells[0][0]
        width: Chart width in pixels
        height: Chart height in pixels

    Returns:
        SVG string
    """
    dpi = 100
    fig, ax = plt.subplots(figsize=(width / dpi, height / dpi), dpi=dpi)

    try:
        ax.spines['top'].set_visible(False)
        ax.spines['right'].set_visible(False)
        ax.grid(True, linestyle='-', alpha=0.5)
        ax.set_axisbelow(True)

        categories = _column_values(cells, origin, spec.category_region)
        for name, region in zip(spec.series_names, spec.series_regions):
            values = _column_values(cells, origin, region)
            points = [
                (from_grid_date(t).replace(tzinfo=None), v)
                for t, v in zip(categories, values)
                if isinstance(t, (int, float)) and isinstance(v, (int, float))
                and not isinstance(v, bool)
            ]
            if not points:
                continue
            points.sort()
            ax.plot([p[0] for p in points], [p[1] for p in points], linewidth=1.5, label=name)

        ax.set_xlim(
            from_grid_date(spec.axis_min).replace(tzinfo=None),
            from_grid_date(spec.axis_max).replace(tzinfo=None),
        )
        _configure_x_axis(ax, spec)

        if spec.title:
            ax.set_title(spec.title)
        if ax.get_legend_handles_labels()[0]:
            ax.legend(loc='center left', bbox_to_anchor=(1.0, 0.5), frameon=False)

        plt.tight_layout(pad=0.5)

        svg_buffer = io.StringIO()
        fig.savefig(svg_buffer, format='svg', bbox_inches='tight', pad_inches=0.1)
        svg_content = svg_buffer.getvalue()

    finally:
        plt.close(fig)

    return svg_content
