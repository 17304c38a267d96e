"""Tests for HTML report previews."""

from datalink.html import build_grid_rows, display_text, render_package_html, write_html
from datalink.layout import DATE_FORMAT, compose_raw, compose_status, compose_timespan
from datalink.normalize import Table
from datalink.readings import build_raw_table


def _status():
    table = Table(
        ["Field", "edge-1", "edge-2"],
        [["Ping", "", ""], ["hostName", "<edge-1>", "'• a\n• b"]],
        label_rows=[0],
    )
    return compose_status(table, "Instances-Status")


class TestDisplayText:
    """Tests for display_text."""

    def test_date_format(self):
        """Date-formatted numbers show as dates."""
        assert display_text(45306.5, DATE_FORMAT) == "01/15/2024 12:00:00 PM"

    def test_plain_values(self):
        """Other values use the display formatter."""
        assert display_text(0.5) == "0.50"
        assert display_text(False) == "FALSE"
        assert display_text("") == ""

    def test_literal_marker_stripped(self):
        """A leading apostrophe is not shown."""
        assert display_text("'=1+1") == "=1+1"


class TestBuildGridRows:
    """Tests for build_grid_rows."""

    def test_merged_label_spans(self):
        """Merged label rows collapse into one spanning cell."""
        rows = build_grid_rows(_status())

        assert len(rows[1]) == 1
        assert rows[1][0]["kind"] == "label"
        assert rows[1][0]["colspan"] == 3
        assert [c["kind"] for c in rows[0]] == ["header"] * 3

    def test_dates_formatted(self):
        """Timespan dates are shown as formatted dates."""
        table = Table(["Asset Name", "Oldest", "Newest", "Duration"], [["a", 45306.0, 45306.5, "12h 0m 0s"]])
        rows = build_grid_rows(compose_timespan(table, "a-timespan"))

        assert rows[1][1]["text"] == "01/15/2024 12:00:00 AM"
        assert rows[1][2]["text"] == "01/15/2024 12:00:00 PM"


class TestRenderPackageHtml:
    """Tests for render_package_html."""

    def test_renders_table(self):
        """The page contains the title and a colspan for labels."""
        html = render_package_html(_status())

        assert "<title>Instances-Status</title>" in html
        assert 'colspan="3"' in html
        assert 'class="header"' in html

    def test_escapes_values(self):
        """Cell text is escaped."""
        html = render_package_html(_status())

        assert "&lt;edge-1&gt;" in html
        assert "<edge-1>" not in html

    def test_chart_embedded(self, sample_readings):
        """Chart SVG markup is inserted unescaped and spacer cells are dropped."""
        package = compose_raw(build_raw_table(sample_readings, "sinusoid"), "sinusoid-data")
        html = render_package_html(package, chart_svg="<svg id='c'></svg>")

        assert "<svg id='c'></svg>" in html
        assert 'class="spacer"' not in html

    def test_write_html(self, tmp_path):
        """Pages are written to disk."""
        path = write_html(_status(), tmp_path / "site" / "status.html")

        assert path.exists()
        assert "Instances-Status" in path.read_text(encoding="utf-8")
