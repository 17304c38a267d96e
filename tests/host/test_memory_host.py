"""Tests for render_package against the in-memory host."""

import pytest

from datalink.host import HostSession, MemoryHost, render_package
from datalink.layout import HEADER_STYLE, compose_raw, compose_status, compose_table
from datalink.naming import CellRange
from datalink.normalize import Table
from datalink.readings import build_raw_table


@pytest.fixture
def status_package():
    """Status package with one merged label row."""
    table = Table(
        ["Field", "edge-1"],
        [["URL", "http://edge-1:8081"], ["Ping", ""], ["uptime", "1d 2h 3m"]],
        label_rows=[1],
    )
    return compose_status(table, "Instances-Status")


class TestRenderPackage:
    """Tests for render_package."""

    def test_writes_values(self, status_package):
        """Cells land at the package origin."""
        host = MemoryHost()
        render_package(host, HostSession(), status_package)
        sheet = host.sheet("Instances-Status")

        assert sheet.value(0, 0) == "Field"
        assert sheet.value(1, 1) == "http://edge-1:8081"
        assert sheet.value(3, 1) == "1d 2h 3m"

    def test_styles_and_merges(self, status_package):
        """Header style and label merges are applied."""
        host = MemoryHost()
        render_package(host, HostSession(), status_package)
        sheet = host.sheet("Instances-Status")

        assert sheet.styles[(0, 1)] == HEADER_STYLE
        assert sheet.merges == [CellRange(2, 0, 1, 2)]
        assert set(sheet.column_widths) == {0, 1}

    def test_offset_origin(self):
        """A non-zero origin shifts every write."""
        package = compose_table(Table(["A"], [[1]]), "s", start_row=3, start_col=2)
        host = MemoryHost()
        render_package(host, HostSession(), package)

        assert host.sheet("s").value(3, 2) == "A"
        assert host.sheet("s").value(4, 2) == 1
        assert host.sheet("s").value(0, 0) is None

    def test_chart_added(self, sample_readings):
        """Raw packages add their chart."""
        package = compose_raw(build_raw_table(sample_readings, "sinusoid"), "sinusoid-data")
        host = MemoryHost()
        render_package(host, HostSession(), package)

        assert len(host.sheet("sinusoid-data").charts) == 1
        assert host.sheet("sinusoid-data").number_formats[(16, 0)] == "mm/dd/yyyy hh:mm:ss AM/PM"

    def test_host_required(self, status_package):
        """A missing host is an error."""
        with pytest.raises(ValueError):
            render_package(None, HostSession(), status_package)

    def test_session_required(self, status_package):
        """A missing session is an error."""
        with pytest.raises(ValueError):
            render_package(MemoryHost(), None, status_package)


class TestReRender:
    """Tests for rendering the same sheet twice."""

    def test_clears_previous_block(self):
        """A smaller second write leaves no stale cells."""
        host = MemoryHost()
        session = HostSession()
        render_package(host, session, compose_table(Table(["A", "B"], [[1, 2], [3, 4]]), "s"))
        render_package(host, session, compose_table(Table(["C"], [[5]]), "s"))
        sheet = host.sheet("s")

        assert sheet.value(0, 0) == "C"
        assert sheet.value(1, 0) == 5
        assert sheet.value(0, 1) is None
        assert sheet.value(2, 0) is None
        assert (2, 0) not in sheet.styles

    def test_removes_previous_merges_and_charts(self, status_package, sample_readings):
        """Merges and charts of the earlier write are removed."""
        host = MemoryHost()
        session = HostSession()
        raw = compose_raw(build_raw_table(sample_readings, "sinusoid"), "Instances-Status")
        render_package(host, session, raw)
        render_package(host, session, status_package)
        sheet = host.sheet("Instances-Status")

        assert sheet.charts == []
        assert sheet.merges == [CellRange(2, 0, 1, 2)]

    def test_identical_render_is_idempotent(self, status_package):
        """Rendering the same package twice gives the same sheet."""
        host = MemoryHost()
        session = HostSession()
        render_package(host, session, status_package)
        first = dict(host.sheet("Instances-Status").cells)
        render_package(host, session, status_package)
        sheet = host.sheet("Instances-Status")

        assert sheet.cells == first
        assert len(sheet.merges) == 1

    def test_sessions_are_independent(self):
        """A fresh session does not clear earlier writes."""
        host = MemoryHost()
        render_package(host, HostSession(), compose_table(Table(["A", "B"], [[1, 2]]), "s"))
        render_package(host, HostSession(), compose_table(Table(["C"], [[5]]), "s"))

        assert host.sheet("s").value(0, 1) == "B"

    def test_session_records_extent(self, status_package):
        """The session remembers the written rectangle."""
        session = HostSession()
        render_package(MemoryHost(), session, status_package)

        assert session.previous_extent("Instances-Status") == CellRange(0, 0, 4, 2)
        session.forget("Instances-Status")
        assert session.previous_extent("Instances-Status") is None
