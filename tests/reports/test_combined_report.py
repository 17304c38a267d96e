"""Tests for the combined multi-asset report builder."""

import asyncio

import pytest

from datalink.fetch import AssetBundle
from datalink.layout import compose_combined, check_tiling
from datalink.reports import (
    COMBINED_DATAPOINT_HEADERS,
    build_combined_report,
)
from datalink.timevalues import to_grid_date

TS_OLD = "2024-01-15 10:30:45.000000"
TS_NEW = "2024-01-15 11:30:45.000000"
ASSET_LIST = ["b_asset", {"assetCode": "a_asset", "count": 10}, "b_asset", "broken"]


class TestCombinedReport:
    """Tests for build_combined_report with one failing asset."""

    @pytest.mark.asyncio
    async def test_title_band_is_header(self, bundle_fetch):
        """The first block row is the asset-wise title band."""
        report = await build_combined_report(ASSET_LIST, bundle_fetch)

        assert report.headers == ["Asset-wise Summary", "", "", "", "", ""]
        assert report.width == 6

    @pytest.mark.asyncio
    async def test_asset_table(self, bundle_fetch):
        """Transposed asset table, one column per distinct asset."""
        report = await build_combined_report(ASSET_LIST, bundle_fetch)
        rows = report.rows

        assert rows[0] == ["SNo.", 1, 2, 3, "", ""]
        assert rows[1] == ["Assets", "a_asset", "b_asset", "broken", "", ""]
        assert rows[2] == ["Readings", 10, 5, "NA", "", ""]
        assert rows[3][:4] == ["Oldest Reading Timestamp", to_grid_date(TS_OLD), to_grid_date(TS_OLD), "NA"]
        assert rows[4][:4] == ["Newest Reading Timestamp", to_grid_date(TS_NEW), to_grid_date(TS_NEW), "NA"]

    @pytest.mark.asyncio
    async def test_datapoint_table(self, bundle_fetch):
        """Continuous serials, datapoints sorted, failed asset one NA row."""
        report = await build_combined_report(ASSET_LIST, bundle_fetch)
        rows = report.rows

        assert rows[5] == [""] * 6
        assert rows[6][0] == "Datapoint-wise Summary"
        assert rows[7] == COMBINED_DATAPOINT_HEADERS
        assert rows[8:] == [
            [1, "a_asset", "x", 1, 2, 1.5],
            [2, "a_asset", "y", 3, 4, 3.5],
            [3, "b_asset", "z", 0, 0, 0],
            [4, "broken", "NA", "NA", "NA", "NA"],
        ]

    @pytest.mark.asyncio
    async def test_failure_does_not_raise(self, bundle_fetch, capsys):
        """A failed fetch is logged, not raised."""
        report = await build_combined_report(["broken"], bundle_fetch)

        assert report.entries[0].failed is True
        assert "broken" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_regions_tile_block(self, bundle_fetch):
        """Regions cover the block exactly once."""
        report = await build_combined_report(ASSET_LIST, bundle_fetch)
        package = compose_combined(report, "combined", start_row=3, start_col=2)

        assert check_tiling(package)
        assert package.regions[0].row_start == 3
        assert package.regions[0].merge is True

    @pytest.mark.asyncio
    async def test_date_rows(self, bundle_fetch):
        """Oldest and newest rows are flagged as dates."""
        report = await build_combined_report(ASSET_LIST, bundle_fetch)
        block = [report.headers] + report.rows

        assert [block[r][0] for r in report.date_rows] == [
            "Oldest Reading Timestamp",
            "Newest Reading Timestamp",
        ]

    @pytest.mark.asyncio
    async def test_many_assets_widen_block(self):
        """More assets than datapoint columns widen the block."""
        async def fetch(name):
            return AssetBundle(summary={"v": {"min": 1, "max": 1, "average": 1}})

        names = [f"asset{i}" for i in range(8)]
        report = await build_combined_report(names, fetch)

        assert report.width == 9
        assert all(len(row) == 9 for row in report.rows)

    @pytest.mark.asyncio
    async def test_dict_bundles_and_derivation(self, sample_readings):
        """Dict results work and unknown shapes derive from readings."""
        async def fetch(name):
            return {"summary": "odd", "timespan": None, "readings": sample_readings}

        report = await build_combined_report(["sinusoid"], fetch)
        entry = report.entries[0]

        assert entry.reading_count == 2
        assert entry.oldest == to_grid_date("2024-01-15 10:30:45")
        assert sorted(entry.datapoint_stats) == ["cosine", "sine"]

    @pytest.mark.asyncio
    async def test_no_assets(self):
        """An empty asset list gives the no-data block."""
        async def fetch(name):
            raise AssertionError("should not be called")

        report = await build_combined_report([], fetch)
        package = compose_combined(report, "empty")

        assert report.headers == ["No Data"]
        assert report.rows == [["No readings found"]]
        assert [r.kind for r in report.regions] == ["header", "value"]
        assert package.cells == [["No Data"], ["No readings found"]]
        assert package.number_formats == []
        assert check_tiling(package)


class TestCombinedConcurrency:
    """Fetches run concurrently."""

    @pytest.mark.asyncio
    async def test_fetches_overlap(self):
        """Every fetch starts before any finishes."""
        names = ["a", "b", "c"]
        started = 0
        all_started = asyncio.Event()

        async def fetch(name):
            nonlocal started
            started += 1
            if started == len(names):
                all_started.set()
            await all_started.wait()
            return AssetBundle(summary={"v": {"min": 0, "max": 0, "average": 0}})

        report = await asyncio.wait_for(build_combined_report(names, fetch), timeout=2)

        assert [e.asset_name for e in report.entries] == names
