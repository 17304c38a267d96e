"""Fixtures for report builder tests."""

import pytest

from datalink.fetch import AssetBundle

TS_OLD = "2024-01-15 10:30:45.000000"
TS_NEW = "2024-01-15 11:30:45.000000"


@pytest.fixture
def summary_list_payload():
    """Summary endpoint response: list of single-key objects."""
    return [
        {"sine": {"min": -1, "max": 1, "average": 0.1}},
        {"cosine": {"minimum": -0.5, "maximum": 0.5, "avg": 0}},
    ]


@pytest.fixture
def timespan_payload():
    """Timespan endpoint response."""
    return {"oldest": TS_OLD, "newest": TS_NEW}


@pytest.fixture
def asset_bundles():
    """Bundles for a combined report; "broken" fails to fetch."""
    return {
        "a_asset": AssetBundle(
            summary=[
                {"y": {"min": 3, "max": 4, "average": 3.5}},
                {"x": {"min": 1, "max": 2, "average": 1.5}},
            ],
            timespan={"oldest": TS_OLD, "newest": TS_NEW},
        ),
        "b_asset": AssetBundle(
            summary={"z": {"min": 0, "max": 0, "average": 0}},
            timespan={"oldest": TS_OLD, "newest": TS_NEW, "count": 5},
        ),
    }


@pytest.fixture
def bundle_fetch(asset_bundles):
    """per_asset_fetch over asset_bundles; unknown assets raise."""
    async def fetch(name):
        if name not in asset_bundles:
            raise RuntimeError(f"fetch failed for {name}")
        return asset_bundles[name]

    return fetch
