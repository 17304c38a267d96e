"""Root fixtures for all tests."""

import os

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear datalink-related env vars and reset config singleton before each test."""
    env_prefixes = (
        "DATALINK_",
        "OUT_DIR",
    )

    for key in list(os.environ.keys()):
        for prefix in env_prefixes:
            if key.startswith(prefix):
                monkeypatch.delenv(key, raising=False)
                break

    # Reset config singleton
    import datalink.env

    datalink.env._config = None

    yield

    # Reset again after test
    datalink.env._config = None


@pytest.fixture
def tmp_out_dir(tmp_path):
    """Create temp directory for rendered output."""
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    return out_dir


@pytest.fixture
def configured_env(tmp_out_dir, monkeypatch):
    """Set up test environment with a temp output directory."""
    monkeypatch.setenv("OUT_DIR", str(tmp_out_dir))
    # Reset config to pick up new values
    import datalink.env

    datalink.env._config = None
    return {"out_dir": tmp_out_dir}


@pytest.fixture
def sample_readings():
    """Two sinusoid readings in the nested "reading" shape, one missing cosine."""
    return [
        {
            "reading": {"sine": 0.5, "cosine": 0.8},
            "timestamp": "2024-01-15 10:30:45.000000",
        },
        {
            "reading": {"sine": 0.7},
            "timestamp": "2024-01-15 10:31:45.000000",
        },
    ]


@pytest.fixture
def sample_snapshot(sample_readings):
    """Snapshot payloads for one instance and two assets."""
    return {
        "instances": {
            "http://edge-1:8081": {
                "ping": {
                    "uptime": 93780,
                    "dataRead": 1200,
                    "dataSent": 1100,
                    "dataPurged": 50,
                    "authenticationOptional": True,
                    "serviceName": "FogLAMP",
                    "hostName": "edge-1",
                    "ipAddresses": ["10.0.0.1", "10.0.0.2"],
                    "health": "green",
                    "safeMode": False,
                    "version": "2.3.0",
                },
                "statistics": [
                    {"key": "READINGS", "value": 1200},
                    {"key": "BUFFERED", "value": 1150},
                    {"key": "DISCARDED", "value": 0},
                    {"key": "UNSENT", "value": 3},
                    {"key": "PURGED", "value": 50},
                    {"key": "UNSNPURGED", "value": 0},
                ],
                "assets": [
                    {"assetCode": "sinusoid", "count": 2},
                    {"assetCode": "random", "count": 0},
                ],
            },
        },
        "assets": {
            "sinusoid": {
                "readings": sample_readings,
                "summary": [
                    {"cosine": {"min": 0.8, "max": 0.8, "average": 0.8}},
                    {"sine": {"min": 0.5, "max": 0.7, "average": 0.6}},
                ],
                "timespan": {
                    "oldest": "2024-01-15 10:30:45.000000",
                    "newest": "2024-01-15 10:31:45.000000",
                },
            },
            "random": {
                "readings": [
                    {"reading": {"random": 4}, "timestamp": "2024-01-15 09:00:00"},
                    {"reading": {"random": 8}, "timestamp": "2024-01-15 12:00:00"},
                ],
                "summary": "unexpected",
                "timespan": {"unexpected": True},
            },
        },
    }
