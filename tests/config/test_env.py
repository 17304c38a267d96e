"""Tests for environment variable parsing and Config class."""

from pathlib import Path

import pytest

from datalink.env import (
    Config,
    get_bool,
    get_config,
    get_float,
    get_int,
    get_path,
)


class TestGetters:
    """Tests for the typed env getters."""

    def test_get_int_leading_zeros(self, monkeypatch):
        """Leading zeros work (not octal)."""
        monkeypatch.setenv("DATALINK_TEST_INT", "042")
        assert get_int("DATALINK_TEST_INT", 0) == 42

    def test_get_int_invalid_falls_back(self, monkeypatch):
        """Non-numeric value returns default."""
        monkeypatch.setenv("DATALINK_TEST_INT", "abc")
        assert get_int("DATALINK_TEST_INT", 7) == 7

    def test_get_float_invalid_falls_back(self, monkeypatch):
        """Non-numeric value returns default."""
        monkeypatch.setenv("DATALINK_TEST_FLOAT", "1.2.3")
        assert get_float("DATALINK_TEST_FLOAT", 0.5) == 0.5

    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("true", True), ("YES", True), ("on", True),
        ("0", False), ("no", False), ("off", False),
    ])
    def test_get_bool_variants(self, monkeypatch, value, expected):
        """Common truthy and falsy spellings are recognized."""
        monkeypatch.setenv("DATALINK_TEST_BOOL", value)
        assert get_bool("DATALINK_TEST_BOOL") is expected

    def test_get_path_resolves(self, monkeypatch, tmp_path):
        """Path is made absolute."""
        monkeypatch.setenv("DATALINK_TEST_PATH", str(tmp_path / "x" / ".." / "y"))
        assert get_path("DATALINK_TEST_PATH", ".") == (tmp_path / "y").resolve()


class TestConfig:
    """Tests for Config defaults and overrides."""

    def test_defaults(self):
        """Defaults apply when nothing is set."""
        cfg = Config()
        assert cfg.datalink_debug is False
        assert cfg.retry_attempts == 2
        assert cfg.retry_backoff_s == 1.0
        assert cfg.retry_backoff_max_s == 8.0
        assert cfg.chart_band_rows == 15
        assert cfg.sheet_name_max == 31
        assert cfg.default_limit == 100
        assert cfg.out_dir == Path("./out").resolve()

    def test_overrides(self, monkeypatch, tmp_path):
        """Environment values override defaults."""
        monkeypatch.setenv("DATALINK_DEBUG", "1")
        monkeypatch.setenv("DATALINK_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("DATALINK_CHART_BAND_ROWS", "20")
        monkeypatch.setenv("OUT_DIR", str(tmp_path))

        cfg = Config()

        assert cfg.datalink_debug is True
        assert cfg.retry_attempts == 5
        assert cfg.chart_band_rows == 20
        assert cfg.out_dir == tmp_path.resolve()

    def test_retry_attempts_at_least_one(self, monkeypatch):
        """Zero or negative attempts are raised to one."""
        monkeypatch.setenv("DATALINK_RETRY_ATTEMPTS", "0")
        assert Config().retry_attempts == 1

    def test_negative_band_clamped(self, monkeypatch):
        """Negative chart band becomes zero."""
        monkeypatch.setenv("DATALINK_CHART_BAND_ROWS", "-3")
        assert Config().chart_band_rows == 0

    def test_get_config_singleton(self):
        """get_config returns the same instance until reset."""
        assert get_config() is get_config()
