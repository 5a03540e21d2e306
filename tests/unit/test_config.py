"""
Unit tests for competition configuration.
"""

import os

import pytest

from yieldrace.core.config import CompetitionConfig, load_config


class TestCompetitionConfig:
    """Tests for CompetitionConfig validation."""

    def test_defaults(self):
        config = CompetitionConfig()

        assert config.termination == "count"
        assert (config.min_bid_events, config.max_bid_events) == (5, 10)
        assert (config.arrival_interval_min, config.arrival_interval_max) == (0.8, 2.0)
        assert (config.margin_min, config.margin_max) == (0.002, 0.005)
        assert config.apy_precision == 4

    @pytest.mark.parametrize("kwargs", [
        {"margin_min": 0.01, "margin_max": 0.005},
        {"confidence_max": 1.5},
        {"arrival_interval_min": 3.0},
        {"termination": "never"},
        {"min_bid_events": 0},
        {"min_bid_events": 11},
        {"round_timeout": 0},
        {"grace_window": -1.0},
        {"apy_precision": -1},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            CompetitionConfig(**kwargs)

    def test_timeout_can_be_disabled(self):
        assert CompetitionConfig(round_timeout=None).round_timeout is None


class TestLoadConfig:
    """Tests for load_config."""

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("YIELDRACE_MIN_BID_EVENTS", "3")
        monkeypatch.setenv("YIELDRACE_MAX_BID_EVENTS", "4")
        monkeypatch.setenv("YIELDRACE_ENFORCE_MIN_APY", "true")
        monkeypatch.setenv("YIELDRACE_ROUND_TIMEOUT", "none")
        monkeypatch.setenv("YIELDRACE_ARRIVAL_INTERVAL_MAX", "1.5")

        config = load_config()

        assert config.min_bid_events == 3
        assert config.max_bid_events == 4
        assert config.enforce_min_apy is True
        assert config.round_timeout is None
        assert config.arrival_interval_max == 1.5

    def test_keyword_overrides_win(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("YIELDRACE_TERMINATION", "elapsed")

        config = load_config(termination="grace")

        assert config.termination == "grace"

    def test_invalid_environment_value(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("YIELDRACE_MIN_BID_EVENTS", "many")

        with pytest.raises(ValueError, match="YIELDRACE_MIN_BID_EVENTS"):
            load_config()

    def test_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("YIELDRACE_GRACE_WINDOW=7.5\n")

        try:
            config = load_config(env_file=str(env_file))
        finally:
            os.environ.pop("YIELDRACE_GRACE_WINDOW", None)

        assert config.grace_window == 7.5
