"""
Unit tests for logging setup.
"""

import logging

import pytest

from yieldrace.utils.logger import YieldRaceLogger, get_logger, setup_logging


@pytest.fixture(autouse=True)
def fresh_logging():
    YieldRaceLogger.reset()
    yield
    YieldRaceLogger.reset()


class TestLogging:
    """Tests for setup_logging and subsystem loggers."""

    def test_console_only(self):
        assert setup_logging(level=logging.INFO) is None
        assert YieldRaceLogger.log_file() is None
        assert len(logging.getLogger("yieldrace").handlers) == 1

    def test_log_file(self, tmp_path):
        path = setup_logging(level=logging.INFO, log_dir=str(tmp_path / "logs"), log_to_file=True)

        get_logger("controller").info("Round 1 started")
        for handler in logging.getLogger("yieldrace").handlers:
            handler.flush()

        assert path == tmp_path / "logs" / "yieldrace.log"
        assert YieldRaceLogger.log_file() == path
        assert "[yieldrace.controller]" in path.read_text()
        assert "Round 1 started" in path.read_text()

    def test_setup_again_changes_level(self, tmp_path):
        setup_logging(level=logging.WARNING)
        path = setup_logging(level=logging.DEBUG, log_dir=str(tmp_path), log_to_file=True)

        handlers = logging.getLogger("yieldrace").handlers
        assert len(handlers) == 2
        assert logging.getLogger("yieldrace").level == logging.DEBUG
        assert path == tmp_path / "yieldrace.log"

    def test_subsystem_name(self):
        assert get_logger("registry").name == "yieldrace.registry"
