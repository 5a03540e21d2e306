"""
Centralized logging configuration for YieldRace.

Console output goes through colorlog; a plain-text log file can be
added on request. Each subsystem (registry, bidder, controller, stats)
logs under its own ``yieldrace.<name>`` logger.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

LOG_FILE_NAME = "yieldrace.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
        datefmt=DATE_FORMAT,
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
    ))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(exist_ok=True, parents=True)
    handler = logging.FileHandler(path)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
        datefmt=DATE_FORMAT,
    ))
    return handler


class YieldRaceLogger:
    """Owns the handlers attached to the ``yieldrace`` logger"""

    _initialized = False
    _log_file: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
    ) -> Optional[Path]:
        """
        Setup logging configuration.

        Calling it again only changes the level, and adds the file sink
        if it was not enabled before.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_dir: Directory for the log file. If None, uses ./logs
            log_to_file: Whether to also write logs to LOG_FILE_NAME

        Returns:
            Path of the active log file, if any
        """
        root_logger = logging.getLogger("yieldrace")
        root_logger.setLevel(level)

        if cls._initialized:
            for handler in root_logger.handlers:
                handler.setLevel(level)
        else:
            root_logger.handlers.clear()
            root_logger.addHandler(_console_handler(level))
            cls._initialized = True

        if log_to_file and cls._log_file is None:
            cls._log_file = Path(log_dir or "logs") / LOG_FILE_NAME
            root_logger.addHandler(_file_handler(cls._log_file, level))

        return cls._log_file

    @classmethod
    def log_file(cls) -> Optional[Path]:
        return cls._log_file

    @classmethod
    def reset(cls) -> None:
        """Detach and close every handler so setup() starts over."""
        root_logger = logging.getLogger("yieldrace")
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        cls._initialized = False
        cls._log_file = None

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific subsystem.

        Args:
            name: Subsystem name (e.g., 'controller', 'registry')
        """
        return logging.getLogger(f"yieldrace.{name}")


def get_logger(name: str) -> logging.Logger:
    return YieldRaceLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
) -> Optional[Path]:
    """Setup logging configuration"""
    return YieldRaceLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)
