"""Logging configuration for the discovery client."""

from __future__ import annotations

import logging
import logging.handlers
import sys
from dataclasses import dataclass

from .collections import include

LOGGER_NAME = "nvmediscovery"

VALID_LEVELS = ["debug", "info", "warn", "warning", "error", "fatal"]

_PARSE_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

_CONSOLE_FORMAT = "level=%(levelname)s msg=%(message)s"
_FILE_FORMAT = "time=%(asctime)s level=%(levelname)s msg=%(message)s"
_CALLER_FORMAT = " func=%(funcName)s file=%(filename)s:%(lineno)d"


@dataclass
class LoggingConfig:
    """Where and how verbosely the client logs."""

    filename: str = ""
    # seconds until old logs are purged; kept for configuration compatibility
    max_age: float = 0.0
    # maximum size of the log file in megabytes
    max_size: int = 0
    report_caller: bool = False
    level: str = ""

    def is_valid(self) -> None:
        """Raise ValueError if the configured level is not supported."""
        if not include(VALID_LEVELS, self.level):
            raise ValueError(
                "invalid logging.level parameter provided. supported levels: "
                f"[{' '.join(VALID_LEVELS)}], provided: {self.level}"
            )


def _parse_level(level: str) -> int:
    if not level:
        return logging.INFO
    try:
        return _PARSE_LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"not a valid logging level: {level!r}") from None


def _setup(config: LoggingConfig, console_timestamp: bool) -> logging.Logger:
    wanted = _parse_level(config.level)
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(wanted)
    logger.propagate = False

    caller = _CALLER_FORMAT if config.report_caller else ""

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(max(wanted, logging.INFO))
    console_format = _FILE_FORMAT if console_timestamp else _CONSOLE_FORMAT
    console.setFormatter(logging.Formatter(console_format + caller))
    logger.addHandler(console)

    if config.filename:
        file_handler = logging.handlers.RotatingFileHandler(
            config.filename,
            maxBytes=max(config.max_size, 0) * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(wanted)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT + caller))
        logger.addHandler(file_handler)
    return logger


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """Configure console and optional file logging without console timestamps."""
    return _setup(config, console_timestamp=False)


def setup_logging_with_console_timestamp(config: LoggingConfig) -> logging.Logger:
    """Configure console and optional file logging with console timestamps."""
    return _setup(config, console_timestamp=True)