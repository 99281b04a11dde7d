"""Centralize logger creation and prefixed progress reporting.

'why': provide a unified logging approach configured once via settings
"""
from __future__ import annotations

import logging
from typing import Protocol


_LOGGER_NAME = "add_api_key"
_logger: logging.Logger | None = None


class ReportSink(Protocol):
    """Anything that accepts a finished progress line."""

    def log(self, message: str) -> None: ...


def get_logger() -> logging.Logger:
    """Return the package logger, creating it if necessary."""

    global _logger
    if _logger is not None:
        return _logger
    logger = logging.getLogger(_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s add_api_key: %(message)s",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False
    _logger = logger
    return logger


def set_log_level(level: str) -> None:
    """Apply the provided log level to the package logger."""

    logger = get_logger()
    levels = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
    }
    logger.setLevel(levels.get(level.upper(), logging.INFO))


class Reporter:
    """Emit `"{prefix}: {message}"` lines to a sink or the package logger.

    'why': keep every progress line attributable to the add or remove run
    """

    def __init__(self, prefix: str, sink: ReportSink | None = None) -> None:
        self._prefix = prefix
        self._sink = sink

    @property
    def prefix(self) -> str:
        return self._prefix

    def info(self, message: str) -> None:
        self._emit(logging.INFO, message)

    def warning(self, message: str) -> None:
        self._emit(logging.WARNING, message)

    def error(self, message: str) -> None:
        self._emit(logging.ERROR, message)

    def _emit(self, level: int, message: str) -> None:
        line = f"{self._prefix}: {message}"
        if self._sink is None:
            get_logger().log(level, line)
            return
        self._sink.log(line)
