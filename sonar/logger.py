"""Verbosity levels and logging setup for the command line tool."""

from __future__ import annotations

import enum
import logging
import sys
import traceback
from types import TracebackType

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOGGER_NAME = "sonar"


class Level(enum.Enum):
    """Log verbosity, from least to most chatty."""

    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"

    def to_logging(self) -> int:
        """Return the matching :mod:`logging` level number."""
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS = {
    Level.ERROR: logging.ERROR,
    Level.WARN: logging.WARNING,
    Level.INFO: logging.INFO,
    Level.DEBUG: logging.DEBUG,
    Level.TRACE: TRACE,
}

_VERBOSITY = [Level.ERROR, Level.WARN, Level.INFO, Level.DEBUG]


def level_from_verbosity(value: int) -> Level:
    """Map a count of ``-v`` flags to a level; anything past 3 is trace."""
    if value < 0:
        raise ValueError("verbosity cannot be negative")
    if value < len(_VERBOSITY):
        return _VERBOSITY[value]
    return Level.TRACE


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    logger = logging.getLogger(LOGGER_NAME)
    message = str(exc) or "None"
    frames = traceback.extract_tb(tb) if tb is not None else []
    if frames:
        last = frames[-1]
        logger.error(
            "panic: message=%s file=%s line=%s column=%s",
            message,
            last.filename,
            last.lineno,
            getattr(last, "colno", None),
        )
    else:
        logger.error("panic: message=%s: %s", exc_type.__name__, message)


def register(level: Level) -> logging.Logger:
    """Configure the package logger at ``level`` and log uncaught exceptions."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.to_logging())
    if not any(getattr(h, "_sonar_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)5s %(name)s: %(message)s")
        )
        handler._sonar_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    sys.excepthook = _log_uncaught
    return logger