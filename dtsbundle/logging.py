"""Logging setup for dtsbundle runs.

Progress lines ("processing:", one line per bundled file, "output to ...") are
emitted at INFO and printed bare; DEBUG carries the resolved settings and only
shows with ``--verbose``. A log file, when requested, always records the full
DEBUG trace with timestamps.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "dtsbundle"


class _ConsoleFormatter(logging.Formatter):
    """Prints progress messages as-is and prefixes anything louder or quieter."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno == logging.INFO:
            return message
        return f"{record.levelname.lower()}: {message}"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the dtsbundle hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Route dtsbundle logs to stderr and, optionally, to `log_file`."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(_ConsoleFormatter("%(message)s"))
    logger.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
