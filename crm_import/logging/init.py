from __future__ import annotations

import logging
import sys

"""Logging setup with labeled prefixes (INFO|WARN|ERROR|SUMMARY).

All package modules log through ``logging.getLogger(__name__)``; their
records propagate to the ``crm_import`` logger configured here, which writes
``LABEL message`` lines to stdout.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "setup_logging",
    "get_logger",
    "set_debug",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "crm_import"

# between INFO (20) and WARNING (30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``LABEL message``; debug records also carry the emitting module."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        message = record.getMessage()
        if record.levelno == logging.DEBUG:
            message = f"[{record.name}] {message}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{label} {message}"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure the package logger once; later calls return the same logger."""
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # root へ伝播させない (二重出力防止)
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def set_debug(enabled: bool = True) -> None:
    level = logging.DEBUG if enabled else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger. Test helper."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
    _logger = None
