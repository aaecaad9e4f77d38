"""Logging initialization with labeled prefixes.

Every console line starts with one of INFO|WARN|ERROR|SUMMARY (DEBUG in
--debug mode). Standard library logging only; the structured failure log
lives in invoice_console.logging.error_log.
"""

from __future__ import annotations

import logging
import sys

__all__ = [
    "APP_LOGGER_NAME",
    "setup_logging",
    "set_level",
    "get_logger",
    "log_summary",
    "reset_logging",
]

APP_LOGGER_NAME = "invoice_console"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter producing ``LABEL message`` lines.

    DEBUG lines from module loggers also name the module relative to the
    package (``DEBUG [services.categorizer] ...``).
    """

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
        prefix = f"{APP_LOGGER_NAME}."
        if record.levelno <= logging.DEBUG and record.name.startswith(prefix):
            return f"{label} [{record.name[len(prefix):]}] {record.getMessage()}"
        return f"{label} {record.getMessage()}"


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure the application logger (idempotent).

    Module loggers (``logging.getLogger(__name__)`` under ``invoice_console``)
    propagate into this logger and share its labeled stdout handler.

    Args:
        debug: Also emit DEBUG lines (applies to an already configured logger too)

    Returns:
        Configured application logger
    """
    global _logger

    if _logger is None:
        logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
        logger = logging.getLogger(APP_LOGGER_NAME)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(LabeledFormatter())
        logger.addHandler(handler)
        # root へ流さない (二重出力防止)
        logger.propagate = False
        _logger = logger

    set_level(logging.DEBUG if debug else logging.INFO)
    return _logger


def set_level(level: int) -> None:
    """Switch the application logger and its handlers to ``level``."""
    logger = get_logger()
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _logger = None
