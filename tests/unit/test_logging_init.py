from __future__ import annotations

import logging
from io import StringIO

from invoice_console.logging.init import (
    APP_LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    reset_logging,
    set_level,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == APP_LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1
    assert get_logger() is first


def test_labeled_prefixes():
    out = StringIO()
    logger = logging.getLogger("test_invoice_console_labels")
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    handler = logging.StreamHandler(out)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "Test summary message")

    lines = out.getvalue().strip().split("\n")
    assert lines == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY Test summary message",
    ]


def test_module_loggers_share_app_handler(capsys):
    setup_logging()
    logging.getLogger("invoice_console.services.reconciliation").warning("duplicate check failed: x")
    log_summary("invoices=0")
    out = capsys.readouterr().out
    assert "WARN duplicate check failed: x" in out
    assert "SUMMARY invoices=0" in out


def test_reset_logging_restores_logger():
    setup_logging()
    reset_logging()
    logger = logging.getLogger(APP_LOGGER_NAME)
    assert logger.handlers == []
    assert logger.propagate is True


def test_setup_logging_debug_switches_levels(capsys):
    logger = setup_logging(debug=True)
    assert logger.level == logging.DEBUG
    assert logger.handlers[0].level == logging.DEBUG
    logger.debug("root debug")
    logging.getLogger("invoice_console.services.categorizer").debug("untallied type")
    out = capsys.readouterr().out
    assert "DEBUG root debug" in out
    assert "DEBUG [services.categorizer] untallied type" in out


def test_set_level_back_to_info_hides_debug(capsys):
    setup_logging(debug=True)
    set_level(logging.INFO)
    get_logger().debug("hidden")
    assert "hidden" not in capsys.readouterr().out
