"""Tests for logging setup."""

import logging
import logging.handlers

import pytest

from sysdash.logger import ROOT_LOGGER_NAME, get_logger, setup_logging


@pytest.fixture
def restore_package_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def test_get_logger_namespaces_under_package():
    assert get_logger("sysdash.monitor").name == "sysdash.monitor"
    assert get_logger("custom").name == "sysdash.custom"
    assert get_logger().name == "sysdash"


def test_setup_console_only(restore_package_logger):
    logger = setup_logging("debug")
    assert logger.level == logging.DEBUG
    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]


def test_setup_is_idempotent(restore_package_logger):
    setup_logging("INFO")
    logger = setup_logging("INFO")
    assert len(logger.handlers) == 1


def test_invalid_level_uses_info(restore_package_logger):
    assert setup_logging("chatty").level == logging.INFO


def test_file_logging(tmp_path, restore_package_logger):
    log_file = tmp_path / "logs" / "sysdash.log"
    logger = setup_logging("INFO", str(log_file))
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)

    get_logger("sysdash.test").info("hello from the collector")
    for handler in logger.handlers:
        handler.flush()
    assert "hello from the collector" in log_file.read_text(encoding="utf-8")
