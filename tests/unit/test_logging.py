"""Unit tests for Loguru setup."""

import logging

import pytest
from loguru import logger

from seriesledger.core.logging import InterceptHandler, setup_logging


@pytest.fixture
def restore_logging():
    handlers = logging.root.handlers[:]
    level = logging.root.level
    yield
    logger.remove()
    logging.root.handlers = handlers
    logging.root.setLevel(level)


def test_setup_creates_log_files(tmp_path, restore_logging):
    setup_logging(log_dir=str(tmp_path / "logs"), debug=True)

    logging.getLogger("seriesledger.services.subscription_checker").info("Submitted Show S01E01")
    logging.getLogger("seriesledger.database").info("Database initialized")
    logger.complete()

    assert isinstance(logging.root.handlers[0], InterceptHandler)
    assert (tmp_path / "logs" / "seriesledger.log").exists()
    assert (tmp_path / "logs" / "activity.log").exists()


def test_client_libraries_are_quieted(tmp_path, restore_logging):
    setup_logging(log_dir=str(tmp_path))
    assert logging.getLogger("qbittorrentapi").level == logging.WARNING
    assert logging.getLogger("transmission_rpc").level == logging.WARNING
