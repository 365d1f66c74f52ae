"""Tests for logging setup."""

import logging

import pytest

from phonesecure import config
from phonesecure.utils.logger import setup_logging


@pytest.fixture
def root_logger(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "LOG_FILE", str(tmp_path / "logs" / "console.log"))
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers[len(handlers):]:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_debug_flag_overrides_log_level(root_logger, monkeypatch):
    monkeypatch.setattr(config, "DEBUG", True)
    monkeypatch.setattr(config, "LOG_LEVEL", "WARNING")

    setup_logging()

    assert root_logger.level == logging.DEBUG


def test_log_level_and_file(root_logger, monkeypatch, tmp_path):
    monkeypatch.setattr(config, "DEBUG", False)
    monkeypatch.setattr(config, "LOG_LEVEL", "WARNING")

    setup_logging()

    assert root_logger.level == logging.WARNING
    assert (tmp_path / "logs" / "console.log").exists()
