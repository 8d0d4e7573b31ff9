"""Unit tests for core.logger."""

import logging

from arena_trader.core.logger import setup_logging


def test_file_and_console_handlers(tmp_path):
    root = setup_logging("DEBUG", tmp_path / "logs", "run.log")
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    logging.getLogger("arena_trader.test").info("hello")
    for handler in root.handlers:
        handler.flush()
    assert "hello" in (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")


def test_repeat_setup_replaces_handlers(tmp_path):
    setup_logging("INFO", tmp_path, "a.log")
    root = setup_logging("WARNING")
    assert len(root.handlers) == 1
    assert root.level == logging.WARNING
    assert logging.getLogger("urllib3").level == logging.WARNING
