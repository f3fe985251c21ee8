"""Tests for setup_logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from steamshortcuts.core.logging import logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    saved_level, saved_handlers = logger.level, list(logger.handlers)
    logger.handlers.clear()
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


class TestSetupLogging:
    def test_accepts_level_names(self) -> None:
        setup_logging("debug")
        assert logger.level == logging.DEBUG

    def test_unknown_level_name_falls_back_to_info(self) -> None:
        setup_logging("chatty")
        assert logger.level == logging.INFO

    def test_second_call_only_adjusts_level(self) -> None:
        setup_logging(logging.INFO)
        setup_logging(logging.WARNING)
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.WARNING

    def test_file_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(logging.INFO, log_file)
        logging.getLogger("steamshortcuts.test").info("hello file")
        for handler in logger.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text(encoding="utf-8")
