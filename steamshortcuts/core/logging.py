"""Centralized logging configuration for Steam Shortcut Manager.

Provides a pre-configured logger with console output and optional file logging.
All modules log through a child of the ``steamshortcuts`` logger instead of
using print().
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

__all__ = ["logger", "setup_logging"]

logger = logging.getLogger("steamshortcuts")


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Path | None = None,
) -> None:
    """Configure the package logger.

    Calling this more than once only adjusts the level; handlers are
    attached on the first call.

    Args:
        level: The logging level, as a number or a name like "DEBUG".
        log_file: Optional path to a log file. If provided, logs will
            also be written to this file.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(level)
        return

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
