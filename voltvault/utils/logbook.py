"""Rotating logger emitting structured JSON lines."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .paths import state_dir

LOGGER_NAME = "voltvault"


def log_file() -> Path:
    return state_dir() / "logs" / "voltvault.log"


def configure_logging(path: Optional[Path] = None, level: int = logging.INFO, console: bool = True) -> logging.Logger:
    """Attach the rotating file handler (and optionally stderr) to the root voltvault logger.

    Calling this more than once is harmless; handlers are only added the first
    time. The library itself never calls it, so embedding applications keep
    full control over logging.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    target = path or log_file()
    target.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    file_handler = RotatingFileHandler(target, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.WARNING)
        logger.addHandler(console_handler)

    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


__all__ = ["LOGGER_NAME", "configure_logging", "get_logger", "log_file"]
