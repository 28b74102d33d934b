"""Utility helpers exposed by voltvault."""

from .logbook import configure_logging, get_logger
from .paths import default_store_path, state_dir
from .settings import StoreSettings

__all__ = [
    "StoreSettings",
    "configure_logging",
    "default_store_path",
    "get_logger",
    "state_dir",
]
