"""Filesystem path helpers for voltvault state."""

from __future__ import annotations

import os
from pathlib import Path

HOME_ENV = "VOLTVAULT_HOME"
STORE_PATH_ENV = "VOLTVAULT_STORE_PATH"


def state_dir() -> Path:
    """Return the directory used for persistent voltvault state.

    The location defaults to ``~/.voltvault`` but can be overridden via the
    ``VOLTVAULT_HOME`` environment variable. The path is expanded and
    resolved so callers always receive an absolute location.
    """

    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".voltvault"


def default_store_path() -> Path:
    """Return the backing store file, honouring ``VOLTVAULT_STORE_PATH``."""

    override = os.environ.get(STORE_PATH_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return state_dir() / "secrets.json"


__all__ = ["HOME_ENV", "STORE_PATH_ENV", "default_store_path", "state_dir"]
