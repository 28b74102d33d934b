"""Runtime settings for the secret metadata store."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .paths import default_store_path

AUTOSAVE_INTERVAL_ENV = "VOLTVAULT_AUTOSAVE_INTERVAL_MS"
BASE_URL_ENV = "VOLTVAULT_BASE_URL"

DEFAULT_AUTOSAVE_INTERVAL_MS = 5000


@dataclass(frozen=True)
class StoreSettings:
    """Settings resolved from the environment for a store instance."""

    store_path: Path = field(default_factory=default_store_path)
    autosave: bool = True
    autosave_interval_ms: int = DEFAULT_AUTOSAVE_INTERVAL_MS
    base_url: Optional[str] = None

    @property
    def autosave_interval(self) -> float:
        return self.autosave_interval_ms / 1000.0

    @classmethod
    def from_env(cls, store_path: Optional[Path] = None) -> "StoreSettings":
        raw_interval = os.environ.get(AUTOSAVE_INTERVAL_ENV, "").strip()
        interval = DEFAULT_AUTOSAVE_INTERVAL_MS
        if raw_interval:
            try:
                interval = int(raw_interval)
            except ValueError as exc:
                raise ValueError(f"{AUTOSAVE_INTERVAL_ENV} must be an integer, got {raw_interval!r}") from exc
            if interval <= 0:
                raise ValueError(f"{AUTOSAVE_INTERVAL_ENV} must be positive")
        base_url = os.environ.get(BASE_URL_ENV) or None
        return cls(
            store_path=store_path or default_store_path(),
            autosave_interval_ms=interval,
            base_url=base_url.rstrip("/") if base_url else None,
        )


__all__ = [
    "AUTOSAVE_INTERVAL_ENV",
    "BASE_URL_ENV",
    "DEFAULT_AUTOSAVE_INTERVAL_MS",
    "StoreSettings",
]
