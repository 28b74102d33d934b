from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from voltvault.core import SnapshotSecretsMetadataStore  # noqa: E402


@pytest.fixture()
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("VOLTVAULT_HOME", str(tmp_path))
    monkeypatch.delenv("VOLTVAULT_STORE_PATH", raising=False)
    monkeypatch.delenv("VOLTVAULT_AUTOSAVE_INTERVAL_MS", raising=False)
    monkeypatch.delenv("VOLTVAULT_BASE_URL", raising=False)
    return tmp_path


@pytest.fixture()
def store_path(isolated_home: Path) -> Path:
    return isolated_home / "secrets.json"


@pytest.fixture()
def store(store_path: Path) -> Iterator[SnapshotSecretsMetadataStore]:
    instance = SnapshotSecretsMetadataStore(store_path, autosave=False)
    instance.init()
    yield instance
    instance.close()
