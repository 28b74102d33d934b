"""Tests for the JSON snapshot database."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import List, Optional

import pytest

from voltvault.errors import StorageIOError
from voltvault.storage import SNAPSHOT_FORMAT, SnapshotDatabase


def test_load_missing_file_is_first_run(tmp_path: Path) -> None:
    db = SnapshotDatabase(tmp_path / "db.json", autosave=False)
    assert db.load() is False
    assert db.get_collection("anything") is None


def test_save_and_reload(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "db.json"
    db = SnapshotDatabase(path, autosave=False)
    coll = db.add_collection("$SECRETS_COLLECTION$", unique="secretName")
    coll.insert({"secretName": "alpha", "versions": []})
    assert db.dirty
    db.save()
    assert not db.dirty

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["format"] == SNAPSHOT_FORMAT
    assert on_disk["collections"]["$SECRETS_COLLECTION$"]["unique"] == "secretName"

    reopened = SnapshotDatabase(path, autosave=False)
    assert reopened.load() is True
    restored = reopened.get_collection("$SECRETS_COLLECTION$")
    assert restored is not None
    assert restored.find_by_name("alpha") == {"secretName": "alpha", "versions": []}


def test_add_collection_is_idempotent(tmp_path: Path) -> None:
    db = SnapshotDatabase(tmp_path / "db.json", autosave=False)
    first = db.add_collection("c", unique="secretName")
    assert db.add_collection("c", unique="secretName") is first


def test_corrupt_snapshot_raises(tmp_path: Path) -> None:
    path = tmp_path / "db.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageIOError):
        SnapshotDatabase(path, autosave=False).load()

    path.write_text(json.dumps({"format": 99, "collections": {}}), encoding="utf-8")
    with pytest.raises(StorageIOError):
        SnapshotDatabase(path, autosave=False).load()


def test_duplicate_documents_in_snapshot_raise(tmp_path: Path) -> None:
    path = tmp_path / "db.json"
    payload = {
        "format": SNAPSHOT_FORMAT,
        "collections": {"c": {"unique": "secretName", "documents": [{"secretName": "a"}, {"secretName": "a"}]}},
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(StorageIOError):
        SnapshotDatabase(path, autosave=False).load()


def test_save_failure_is_wrapped(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    db = SnapshotDatabase(blocker / "db.json", autosave=False)
    db.add_collection("c", unique="secretName").insert({"secretName": "a"})
    with pytest.raises(StorageIOError):
        db.save()

    outcomes: List[Optional[BaseException]] = []
    db.on_flush = outcomes.append
    error = db.flush()
    assert isinstance(error, StorageIOError)
    assert outcomes == [error]
    assert db.dirty


def test_autosave_flushes_in_background(tmp_path: Path) -> None:
    path = tmp_path / "db.json"
    flushed = threading.Event()
    outcomes: List[Optional[BaseException]] = []

    def _on_flush(error: Optional[BaseException]) -> None:
        outcomes.append(error)
        if path.exists():
            flushed.set()

    db = SnapshotDatabase(path, autosave=True, autosave_interval=0.05, on_flush=_on_flush)
    db.add_collection("c", unique="secretName").insert({"secretName": "a"})
    db.start_autosave()
    try:
        assert flushed.wait(timeout=5)
    finally:
        db.stop_autosave()
    assert outcomes and all(error is None for error in outcomes)
    assert not db.dirty
    documents = json.loads(path.read_text(encoding="utf-8"))["collections"]["c"]["documents"]
    assert documents == [{"secretName": "a"}]


def test_autosave_survives_failing_callback(tmp_path: Path) -> None:
    path = tmp_path / "db.json"
    calls: List[Optional[BaseException]] = []
    first_call = threading.Event()
    later_saved = threading.Event()

    def _on_flush(error: Optional[BaseException]) -> None:
        calls.append(error)
        if len(calls) == 1:
            first_call.set()
            raise RuntimeError("callback exploded")
        if path.exists():
            documents = json.loads(path.read_text(encoding="utf-8"))["collections"]["c"]["documents"]
            if {"secretName": "later"} in documents:
                later_saved.set()

    db = SnapshotDatabase(path, autosave=True, autosave_interval=0.02, on_flush=_on_flush)
    collection = db.add_collection("c", unique="secretName")
    collection.insert({"secretName": "first"})
    db.start_autosave()
    try:
        assert first_call.wait(timeout=5)
        collection.insert({"secretName": "later"})
        assert later_saved.wait(timeout=5)
        assert db._autosaver is not None and db._autosaver.is_alive()
    finally:
        db.stop_autosave()


def test_flush_returns_outcome_when_callback_raises(tmp_path: Path) -> None:
    def _on_flush(error: Optional[BaseException]) -> None:
        raise RuntimeError("callback exploded")

    db = SnapshotDatabase(tmp_path / "db.json", autosave=False, on_flush=_on_flush)
    db.add_collection("c", unique="secretName").insert({"secretName": "a"})
    assert db.flush() is None
    assert not db.dirty


def test_close_flushes_and_erase_removes(tmp_path: Path) -> None:
    path = tmp_path / "db.json"
    db = SnapshotDatabase(path, autosave=True, autosave_interval=60)
    db.add_collection("c", unique="secretName").insert({"secretName": "a"})
    db.start_autosave()
    db.close()
    assert path.exists()
    assert db.get_collection("c") is None

    db.erase()
    assert not path.exists()
    db.erase()


def test_interval_must_be_positive(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        SnapshotDatabase(tmp_path / "db.json", autosave_interval=0)
