"""JSON snapshot persistence for indexed collections."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..errors import StorageIOError
from ..utils.logbook import get_logger
from .collection import IndexedCollection

SNAPSHOT_FORMAT = 1

FlushCallback = Callable[[Optional[BaseException]], None]

logger = get_logger("storage")


@dataclass
class SnapshotDatabase:
    """Hold named :class:`IndexedCollection` objects and persist them as JSON.

    Mutations land in memory immediately. Durability is decoupled from them:
    a daemon thread flushes dirty collections every ``autosave_interval``
    seconds, and :meth:`save` / :meth:`close` flush explicitly. Up to one
    interval of committed work can be lost if the process dies abnormally.
    """

    path: Path
    autosave: bool = True
    autosave_interval: float = 5.0
    on_flush: Optional[FlushCallback] = None
    _collections: Dict[str, IndexedCollection] = field(init=False, default_factory=dict, repr=False)
    _save_lock: threading.Lock = field(init=False, default_factory=threading.Lock, repr=False)
    _stop: threading.Event = field(init=False, default_factory=threading.Event, repr=False)
    _autosaver: Optional[threading.Thread] = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if self.autosave_interval <= 0:
            raise ValueError("autosave_interval must be positive")

    # -- collections ---------------------------------------------------
    def get_collection(self, name: str) -> Optional[IndexedCollection]:
        return self._collections.get(name)

    def add_collection(self, name: str, *, unique: str) -> IndexedCollection:
        existing = self._collections.get(name)
        if existing is not None:
            return existing
        collection = IndexedCollection(name, unique)
        self._collections[name] = collection
        return collection

    @property
    def dirty(self) -> bool:
        return any(collection.dirty for collection in self._collections.values())

    # -- persistence ---------------------------------------------------
    def load(self) -> bool:
        """Populate collections from disk.

        Returns ``False`` when the snapshot file does not exist yet, which is a
        normal first run rather than an error.
        """

        if not self.path.exists():
            return False
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StorageIOError(f"snapshot {self.path} is not valid JSON") from exc
        except OSError as exc:
            raise StorageIOError(f"failed to read snapshot {self.path}") from exc
        if not isinstance(payload, dict) or payload.get("format") != SNAPSHOT_FORMAT:
            raise StorageIOError(f"snapshot {self.path} has an unsupported format")
        collections = payload.get("collections", {})
        if not isinstance(collections, dict):
            raise StorageIOError(f"snapshot {self.path} has malformed collections")
        loaded: Dict[str, IndexedCollection] = {}
        for name, body in collections.items():
            unique = body.get("unique") if isinstance(body, dict) else None
            documents = body.get("documents", []) if isinstance(body, dict) else None
            if not isinstance(unique, str) or not isinstance(documents, list):
                raise StorageIOError(f"collection {name!r} in {self.path} is malformed")
            try:
                loaded[name] = IndexedCollection.from_documents(name, unique, documents)
            except (ValueError, RuntimeError) as exc:
                raise StorageIOError(f"collection {name!r} in {self.path} is corrupt") from exc
        self._collections = loaded
        logger.info("loaded snapshot %s with collections %s", self.path, sorted(loaded))
        return True

    def save(self) -> None:
        """Write every collection to disk atomically."""

        with self._save_lock:
            counters: Dict[str, int] = {}
            body: Dict[str, Any] = {}
            for name, collection in self._collections.items():
                counters[name] = collection.changes
                body[name] = {"unique": collection.unique_key, "documents": collection.documents()}
            payload = {"format": SNAPSHOT_FORMAT, "collections": body}
            staging = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                staging.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
                os.replace(staging, self.path)
            except (OSError, TypeError, ValueError) as exc:
                raise StorageIOError(f"failed to write snapshot {self.path}") from exc
            for name, changes in counters.items():
                self._collections[name].mark_clean(changes)

    def flush(self) -> Optional[BaseException]:
        """Save if anything changed and report the outcome to ``on_flush``.

        Used by the autosave thread, where raising would only kill the thread;
        the error is logged, handed to the callback and returned instead.
        """

        error: Optional[BaseException] = None
        if self.dirty:
            try:
                self.save()
            except StorageIOError as exc:
                error = exc
                logger.error("autosave of %s failed: %s", self.path, exc)
        if self.on_flush is not None:
            try:
                self.on_flush(error)
            except Exception:
                logger.exception("flush callback for %s raised", self.path)
        return error

    # -- autosave ------------------------------------------------------
    def start_autosave(self) -> None:
        if not self.autosave or self._autosaver is not None:
            return
        self._stop.clear()
        self._autosaver = threading.Thread(
            target=self._autosave_loop,
            name=f"voltvault-autosave:{self.path.name}",
            daemon=True,
        )
        self._autosaver.start()

    def stop_autosave(self) -> None:
        thread = self._autosaver
        if thread is None:
            return
        self._stop.set()
        thread.join()
        self._autosaver = None

    def _autosave_loop(self) -> None:
        while not self._stop.wait(self.autosave_interval):
            self.flush()

    # -- teardown ------------------------------------------------------
    def close(self) -> None:
        """Stop autosave, flush pending writes and drop in-memory state."""

        self.stop_autosave()
        self.save()
        self._collections = {}
        logger.info("closed snapshot %s", self.path)

    def erase(self) -> None:
        """Delete the snapshot file and any leftover staging file."""

        for target in (self.path, self.path.with_name(self.path.name + ".tmp")):
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageIOError(f"failed to remove {target}") from exc
        logger.info("erased snapshot %s", self.path)


__all__ = ["FlushCallback", "SNAPSHOT_FORMAT", "SnapshotDatabase"]
