"""Versioned secret metadata store."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..errors import ConflictError, NotFoundError, StorageIOError
from ..models import (
    DeletedSecret,
    SecretAttributes,
    SecretRecord,
    SecretVersion,
    VersionHistory,
    new_version_id,
    utcnow,
)
from ..storage import FlushCallback, IndexedCollection, SnapshotDatabase
from ..utils.settings import DEFAULT_AUTOSAVE_INTERVAL_MS, StoreSettings
from .lifecycle import Lifecycle, LifecycleState
from .log_manager import log_event
from .pagination import page_of, paginate_sorted, validate_max_results

SECRETS_COLLECTION = "$SECRETS_COLLECTION$"
UNIQUE_KEY = "secretName"

Page = Tuple[List[SecretVersion], Optional[str]]
DeletedPage = Tuple[List[DeletedSecret], Optional[str]]


def _check_tags(tags: Optional[Dict[str, str]]) -> None:
    if tags is None:
        return
    if not isinstance(tags, dict):
        raise ValueError("tags must be a mapping of strings to strings")
    for key, value in tags.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValueError(f"tag {key!r} must map a string to a string")


class SecretsMetadataStore(ABC):
    """Persistence contract consumed by the vault API layer.

    Every data operation either returns its result or raises one of the
    :mod:`voltvault.errors` types; the API layer maps those to responses.
    """

    # -- lifecycle -----------------------------------------------------
    @abstractmethod
    def init(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @abstractmethod
    def clean(self) -> None:
        ...

    @abstractmethod
    def is_initialized(self) -> bool:
        ...

    @abstractmethod
    def is_closed(self) -> bool:
        ...

    # -- mutations -----------------------------------------------------
    @abstractmethod
    def set_secret(
        self,
        name: str,
        value: str,
        *,
        content_type: Optional[str] = None,
        attributes: Optional[SecretAttributes] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> SecretVersion:
        """Create *name* or append a new version to it."""

    @abstractmethod
    def update_secret(
        self,
        name: str,
        version: str,
        *,
        content_type: Optional[str] = None,
        enabled: Optional[bool] = None,
        not_before: Optional[datetime] = None,
        expires: Optional[datetime] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> SecretVersion:
        """Revise the metadata of one version; the value never changes."""

    @abstractmethod
    def delete_secret(self, name: str) -> DeletedSecret:
        ...

    @abstractmethod
    def recover_deleted_secret(self, name: str) -> SecretVersion:
        ...

    # -- queries -------------------------------------------------------
    @abstractmethod
    def get_secret(self, name: str, version: Optional[str] = None) -> SecretVersion:
        """Return the latest version of *name*, or *version* when given."""

    @abstractmethod
    def get_secrets(self, max_results: Optional[int] = None, marker: Optional[str] = None) -> Page:
        ...

    @abstractmethod
    def get_secret_versions(
        self, name: str, max_results: Optional[int] = None, marker: Optional[str] = None
    ) -> Page:
        ...

    @abstractmethod
    def get_deleted_secret(self, name: str) -> DeletedSecret:
        ...

    @abstractmethod
    def get_deleted_secrets(self, max_results: Optional[int] = None, marker: Optional[str] = None) -> DeletedPage:
        ...

    def __enter__(self) -> "SecretsMetadataStore":
        self.init()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SnapshotSecretsMetadataStore(SecretsMetadataStore):
    """Secret metadata store backed by a :class:`SnapshotDatabase` file.

    The database holds a single collection, ``$SECRETS_COLLECTION$``, where
    each document is one secret keyed uniquely by ``secretName`` and carrying
    its whole version history plus the tombstone fields.

    Read-modify-write sequences (lookup then append, lookup then tombstone)
    run under one re-entrant lock so concurrent callers on the same name
    cannot lose updates.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        autosave: bool = True,
        autosave_interval_ms: int = DEFAULT_AUTOSAVE_INTERVAL_MS,
        base_url: Optional[str] = None,
        on_flush: Optional[FlushCallback] = None,
    ) -> None:
        self.path = Path(path)
        self._db = SnapshotDatabase(
            self.path,
            autosave=autosave,
            autosave_interval=autosave_interval_ms / 1000.0,
            on_flush=on_flush,
        )
        self._base_url = base_url.rstrip("/") if base_url else None
        self._lifecycle = Lifecycle("secrets metadata store")
        self._lock = threading.RLock()

    @classmethod
    def from_settings(
        cls, settings: StoreSettings, *, on_flush: Optional[FlushCallback] = None
    ) -> "SnapshotSecretsMetadataStore":
        return cls(
            settings.store_path,
            autosave=settings.autosave,
            autosave_interval_ms=settings.autosave_interval_ms,
            base_url=settings.base_url,
            on_flush=on_flush,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    def is_initialized(self) -> bool:
        return self._lifecycle.state is LifecycleState.INITIALIZED

    def is_closed(self) -> bool:
        return self._lifecycle.state is not LifecycleState.INITIALIZED

    def init(self) -> None:
        """Load the backing file (or create it) and open the store."""

        with self._lock:
            self._lifecycle.require(LifecycleState.UNINITIALIZED, action="initialise")
            existed = self._db.load()
            if self._db.get_collection(SECRETS_COLLECTION) is None:
                self._db.add_collection(SECRETS_COLLECTION, unique=UNIQUE_KEY)
            self._db.save()
            self._db.start_autosave()
            self._lifecycle.transition(LifecycleState.INITIALIZED)
        log_event("store.init", path=str(self.path), loaded=existed, secrets=self._collection().count())

    def close(self) -> None:
        """Flush pending writes and close the store. Closing twice is a no-op."""

        with self._lock:
            if self._lifecycle.state is LifecycleState.CLOSED:
                return
            if self._lifecycle.state is LifecycleState.INITIALIZED:
                try:
                    self._db.close()
                except StorageIOError:
                    self._db.start_autosave()
                    raise
            self._lifecycle.transition(LifecycleState.CLOSED)
        log_event("store.close", path=str(self.path))

    def clean(self) -> None:
        """Erase the backing file. Only allowed while the store is not open."""

        with self._lock:
            self._lifecycle.require(LifecycleState.UNINITIALIZED, LifecycleState.CLOSED, action="clean")
            self._db.erase()
        log_event("store.clean", path=str(self.path))

    # ------------------------------------------------------------------
    # Record helpers
    # ------------------------------------------------------------------
    def _collection(self) -> IndexedCollection:
        collection = self._db.get_collection(SECRETS_COLLECTION)
        if collection is None:  # pragma: no cover - init always creates it
            raise StorageIOError(f"collection {SECRETS_COLLECTION} is missing")
        return collection

    def _find(self, name: str) -> Optional[SecretRecord]:
        document = self._collection().find_by_name(name)
        if document is None:
            return None
        return SecretRecord.from_document(document, self._base_url)

    def _active(self, name: str) -> SecretRecord:
        record = self._find(name)
        if record is None or record.deleted:
            raise NotFoundError(name)
        return record

    def _tombstoned(self, name: str) -> SecretRecord:
        record = self._find(name)
        if record is None or not record.deleted:
            raise NotFoundError(name)
        return record

    def _records(self, *, deleted: bool) -> List[SecretRecord]:
        records = [SecretRecord.from_document(document, self._base_url) for document in self._collection().enumerate()]
        selected = [record for record in records if record.deleted is deleted]
        selected.sort(key=lambda record: record.name)
        return selected

    def _recovery_id(self, name: str) -> str:
        path = f"deletedsecrets/{name}"
        return f"{self._base_url}/{path}" if self._base_url else path

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def set_secret(
        self,
        name: str,
        value: str,
        *,
        content_type: Optional[str] = None,
        attributes: Optional[SecretAttributes] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> SecretVersion:
        if not isinstance(name, str) or not name:
            raise ValueError("secret name must be a non-empty string")
        if not isinstance(value, str):
            raise ValueError("secret value must be a string")
        _check_tags(tags)
        with self._lock:
            self._lifecycle.require_open("set a secret in")
            now = utcnow()
            version = SecretVersion(
                name=name,
                version=new_version_id(),
                value=value,
                content_type=content_type,
                attributes=replace(attributes or SecretAttributes(), created=now, updated=now),
                tags=dict(tags or {}),
                base_url=self._base_url,
            )
            record = self._find(name)
            if record is None:
                record = SecretRecord(name=name, versions=VersionHistory([version]))
                self._collection().insert(record.to_document())
            elif record.deleted:
                raise ConflictError(f"secret {name!r} is deleted but recoverable; recover it before setting")
            else:
                record.versions.append(version)
                self._collection().update(record.to_document())
        log_event("secret.set", name=name, version=version.version, versions=len(record.versions))
        return version

    def update_secret(
        self,
        name: str,
        version: str,
        *,
        content_type: Optional[str] = None,
        enabled: Optional[bool] = None,
        not_before: Optional[datetime] = None,
        expires: Optional[datetime] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> SecretVersion:
        _check_tags(tags)
        with self._lock:
            self._lifecycle.require_open("update a secret in")
            record = self._find(name)
            if record is None:
                raise NotFoundError(name)
            if record.deleted:
                raise ConflictError(f"secret {name!r} is deleted")
            current = record.versions.by_version_id(version)
            if current is None:
                raise NotFoundError(name, version)
            patch: Dict[str, object] = {"updated": utcnow()}
            if enabled is not None:
                patch["enabled"] = enabled
            if not_before is not None:
                patch["not_before"] = not_before
            if expires is not None:
                patch["expires"] = expires
            revised = record.versions.revise(
                version,
                attributes=replace(current.attributes, **patch),
                tags=tags,
                content_type=content_type,
            )
            self._collection().update(record.to_document())
        log_event("secret.update", name=name, version=version, fields=sorted(k for k in patch if k != "updated"))
        return revised

    def delete_secret(self, name: str) -> DeletedSecret:
        with self._lock:
            self._lifecycle.require_open("delete a secret from")
            record = self._active(name)
            deleted = record.tombstone(utcnow(), self._recovery_id(name))
            self._collection().update(record.to_document())
        log_event("secret.delete", name=name, purge=deleted.scheduled_purge_date)
        return deleted

    def recover_deleted_secret(self, name: str) -> SecretVersion:
        with self._lock:
            self._lifecycle.require_open("recover a secret in")
            record = self._tombstoned(name)
            record.restore()
            self._collection().update(record.to_document())
        log_event("secret.recover", name=name)
        return record.latest()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_secret(self, name: str, version: Optional[str] = None) -> SecretVersion:
        with self._lock:
            self._lifecycle.require_open("read a secret from")
            record = self._active(name)
        if not version:
            return record.latest()
        found = record.versions.by_version_id(version)
        if found is None:
            raise NotFoundError(name, version)
        return found

    def get_secrets(self, max_results: Optional[int] = None, marker: Optional[str] = None) -> Page:
        with self._lock:
            self._lifecycle.require_open("list secrets in")
            records = self._records(deleted=False)
        page, next_marker = paginate_sorted(records, lambda record: record.name, max_results, marker)
        return [record.latest() for record in page], next_marker

    def get_secret_versions(
        self, name: str, max_results: Optional[int] = None, marker: Optional[str] = None
    ) -> Page:
        with self._lock:
            self._lifecycle.require_open("list secret versions in")
            limit = validate_max_results(max_results)
            record = self._active(name)
        try:
            remaining = record.versions.after(marker)
        except LookupError:
            raise NotFoundError(name, marker) from None
        return page_of(remaining, lambda version: version.version, limit)

    def get_deleted_secret(self, name: str) -> DeletedSecret:
        with self._lock:
            self._lifecycle.require_open("read a deleted secret from")
            record = self._tombstoned(name)
        return record.deleted_view()

    def get_deleted_secrets(self, max_results: Optional[int] = None, marker: Optional[str] = None) -> DeletedPage:
        with self._lock:
            self._lifecycle.require_open("list deleted secrets in")
            records = self._records(deleted=True)
        page, next_marker = paginate_sorted(records, lambda record: record.name, max_results, marker)
        return [record.deleted_view() for record in page], next_marker


__all__ = [
    "SECRETS_COLLECTION",
    "SecretsMetadataStore",
    "SnapshotSecretsMetadataStore",
]
