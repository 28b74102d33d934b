"""Data model for versioned, soft-deletable secrets."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence

DEFAULT_RECOVERABLE_DAYS = 90
DEFAULT_RECOVERY_LEVEL = "Recoverable+Purgeable"

__all__ = [
    "DEFAULT_RECOVERABLE_DAYS",
    "DEFAULT_RECOVERY_LEVEL",
    "DeletedSecret",
    "SecretAttributes",
    "SecretRecord",
    "SecretVersion",
    "VersionHistory",
    "new_version_id",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_version_id() -> str:
    """Return a fresh 32 character hex version identifier."""

    return uuid.uuid4().hex


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_iso(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class SecretAttributes:
    """Management attributes attached to a single secret version."""

    enabled: bool = True
    not_before: Optional[datetime] = None
    expires: Optional[datetime] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    recoverable_days: int = DEFAULT_RECOVERABLE_DAYS
    recovery_level: str = DEFAULT_RECOVERY_LEVEL

    def to_document(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "notBefore": _to_iso(self.not_before),
            "expires": _to_iso(self.expires),
            "created": _to_iso(self.created),
            "updated": _to_iso(self.updated),
            "recoverableDays": self.recoverable_days,
            "recoveryLevel": self.recovery_level,
        }

    @classmethod
    def from_document(cls, document: Optional[Dict[str, Any]]) -> "SecretAttributes":
        document = document or {}
        return cls(
            enabled=bool(document.get("enabled", True)),
            not_before=_from_iso(document.get("notBefore")),
            expires=_from_iso(document.get("expires")),
            created=_from_iso(document.get("created")),
            updated=_from_iso(document.get("updated")),
            recoverable_days=int(document.get("recoverableDays", DEFAULT_RECOVERABLE_DAYS)),
            recovery_level=str(document.get("recoveryLevel", DEFAULT_RECOVERY_LEVEL)),
        )


@dataclass(frozen=True)
class SecretVersion:
    """Immutable snapshot of a secret's value and metadata."""

    name: str
    version: str
    value: str
    content_type: Optional[str] = None
    attributes: SecretAttributes = field(default_factory=SecretAttributes)
    tags: Dict[str, str] = field(default_factory=dict)
    kid: Optional[str] = None
    managed: bool = False
    base_url: Optional[str] = field(default=None, compare=False)

    @property
    def id(self) -> str:
        path = f"secrets/{self.name}/{self.version}"
        return f"{self.base_url}/{path}" if self.base_url else path

    def to_document(self) -> Dict[str, Any]:
        return {
            "secretVersion": self.version,
            "value": self.value,
            "contentType": self.content_type,
            "attributes": self.attributes.to_document(),
            "tags": dict(self.tags),
            "kid": self.kid,
            "managed": self.managed,
        }

    @classmethod
    def from_document(cls, name: str, document: Dict[str, Any], base_url: Optional[str] = None) -> "SecretVersion":
        return cls(
            name=name,
            version=str(document["secretVersion"]),
            value=str(document.get("value", "")),
            content_type=document.get("contentType"),
            attributes=SecretAttributes.from_document(document.get("attributes")),
            tags={str(k): str(v) for k, v in (document.get("tags") or {}).items()},
            kid=document.get("kid"),
            managed=bool(document.get("managed", False)),
            base_url=base_url,
        )


class VersionHistory(Sequence[SecretVersion]):
    """Append-only, creation ordered list of :class:`SecretVersion` objects.

    History is never rewritten: :meth:`append` adds at the end and
    :meth:`revise` swaps one entry for a copy whose value is preserved.
    """

    def __init__(self, versions: Optional[Sequence[SecretVersion]] = None) -> None:
        self._versions: List[SecretVersion] = []
        for version in versions or ():
            self.append(version)

    def __len__(self) -> int:
        return len(self._versions)

    def __iter__(self) -> Iterator[SecretVersion]:
        return iter(list(self._versions))

    def __getitem__(self, index):  # type: ignore[override]
        return self._versions[index]

    def latest(self) -> SecretVersion:
        if not self._versions:
            raise LookupError("version history is empty")
        return self._versions[-1]

    def index_of(self, version: str) -> int:
        for position, candidate in enumerate(self._versions):
            if candidate.version == version:
                return position
        return -1

    def by_version_id(self, version: str) -> Optional[SecretVersion]:
        position = self.index_of(version)
        return self._versions[position] if position >= 0 else None

    def append(self, version: SecretVersion) -> SecretVersion:
        if self.index_of(version.version) >= 0:
            raise ValueError(f"version {version.version!r} already exists")
        self._versions.append(version)
        return version

    def revise(
        self,
        version: str,
        *,
        attributes: Optional[SecretAttributes] = None,
        tags: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ) -> SecretVersion:
        position = self.index_of(version)
        if position < 0:
            raise LookupError(version)
        current = self._versions[position]
        changes: Dict[str, Any] = {}
        if attributes is not None:
            changes["attributes"] = attributes
        if tags is not None:
            changes["tags"] = dict(tags)
        if content_type is not None:
            changes["content_type"] = content_type
        revised = replace(current, **changes)
        self._versions[position] = revised
        return revised

    def after(self, marker: Optional[str]) -> List[SecretVersion]:
        """Return the versions created after *marker* (all when empty)."""

        if not marker:
            return list(self._versions)
        position = self.index_of(marker)
        if position < 0:
            raise LookupError(marker)
        return self._versions[position + 1 :]


@dataclass
class DeletedSecret:
    """Deleted view of a tombstoned secret."""

    name: str
    latest: SecretVersion
    deleted_date: datetime
    recovery_id: str
    scheduled_purge_date: Optional[datetime] = None


@dataclass
class SecretRecord:
    """One document per secret name with its full version history."""

    name: str
    versions: VersionHistory
    deleted: bool = False
    deleted_date: Optional[datetime] = None
    recovery_id: Optional[str] = None
    scheduled_purge_date: Optional[datetime] = None

    def latest(self) -> SecretVersion:
        return self.versions.latest()

    def tombstone(self, when: datetime, recovery_id: str) -> DeletedSecret:
        latest = self.latest()
        self.deleted = True
        self.deleted_date = when
        self.recovery_id = recovery_id
        self.scheduled_purge_date = when + timedelta(days=latest.attributes.recoverable_days)
        return self.deleted_view()

    def restore(self) -> None:
        self.deleted = False
        self.deleted_date = None
        self.recovery_id = None
        self.scheduled_purge_date = None

    def deleted_view(self) -> DeletedSecret:
        if not self.deleted or self.deleted_date is None or self.recovery_id is None:
            raise ValueError(f"secret {self.name!r} is not deleted")
        return DeletedSecret(
            name=self.name,
            latest=self.latest(),
            deleted_date=self.deleted_date,
            recovery_id=self.recovery_id,
            scheduled_purge_date=self.scheduled_purge_date,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "secretName": self.name,
            "versions": [version.to_document() for version in self.versions],
            "deleted": self.deleted,
            "deletedDate": _to_iso(self.deleted_date),
            "recoveryId": self.recovery_id,
            "scheduledPurgeDate": _to_iso(self.scheduled_purge_date),
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any], base_url: Optional[str] = None) -> "SecretRecord":
        name = str(document["secretName"])
        versions = VersionHistory(
            [SecretVersion.from_document(name, entry, base_url) for entry in document.get("versions", [])]
        )
        return cls(
            name=name,
            versions=versions,
            deleted=bool(document.get("deleted", False)),
            deleted_date=_from_iso(document.get("deletedDate")),
            recovery_id=document.get("recoveryId"),
            scheduled_purge_date=_from_iso(document.get("scheduledPurgeDate")),
        )
