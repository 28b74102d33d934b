"""Typed failures raised by the secret metadata store."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ConflictError",
    "DuplicateKeyError",
    "IllegalStateError",
    "NotFoundError",
    "SecretStoreError",
    "StorageIOError",
]


class SecretStoreError(RuntimeError):
    """Base class for every failure surfaced by :mod:`voltvault`."""


class NotFoundError(SecretStoreError):
    """Raised when a secret name or version does not exist.

    A tombstoned secret counts as missing for operations that require an
    active record.
    """

    def __init__(self, name: str, version: Optional[str] = None) -> None:
        self.name = name
        self.version = version
        if version:
            message = f"secret {name!r} has no version {version!r}"
        else:
            message = f"secret {name!r} not found"
        super().__init__(message)


class ConflictError(SecretStoreError):
    """Raised when a mutation clashes with the current state of a record."""


class DuplicateKeyError(SecretStoreError):
    """Raised when a collection insert would break its uniqueness constraint."""

    def __init__(self, key: str, value: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"duplicate key {key}={value!r}")


class IllegalStateError(SecretStoreError):
    """Raised when an operation is invoked in the wrong lifecycle state."""


class StorageIOError(SecretStoreError):
    """Raised when the backing store cannot be loaded, saved or removed."""
