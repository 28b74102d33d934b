"""Versioned secret metadata persistence for a Key Vault style service."""

from __future__ import annotations

__version__ = "0.1.0"

from .core import SecretsMetadataStore, SnapshotSecretsMetadataStore
from .errors import (
    ConflictError,
    DuplicateKeyError,
    IllegalStateError,
    NotFoundError,
    SecretStoreError,
    StorageIOError,
)
from .models import DeletedSecret, SecretAttributes, SecretRecord, SecretVersion, VersionHistory

__all__ = [
    "ConflictError",
    "DeletedSecret",
    "DuplicateKeyError",
    "IllegalStateError",
    "NotFoundError",
    "SecretAttributes",
    "SecretRecord",
    "SecretStoreError",
    "SecretVersion",
    "SecretsMetadataStore",
    "SnapshotSecretsMetadataStore",
    "StorageIOError",
    "VersionHistory",
    "__version__",
]
