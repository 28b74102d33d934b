"""Core components powering voltvault."""

from .lifecycle import Lifecycle, LifecycleState
from .log_manager import log_event
from .pagination import DEFAULT_MAX_RESULTS, paginate_sorted
from .secrets_store import SECRETS_COLLECTION, SecretsMetadataStore, SnapshotSecretsMetadataStore

__all__ = [
    "DEFAULT_MAX_RESULTS",
    "Lifecycle",
    "LifecycleState",
    "SECRETS_COLLECTION",
    "SecretsMetadataStore",
    "SnapshotSecretsMetadataStore",
    "log_event",
    "paginate_sorted",
]
