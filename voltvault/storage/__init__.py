"""Embedded storage primitives used by voltvault."""

from .collection import Document, IndexedCollection, RecordCollection
from .database import SNAPSHOT_FORMAT, FlushCallback, SnapshotDatabase

__all__ = [
    "Document",
    "FlushCallback",
    "IndexedCollection",
    "RecordCollection",
    "SNAPSHOT_FORMAT",
    "SnapshotDatabase",
]
