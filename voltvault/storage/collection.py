"""Indexed document collections used as the store's record layer."""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ..errors import DuplicateKeyError, NotFoundError

Document = Dict[str, Any]

__all__ = ["Document", "IndexedCollection", "RecordCollection"]


class RecordCollection(ABC):
    """Minimal contract over a keyed document collection.

    Implementations enforce uniqueness of :attr:`unique_key` and hand out
    copies of their documents, so nothing outside the collection can mutate
    its state in place.
    """

    name: str
    unique_key: str

    @abstractmethod
    def insert(self, document: Document) -> Document:
        """Add *document*; raise :class:`DuplicateKeyError` when its key exists."""

    @abstractmethod
    def update(self, document: Document) -> Document:
        """Replace the stored document sharing *document*'s key."""

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[Document]:
        """Return the document keyed by *name*, or ``None``."""

    @abstractmethod
    def remove_by_name(self, name: str) -> None:
        """Drop the document keyed by *name*."""

    @abstractmethod
    def enumerate(self) -> List[Document]:
        """Return every document; callers sort when order matters."""

    def count(self) -> int:
        return len(self.enumerate())


class IndexedCollection(RecordCollection):
    """In-memory collection with a unique hash index on one field."""

    def __init__(self, name: str, unique_key: str) -> None:
        self.name = name
        self.unique_key = unique_key
        self._index: Dict[str, Document] = {}
        self._lock = threading.RLock()
        self._changes = 0

    # -- snapshot support ----------------------------------------------
    @classmethod
    def from_documents(cls, name: str, unique_key: str, documents: Iterable[Document]) -> "IndexedCollection":
        collection = cls(name, unique_key)
        for document in documents:
            collection.insert(document)
        collection.mark_clean()
        return collection

    def documents(self) -> List[Document]:
        with self._lock:
            return [copy.deepcopy(document) for document in self._index.values()]

    @property
    def changes(self) -> int:
        """Monotonic mutation counter, used to detect unsaved work."""

        return self._changes

    @property
    def dirty(self) -> bool:
        return self._changes > 0

    def mark_clean(self, upto: Optional[int] = None) -> None:
        """Forget mutations up to *upto* (all of them when omitted)."""

        with self._lock:
            if upto is None:
                self._changes = 0
            else:
                self._changes = max(0, self._changes - upto)

    # -- RecordCollection ----------------------------------------------
    def _key_of(self, document: Document) -> str:
        value = document.get(self.unique_key)
        if not isinstance(value, str) or not value:
            raise ValueError(f"document is missing a non-empty {self.unique_key!r}")
        return value

    def insert(self, document: Document) -> Document:
        key = self._key_of(document)
        with self._lock:
            if key in self._index:
                raise DuplicateKeyError(self.unique_key, key)
            self._index[key] = copy.deepcopy(document)
            self._changes += 1
        return copy.deepcopy(document)

    def update(self, document: Document) -> Document:
        key = self._key_of(document)
        with self._lock:
            if key not in self._index:
                raise NotFoundError(key)
            self._index[key] = copy.deepcopy(document)
            self._changes += 1
        return copy.deepcopy(document)

    def find_by_name(self, name: str) -> Optional[Document]:
        with self._lock:
            document = self._index.get(name)
            return copy.deepcopy(document) if document is not None else None

    def remove_by_name(self, name: str) -> None:
        with self._lock:
            if name not in self._index:
                raise NotFoundError(name)
            del self._index[name]
            self._changes += 1

    def enumerate(self) -> List[Document]:
        return self.documents()

    def count(self) -> int:
        with self._lock:
            return len(self._index)
