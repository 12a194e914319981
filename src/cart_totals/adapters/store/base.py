"""Document store protocol used by the recalculation service."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class StoredDocument:
    """A document id and its field data as read from a collection."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class DocumentStore(Protocol):
    """
    Minimal document database surface needed to keep cart totals current.

    Paths are slash separated, alternating collection and document ids
    (``carts/u1`` is a document, ``carts/u1/items`` a collection).

    Implementations raise:
        StoreReadError: If a collection cannot be listed.
        StoreWriteError: If a write is rejected.
        CartNotFoundError: If ``update_document`` targets a missing document.
    """

    def list_documents(self, collection_path: str) -> list[StoredDocument]:
        """Return every document currently stored in a collection."""
        ...

    def list_document_ids(self, collection_path: str) -> list[str]:
        """Return ids of documents in a collection, including ones that only
        exist as parents of subcollections."""
        ...

    def update_document(self, document_path: str, fields: Mapping[str, Any]) -> None:
        """Set ``fields`` on an existing document without touching others."""
        ...

    def merge_document(self, document_path: str, fields: Mapping[str, Any]) -> None:
        """Set ``fields`` on a document, creating it when missing."""
        ...
