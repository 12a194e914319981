"""Document store adapters."""

from __future__ import annotations

from cart_totals.adapters.store.base import DocumentStore, StoredDocument
from cart_totals.adapters.store.firestore import (
    FirestoreDocumentStore,
    get_firestore_store,
)
from cart_totals.adapters.store.memory import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "FirestoreDocumentStore",
    "InMemoryDocumentStore",
    "StoredDocument",
    "get_firestore_store",
]
