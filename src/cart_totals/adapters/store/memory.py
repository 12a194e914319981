"""In-memory document store with local write triggers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import copy
import threading
from typing import Any

from cart_totals.adapters.store.base import StoredDocument
from cart_totals.errors import CartNotFoundError, StoreWriteError
from cart_totals.events import DocumentWriteEvent, change_kind, match_document_path

WriteTrigger = Callable[[DocumentWriteEvent], object]


def _split_document_path(document_path: str) -> tuple[str, str]:
    parts = document_path.strip("/").split("/")
    if len(parts) < 2 or len(parts) % 2 != 0 or not all(parts):
        raise StoreWriteError(f"Not a document path: {document_path!r}")
    return "/".join(parts[:-1]), parts[-1]


class InMemoryDocumentStore:
    """Dict-backed DocumentStore that emulates document write triggers.

    Documents are kept per collection path. Writes made through
    ``set_document`` and ``delete_document`` (the external actors' side) are
    delivered synchronously to every trigger whose pattern matches the path,
    after the write is applied. Trigger exceptions propagate to the writer.
    Data is deep-copied in and out so callers never share mutable state with
    the store.

    Example:
        store = InMemoryDocumentStore()
        store.on_write("carts/{userId}/items/{itemId}", service.handle_event)
        store.set_document("carts/u1", {"name": "Ada"})
        store.set_document("carts/u1/items/i1", {"price": 10})
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # collection path -> document id -> data
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._triggers: list[tuple[str, WriteTrigger]] = []

    # ------------------------------------------------------------------
    # Trigger registration
    # ------------------------------------------------------------------

    def on_write(self, pattern: str, trigger: WriteTrigger) -> None:
        """Call ``trigger`` for every external write to a matching path."""
        self._triggers.append((pattern, trigger))

    # ------------------------------------------------------------------
    # External writes (fire triggers)
    # ------------------------------------------------------------------

    def set_document(self, document_path: str, data: Mapping[str, Any]) -> None:
        """Create or replace a document, then fire matching triggers."""
        collection, doc_id = _split_document_path(document_path)
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            before = copy.deepcopy(docs.get(doc_id))
            docs[doc_id] = copy.deepcopy(dict(data))
            after = copy.deepcopy(docs[doc_id])
        self._fire(document_path, before, after)

    def delete_document(self, document_path: str) -> None:
        """Delete a document if present, then fire matching triggers."""
        collection, doc_id = _split_document_path(document_path)
        with self._lock:
            before = self._collections.get(collection, {}).pop(doc_id, None)
        if before is not None:
            self._fire(document_path, before, None)

    def get_document(self, document_path: str) -> dict[str, Any] | None:
        collection, doc_id = _split_document_path(document_path)
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(data)

    def _fire(
        self,
        document_path: str,
        before: dict[str, Any] | None,
        after: dict[str, Any] | None,
    ) -> None:
        for pattern, trigger in list(self._triggers):
            params = match_document_path(pattern, document_path)
            if params is None:
                continue
            event = DocumentWriteEvent(
                kind=change_kind(before, after),
                path=document_path.strip("/"),
                params=params,
                before=copy.deepcopy(before),
                after=copy.deepcopy(after),
            )
            trigger(event)

    # ------------------------------------------------------------------
    # DocumentStore protocol
    # ------------------------------------------------------------------

    def list_documents(self, collection_path: str) -> list[StoredDocument]:
        with self._lock:
            docs = self._collections.get(collection_path.strip("/"), {})
            return [
                StoredDocument(id=doc_id, data=copy.deepcopy(data))
                for doc_id, data in docs.items()
            ]

    def list_document_ids(self, collection_path: str) -> list[str]:
        collection = collection_path.strip("/")
        prefix = f"{collection}/"
        with self._lock:
            ids = set(self._collections.get(collection, {}))
            # Parents that only hold subcollections count as documents too.
            for path, docs in self._collections.items():
                if path.startswith(prefix) and docs:
                    ids.add(path[len(prefix) :].split("/")[0])
        return sorted(ids)

    def update_document(self, document_path: str, fields: Mapping[str, Any]) -> None:
        collection, doc_id = _split_document_path(document_path)
        with self._lock:
            existing = self._collections.get(collection, {}).get(doc_id)
            if existing is None:
                raise CartNotFoundError(document_path)
            existing.update(copy.deepcopy(dict(fields)))

    def merge_document(self, document_path: str, fields: Mapping[str, Any]) -> None:
        collection, doc_id = _split_document_path(document_path)
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            docs.setdefault(doc_id, {}).update(copy.deepcopy(dict(fields)))
