"""Cloud Firestore document store adapter (via firebase-admin)."""

from __future__ import annotations

from collections.abc import Mapping
import threading
from typing import Any

import firebase_admin
from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError, NotFound
from loguru import logger

from cart_totals.adapters.store.base import StoredDocument
from cart_totals.errors import CartNotFoundError, StoreReadError, StoreWriteError

_store: FirestoreDocumentStore | None = None
_store_lock = threading.Lock()


class FirestoreDocumentStore:
    """DocumentStore backed by a ``google.cloud.firestore.Client``.

    Every Google API failure is re-raised as a StoreError subclass so the
    caller sees one exception hierarchy regardless of backend.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    def list_documents(self, collection_path: str) -> list[StoredDocument]:
        try:
            snapshots = list(self._client.collection(collection_path).stream())
        except GoogleAPIError as exc:
            msg = f"Failed to list {collection_path!r}: {exc}"
            raise StoreReadError(msg) from exc

        return [
            StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})
            for snapshot in snapshots
        ]

    def list_document_ids(self, collection_path: str) -> list[str]:
        try:
            refs = list(self._client.collection(collection_path).list_documents())
        except GoogleAPIError as exc:
            msg = f"Failed to list document ids in {collection_path!r}: {exc}"
            raise StoreReadError(msg) from exc
        return [ref.id for ref in refs]

    def update_document(self, document_path: str, fields: Mapping[str, Any]) -> None:
        try:
            self._client.document(document_path).update(dict(fields))
        except NotFound as exc:
            raise CartNotFoundError(document_path) from exc
        except GoogleAPIError as exc:
            msg = f"Failed to update {document_path!r}: {exc}"
            raise StoreWriteError(msg) from exc

    def merge_document(self, document_path: str, fields: Mapping[str, Any]) -> None:
        try:
            self._client.document(document_path).set(dict(fields), merge=True)
        except GoogleAPIError as exc:
            msg = f"Failed to merge into {document_path!r}: {exc}"
            raise StoreWriteError(msg) from exc


def _initialize_app(project_id: str | None) -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"projectId": project_id} if project_id else None
        return firebase_admin.initialize_app(options=options)


def get_firestore_store(project_id: str | None = None) -> FirestoreDocumentStore:
    """Return the process-wide Firestore store, initializing it on first use.

    The default Firebase app is created once per process with application
    default credentials. Later calls reuse it and ignore ``project_id``.

    Args:
        project_id: Optional Google Cloud project id for the default app.

    Returns:
        The shared FirestoreDocumentStore.
    """
    global _store
    with _store_lock:
        if _store is None:
            app = _initialize_app(project_id)
            _store = FirestoreDocumentStore(firestore.client(app))
            logger.bind(project=app.project_id).debug(
                "Initialized Firestore client for project {}", app.project_id
            )
        return _store


def reset_firestore_store() -> None:
    """Forget the cached store so the next call builds a new client."""
    global _store
    with _store_lock:
        _store = None
