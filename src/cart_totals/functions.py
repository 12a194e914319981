"""Cloud Functions entry point: recalculate cart totals on item writes.

Deploy by re-exporting ``on_cart_item_written`` from the functions
source's ``main.py``.
"""

from __future__ import annotations

import threading
from typing import Any

from firebase_functions import firestore_fn
from loguru import logger

from cart_totals.adapters.store.firestore import get_firestore_store
from cart_totals.config import load_handler_config_from_env
from cart_totals.events import ITEM_DOCUMENT_PATTERN, DocumentWriteEvent, change_kind
from cart_totals.logging_setup import configure_logging
from cart_totals.services.recalculation import CartRecalculationService

_service: CartRecalculationService | None = None
_service_lock = threading.Lock()


def get_service() -> CartRecalculationService:
    """Return the process-wide service, building it before the first event."""
    global _service
    with _service_lock:
        if _service is None:
            config = load_handler_config_from_env()
            configure_logging(config.log_level)
            store = get_firestore_store(config.project_id)
            _service = CartRecalculationService(store=store, config=config)
        return _service


def set_service(service: CartRecalculationService | None) -> None:
    """Replace the process-wide service (None forces a rebuild)."""
    global _service
    with _service_lock:
        _service = service


def _snapshot_data(snapshot: Any) -> dict[str, Any] | None:
    if snapshot is None or not snapshot.exists:
        return None
    return snapshot.to_dict() or {}


def to_write_event(event: Any) -> DocumentWriteEvent:
    """Convert a Firestore ``on_document_written`` event to a DocumentWriteEvent."""
    change = event.data
    before = _snapshot_data(change.before if change is not None else None)
    after = _snapshot_data(change.after if change is not None else None)
    return DocumentWriteEvent(
        kind=change_kind(before, after),
        path=event.document,
        params=dict(event.params),
        before=before,
        after=after,
    )


def handle_cart_item_write(event: Any) -> None:
    """Recalculate shipping and tax for the cart owning the written item.

    Failures are logged and re-raised so the platform records a failed
    invocation and applies its retry policy.
    """
    service = get_service()
    write_event = to_write_event(event)
    try:
        service.handle_event(write_event)
    except Exception:
        logger.bind(path=write_event.path).exception(
            "Cart item trigger failed for {}", write_event.path
        )
        raise


@firestore_fn.on_document_written(document=ITEM_DOCUMENT_PATTERN)
def on_cart_item_written(
    event: firestore_fn.Event[
        firestore_fn.Change[firestore_fn.DocumentSnapshot | None]
    ],
) -> None:
    handle_cart_item_write(event)
