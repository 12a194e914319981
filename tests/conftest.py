"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from cart_totals import functions
from cart_totals.adapters.store.firestore import reset_firestore_store
from cart_totals.adapters.store.memory import InMemoryDocumentStore
from cart_totals.services.recalculation import CartRecalculationService

_CONFIG_ENV_VARS = (
    "CART_TOTALS_MALFORMED_PRICE",
    "CART_TOTALS_WRITE_MODE",
    "CART_TOTALS_SERIALIZE_PER_OWNER",
    "CART_TOTALS_LOG_LEVEL",
    "GOOGLE_CLOUD_PROJECT",
)


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop process-wide singletons and config env vars around each test.

    The function entry point and the Firestore adapter cache their instances
    for the life of the process, and a developer's .env may set config vars.
    """
    for var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    functions.set_service(None)
    reset_firestore_store()
    yield
    functions.set_service(None)
    reset_firestore_store()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def service(store: InMemoryDocumentStore) -> CartRecalculationService:
    return CartRecalculationService(store=store)
