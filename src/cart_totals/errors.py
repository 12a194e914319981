"""Exception hierarchy for cart total recalculation."""

from __future__ import annotations


class CartTotalsError(Exception):
    """Base error for cart total recalculation."""


class ConfigError(CartTotalsError):
    """Missing or invalid handler configuration."""


class InvalidOwnerIdError(CartTotalsError, ValueError):
    """Owner id cannot address a cart document."""


class InvalidEventError(CartTotalsError):
    """Write event does not carry a usable ``userId`` path parameter."""


class MalformedItemError(CartTotalsError):
    """Cart item has a missing or non-numeric ``price``."""

    def __init__(self, item_id: str, price: object) -> None:
        super().__init__(f"Cart item {item_id!r} has malformed price: {price!r}")
        self.item_id = item_id
        self.price = price


class StoreError(CartTotalsError):
    """Base error for document store operations."""


class StoreReadError(StoreError):
    """Failed to read documents from the store."""


class StoreWriteError(StoreError):
    """Failed to write a document to the store."""


class CartNotFoundError(StoreWriteError):
    """Partial update targeted a cart document that does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Cart document does not exist: {path}")
        self.path = path
