"""Logging for cart recalculation.

Keeps log formatting out of the recalculation logic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import loguru
from loguru import logger

if TYPE_CHECKING:
    from cart_totals.events import DocumentWriteEvent
    from cart_totals.pricing import CartTotals


class RecalculationLogger:
    """Handles all logging for the recalculation handler."""

    def __init__(self, logger_instance: loguru.Logger = logger) -> None:
        """Initialize logger.

        Args:
            logger_instance: Logger instance to use (defaults to loguru.logger)
        """
        self._logger = logger_instance

    def event_received(self, event: DocumentWriteEvent) -> None:
        self._logger.bind(
            kind=event.kind.value,
            path=event.path,
            owner_id=event.params.get("userId"),
            item_id=event.params.get("itemId"),
        ).debug("Cart item {} {}", event.path, event.kind.value)

    def malformed_item(self, owner_id: str, item_id: str, price: object) -> None:
        self._logger.bind(owner_id=owner_id, item_id=item_id).warning(
            "Cart {} item {} has malformed price {!r}", owner_id, item_id, price
        )

    def totals_computed(self, owner_id: str, totals: CartTotals) -> None:
        self._logger.bind(
            owner_id=owner_id,
            items_count=totals.items_count,
            subtotal=totals.subtotal,
        ).debug(
            "Cart {}: {} items, subtotal {}",
            owner_id,
            totals.items_count,
            totals.subtotal,
        )

    def totals_written(self, owner_id: str, totals: CartTotals) -> None:
        self._logger.bind(
            owner_id=owner_id, shipping=totals.shipping, tax=totals.tax
        ).info(
            "Updated cart {}: shipping={} tax={}",
            owner_id,
            totals.shipping,
            totals.tax,
        )

    def dry_run(self, owner_id: str, totals: CartTotals) -> None:
        self._logger.bind(owner_id=owner_id).info(
            "Dry run, cart {} not written: shipping={} tax={}",
            owner_id,
            totals.shipping,
            totals.tax,
        )

    def recalculation_failed(self, owner_id: str, exc: BaseException) -> None:
        self._logger.bind(owner_id=owner_id, error=type(exc).__name__).error(
            "Recalculation failed for cart {}: {}", owner_id, exc
        )
