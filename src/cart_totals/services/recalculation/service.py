"""Recalculate a cart's shipping and tax from its current items."""

from __future__ import annotations

from contextlib import AbstractContextManager, nullcontext

from cart_totals.adapters.store.base import DocumentStore, StoredDocument
from cart_totals.config import CartWriteMode, HandlerConfig, MalformedPricePolicy
from cart_totals.errors import (
    CartTotalsError,
    InvalidEventError,
    InvalidOwnerIdError,
    MalformedItemError,
)
from cart_totals.events import (
    CARTS_COLLECTION,
    DocumentWriteEvent,
    cart_path,
    items_path,
)
from cart_totals.pricing import compute_totals, parse_price
from cart_totals.services.recalculation.locks import OwnerLocks
from cart_totals.services.recalculation.logger import RecalculationLogger
from cart_totals.services.recalculation.types import RecalculationResult


class CartRecalculationService:
    """Keep ``shipping`` and ``tax`` on a cart in line with its items.

    Each call re-reads the full item collection and overwrites both derived
    fields, so redelivered or duplicated events converge on the same values.
    Nothing is retried here: store errors propagate to the caller, which for
    deployed functions is the event platform and its redelivery policy.

    Same-owner calls are not serialized by default. Two overlapping calls may
    read different item snapshots and write in either order, leaving totals
    for an intermediate item set until the next event. With
    ``serialize_per_owner`` the read-compute-write sequence holds a lock keyed
    by owner id, which only orders calls made inside this process.

    Example:
        service = CartRecalculationService(store=InMemoryDocumentStore())
        result = service.recalculate("user-1")
    """

    def __init__(
        self,
        store: DocumentStore,
        config: HandlerConfig | None = None,
        log: RecalculationLogger | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Document store holding carts and their items
            config: Handler configuration. Defaults to ``HandlerConfig()``.
            log: Logger wrapper, mainly for tests
        """
        self._store = store
        self._config = config or HandlerConfig()
        self._log = log or RecalculationLogger()
        self._owner_locks: OwnerLocks | None = None
        if self._config.serialize_per_owner:
            self._owner_locks = OwnerLocks()

    @property
    def config(self) -> HandlerConfig:
        return self._config

    def list_owner_ids(self) -> list[str]:
        """Owner ids of every cart, including carts that only hold items."""
        return self._store.list_document_ids(CARTS_COLLECTION)

    def handle_event(self, event: DocumentWriteEvent) -> RecalculationResult:
        """Recalculate the cart that owns the item written in ``event``.

        The changed item and the kind of change do not affect the result.

        Raises:
            InvalidEventError: If the event has no usable ``userId`` parameter.
        """
        self._log.event_received(event)
        owner_id = event.params.get("userId")
        if not owner_id:
            raise InvalidEventError(f"Write event for {event.path!r} has no userId")
        try:
            return self.recalculate(owner_id)
        except InvalidOwnerIdError as exc:
            raise InvalidEventError(str(exc)) from exc

    def recalculate(
        self, owner_id: str, *, dry_run: bool = False
    ) -> RecalculationResult:
        """Read every item in the owner's cart and write shipping and tax.

        Args:
            owner_id: Cart owner id, the ``userId`` path segment
            dry_run: Compute totals without writing them

        Returns:
            RecalculationResult describing the snapshot that was written.

        Raises:
            InvalidOwnerIdError: If ``owner_id`` is empty or contains ``/``.
            StoreReadError: If the item collection cannot be read.
            MalformedItemError: If an item price is malformed under the
                ``fail`` policy. Nothing is written.
            CartNotFoundError: If the cart is missing in ``update`` mode.
            StoreWriteError: If the cart write fails.
        """
        if not owner_id or "/" in owner_id:
            raise InvalidOwnerIdError(f"Invalid cart owner id: {owner_id!r}")

        with self._hold(owner_id):
            try:
                return self._recalculate(owner_id, dry_run=dry_run)
            except CartTotalsError as exc:
                self._log.recalculation_failed(owner_id, exc)
                raise

    def _hold(self, owner_id: str) -> AbstractContextManager[None]:
        if self._owner_locks is None:
            return nullcontext()
        return self._owner_locks.hold(owner_id)

    def _recalculate(self, owner_id: str, *, dry_run: bool) -> RecalculationResult:
        items = self._store.list_documents(items_path(owner_id))
        prices, malformed = self._collect_prices(owner_id, items)

        totals = compute_totals(prices)
        self._log.totals_computed(owner_id, totals)

        if dry_run:
            self._log.dry_run(owner_id, totals)
            return RecalculationResult(
                owner_id=owner_id,
                totals=totals,
                malformed_item_ids=malformed,
                written=False,
            )

        if self._config.write_mode is CartWriteMode.MERGE:
            self._store.merge_document(cart_path(owner_id), totals.as_update())
        else:
            self._store.update_document(cart_path(owner_id), totals.as_update())
        self._log.totals_written(owner_id, totals)

        return RecalculationResult(
            owner_id=owner_id, totals=totals, malformed_item_ids=malformed
        )

    def _collect_prices(
        self, owner_id: str, items: list[StoredDocument]
    ) -> tuple[list[float], tuple[str, ...]]:
        policy = self._config.malformed_price
        prices: list[float] = []
        malformed: list[str] = []

        for item in items:
            raw = item.data.get("price")
            price = parse_price(raw)
            if price is not None:
                prices.append(price)
                continue

            if policy is MalformedPricePolicy.FAIL:
                raise MalformedItemError(item.id, raw)
            self._log.malformed_item(owner_id, item.id, raw)
            malformed.append(item.id)
            if policy is MalformedPricePolicy.ZERO:
                prices.append(0.0)

        return prices, tuple(malformed)
