"""Tests for CartRecalculationService."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from cart_totals.config import CartWriteMode, HandlerConfig, MalformedPricePolicy
from cart_totals.errors import (
    CartNotFoundError,
    InvalidEventError,
    InvalidOwnerIdError,
    MalformedItemError,
    StoreReadError,
    StoreWriteError,
)
from cart_totals.events import ITEM_DOCUMENT_PATTERN, ChangeKind, DocumentWriteEvent
from cart_totals.services.recalculation import CartRecalculationService


def _seed(store, owner_id, prices, cart=None):
    store.set_document(f"carts/{owner_id}", cart if cart is not None else {})
    for i, price in enumerate(prices):
        store.set_document(f"carts/{owner_id}/items/item{i}", {"price": price})


def _event(owner_id="u1", item_id="item0", kind=ChangeKind.UPDATED):
    return DocumentWriteEvent(
        kind=kind,
        path=f"carts/{owner_id}/items/{item_id}",
        params={"userId": owner_id, "itemId": item_id},
    )


class TestRecalculate:
    def test_three_items(self, store, service):
        _seed(store, "u1", [10, 20, 5])

        result = service.recalculate("u1")

        cart = store.get_document("carts/u1")
        assert cart["shipping"] == 3
        assert cart["tax"] == pytest.approx(7)
        assert result.totals.items_count == 3
        assert result.totals.subtotal == 35
        assert result.written is True

    def test_empty_cart(self, store, service):
        _seed(store, "u1", [])

        service.recalculate("u1")

        assert store.get_document("carts/u1") == {"shipping": 0, "tax": 0}

    def test_threshold_boundary(self, store, service):
        _seed(store, "u1", [100])
        _seed(store, "u2", [100.01])

        service.recalculate("u1")
        service.recalculate("u2")

        assert store.get_document("carts/u1")["shipping"] == 1
        assert store.get_document("carts/u1")["tax"] == pytest.approx(20)
        assert store.get_document("carts/u2")["shipping"] == 0
        assert store.get_document("carts/u2")["tax"] == pytest.approx(20.002)

    def test_other_cart_fields_untouched(self, store, service):
        _seed(store, "u1", [10], cart={"name": "Ada", "currency": "EUR", "tax": 99})

        service.recalculate("u1")

        assert store.get_document("carts/u1") == {
            "name": "Ada",
            "currency": "EUR",
            "tax": pytest.approx(2),
            "shipping": 1,
        }

    def test_idempotent_on_unchanged_items(self, store, service):
        _seed(store, "u1", [12.5, 40, 7.25])

        first = service.recalculate("u1")
        after_first = store.get_document("carts/u1")
        second = service.recalculate("u1")

        assert first == second
        assert store.get_document("carts/u1") == after_first

    def test_recomputes_from_current_items(self, store, service):
        _seed(store, "u1", [10, 20])
        service.recalculate("u1")

        store.set_document("carts/u1/items/item2", {"price": 90})
        service.recalculate("u1")

        assert store.get_document("carts/u1")["shipping"] == 0
        assert store.get_document("carts/u1")["tax"] == pytest.approx(24)

    def test_other_owners_unaffected(self, store, service):
        _seed(store, "u1", [10])
        _seed(store, "u2", [50])

        service.recalculate("u1")

        assert store.get_document("carts/u2") == {}

    def test_dry_run_does_not_write(self, store, service):
        _seed(store, "u1", [10, 20, 5])

        result = service.recalculate("u1", dry_run=True)

        assert result.written is False
        assert result.totals.shipping == 3
        assert store.get_document("carts/u1") == {}

    @pytest.mark.parametrize("owner_id", ["", "u1/items", "/"])
    def test_invalid_owner_id(self, service, owner_id):
        with pytest.raises(InvalidOwnerIdError):
            service.recalculate(owner_id)

    def test_invalid_owner_id_is_a_value_error(self, service):
        with pytest.raises(ValueError):
            service.recalculate("")


class TestMissingCart:
    def test_update_mode_fails(self, store, service):
        store.set_document("carts/u1/items/a", {"price": 10})

        with pytest.raises(CartNotFoundError):
            service.recalculate("u1")

        assert store.get_document("carts/u1") is None

    def test_merge_mode_creates_cart(self, store):
        service = CartRecalculationService(
            store=store, config=HandlerConfig(write_mode=CartWriteMode.MERGE)
        )
        store.set_document("carts/u1/items/a", {"price": 10})

        service.recalculate("u1")

        assert store.get_document("carts/u1") == {
            "shipping": 1,
            "tax": pytest.approx(2),
        }

    def test_merge_mode_keeps_other_fields(self, store):
        service = CartRecalculationService(
            store=store, config=HandlerConfig(write_mode=CartWriteMode.MERGE)
        )
        _seed(store, "u1", [10], cart={"name": "Ada"})

        service.recalculate("u1")

        assert store.get_document("carts/u1")["name"] == "Ada"


class TestMalformedPrices:
    def _seed_malformed(self, store):
        store.set_document("carts/u1", {})
        store.set_document("carts/u1/items/good", {"price": 10})
        store.set_document("carts/u1/items/text", {"price": "12"})
        store.set_document("carts/u1/items/none", {"name": "sticker"})

    def test_zero_policy_counts_item_at_zero(self, store, service):
        self._seed_malformed(store)

        result = service.recalculate("u1")

        assert result.totals.items_count == 3
        assert result.totals.subtotal == 10
        assert sorted(result.malformed_item_ids) == ["none", "text"]
        assert store.get_document("carts/u1")["shipping"] == 3
        assert store.get_document("carts/u1")["tax"] == pytest.approx(2)

    def test_skip_policy_excludes_item(self, store):
        service = CartRecalculationService(
            store=store,
            config=HandlerConfig(malformed_price=MalformedPricePolicy.SKIP),
        )
        self._seed_malformed(store)

        result = service.recalculate("u1")

        assert result.totals.items_count == 1
        assert store.get_document("carts/u1")["shipping"] == 1

    def test_fail_policy_raises_without_writing(self, store):
        service = CartRecalculationService(
            store=store,
            config=HandlerConfig(malformed_price=MalformedPricePolicy.FAIL),
        )
        self._seed_malformed(store)

        with pytest.raises(MalformedItemError) as exc_info:
            service.recalculate("u1")

        assert exc_info.value.item_id in {"text", "none"}
        assert store.get_document("carts/u1") == {}

    def test_malformed_items_are_logged(self, store):
        log = MagicMock()
        service = CartRecalculationService(store=store, log=log)
        self._seed_malformed(store)

        service.recalculate("u1")

        logged = {call.args[1] for call in log.malformed_item.call_args_list}
        assert logged == {"text", "none"}


class TestStoreFailures:
    def test_read_failure_propagates(self):
        store = MagicMock()
        store.list_documents.side_effect = StoreReadError("unreachable")
        service = CartRecalculationService(store=store)

        with pytest.raises(StoreReadError):
            service.recalculate("u1")

        store.update_document.assert_not_called()

    def test_write_failure_propagates_and_is_logged(self):
        store = MagicMock()
        store.list_documents.return_value = []
        store.update_document.side_effect = StoreWriteError("denied")
        log = MagicMock()
        service = CartRecalculationService(store=store, log=log)

        with pytest.raises(StoreWriteError):
            service.recalculate("u1")

        log.recalculation_failed.assert_called_once()
        log.totals_written.assert_not_called()

    def test_no_internal_retry(self):
        store = MagicMock()
        store.list_documents.return_value = []
        store.update_document.side_effect = StoreWriteError("denied")
        service = CartRecalculationService(store=store)

        with pytest.raises(StoreWriteError):
            service.recalculate("u1")

        assert store.update_document.call_count == 1


class TestHandleEvent:
    @pytest.mark.parametrize("kind", list(ChangeKind))
    def test_every_change_kind_recalculates(self, store, service, kind):
        _seed(store, "u1", [10, 20, 5])

        result = service.handle_event(_event(kind=kind))

        assert result.owner_id == "u1"
        assert store.get_document("carts/u1")["shipping"] == 3

    def test_missing_user_id(self, service):
        event = DocumentWriteEvent(
            kind=ChangeKind.CREATED, path="carts/u1/items/a", params={"itemId": "a"}
        )

        with pytest.raises(InvalidEventError):
            service.handle_event(event)

    def test_unusable_user_id(self, service):
        with pytest.raises(InvalidEventError):
            service.handle_event(_event(owner_id="a/b"))

    def test_list_owner_ids(self, store, service):
        _seed(store, "u1", [1])
        store.set_document("carts/u2/items/a", {"price": 1})

        assert service.list_owner_ids() == ["u1", "u2"]


class TestTriggeredByStoreWrites:
    """End to end through the in-memory store's write triggers."""

    @pytest.fixture
    def wired(self, store, service):
        store.on_write(ITEM_DOCUMENT_PATTERN, service.handle_event)
        return store

    def test_adding_items_updates_cart(self, wired):
        wired.set_document("carts/u1", {"name": "Ada"})

        wired.set_document("carts/u1/items/a", {"price": 60})
        assert wired.get_document("carts/u1")["shipping"] == 1

        wired.set_document("carts/u1/items/b", {"price": 45})
        cart = wired.get_document("carts/u1")
        assert cart["shipping"] == 0
        assert cart["tax"] == pytest.approx(21)
        assert cart["name"] == "Ada"

    def test_price_update_recalculates(self, wired):
        wired.set_document("carts/u1", {})
        wired.set_document("carts/u1/items/a", {"price": 150})

        wired.set_document("carts/u1/items/a", {"price": 15})

        assert wired.get_document("carts/u1")["shipping"] == 1
        assert wired.get_document("carts/u1")["tax"] == pytest.approx(3)

    def test_deleting_last_item_zeroes_totals(self, wired):
        wired.set_document("carts/u1", {})
        wired.set_document("carts/u1/items/a", {"price": 30})
        assert wired.get_document("carts/u1")["shipping"] == 1

        wired.delete_document("carts/u1/items/a")

        assert wired.get_document("carts/u1") == {"shipping": 0, "tax": 0}
