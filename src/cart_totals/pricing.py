"""Shipping and tax rules for a cart."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import math

# VAT is a flat 20%.
TAX_RATE = 0.2

# Shipping costs one currency unit per item unless the subtotal is strictly
# above this threshold.
FREE_SHIPPING_THRESHOLD = 100
SHIPPING_PER_ITEM = 1


@dataclass(frozen=True, slots=True)
class CartTotals:
    """Aggregates and derived fields for one cart's item set."""

    items_count: int
    subtotal: float
    shipping: float
    tax: float

    def as_update(self) -> dict[str, float]:
        """Fields written onto the cart document, and nothing else."""
        return {"shipping": self.shipping, "tax": self.tax}


def calculate_tax(subtotal: float) -> float:
    return subtotal * TAX_RATE


def calculate_shipping(subtotal: float, items_count: int) -> float:
    if subtotal > FREE_SHIPPING_THRESHOLD:
        return 0
    return items_count * SHIPPING_PER_ITEM


def compute_totals(prices: Iterable[float]) -> CartTotals:
    """Derive cart totals from the prices of every item currently in the cart.

    Args:
        prices: One price per counted item. Callers decide beforehand how
            malformed prices are represented (or left out).

    Returns:
        CartTotals recomputed from scratch for the given prices.
    """
    price_list = list(prices)
    items_count = len(price_list)
    subtotal = math.fsum(price_list)
    return CartTotals(
        items_count=items_count,
        subtotal=subtotal,
        shipping=calculate_shipping(subtotal, items_count),
        tax=calculate_tax(subtotal),
    )


def parse_price(raw: object) -> float | None:
    """Return ``raw`` as a float price, or None when it is not a usable number.

    Booleans, strings, missing values, NaN and infinities are all rejected.
    """
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    price = float(raw)
    if not math.isfinite(price):
        return None
    return price
