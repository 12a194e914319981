"""Result types for cart recalculation."""

from __future__ import annotations

from dataclasses import dataclass

from cart_totals.pricing import CartTotals


@dataclass(frozen=True, slots=True)
class RecalculationResult:
    """Outcome of one ``recalculate`` call.

    The platform ignores it; the CLI and tests read it.
    """

    owner_id: str
    totals: CartTotals
    malformed_item_ids: tuple[str, ...] = ()
    written: bool = True
