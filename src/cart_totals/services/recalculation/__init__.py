"""Cart recalculation service: keeps shipping and tax current."""

from __future__ import annotations

from cart_totals.services.recalculation.logger import RecalculationLogger
from cart_totals.services.recalculation.service import CartRecalculationService
from cart_totals.services.recalculation.types import RecalculationResult

__all__ = [
    "CartRecalculationService",
    "RecalculationLogger",
    "RecalculationResult",
]
