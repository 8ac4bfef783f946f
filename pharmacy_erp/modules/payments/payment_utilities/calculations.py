"""
payment_utilities/calculations.py

Pure helpers for payment previews on a document being edited.

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs in the UI.
"""
from __future__ import annotations

from decimal import Decimal

from ....utils.numeric import D, ZERO, quantize

__all__ = [
    "clamp_non_negative",
    "remaining_due",
    "status_from_paid",
]


def clamp_non_negative(x: Decimal) -> Decimal:
    """Return x if x > 0, else 0."""
    return x if x > ZERO else ZERO


def remaining_due(total_amount, paid_amount, places: int = 2) -> Decimal:
    """
    remaining_due = total - paid, clamped at >= 0, both sides rounded to
    money places first.
    """
    total = quantize(D(total_amount), places)
    paid = quantize(D(paid_amount), places)
    return clamp_non_negative(total - paid)


def status_from_paid(total_amount, paid_amount, places: int = 2) -> str:
    """
    'paid'    if nothing remains due
    'unpaid'  if nothing was paid
    'partial' otherwise
    """
    if remaining_due(total_amount, paid_amount, places) == ZERO:
        return "paid"
    if quantize(D(paid_amount), places) <= ZERO:
        return "unpaid"
    return "partial"
