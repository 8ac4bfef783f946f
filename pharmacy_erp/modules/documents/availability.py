"""
documents/availability.py

Stock and price-floor checks for sale lines. At keystroke time these only
set advisory flags on the line; the same checks become hard errors at
submit time (see sales.validation).
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from ...utils.numeric import D, ZERO, to_decimal
from .model import (
    FLAG_BELOW_COST,
    FLAG_EXCEEDS_AVAILABLE,
    PACK,
    PURCHASE,
    RETAIL,
    Document,
    LineItem,
)

__all__ = [
    "Availability",
    "effective_available",
    "check_availability",
    "price_floor",
    "check_price_floor",
    "flag_item",
    "flag_document",
]


@dataclass(frozen=True)
class Availability:
    ok: bool
    excess: Decimal


def effective_available(available, reserved=None) -> Decimal:
    """On-hand stock plus this document's own pre-edit quantity (edit mode)."""
    return D(available) + D(reserved)


def check_availability(requested, available) -> Availability:
    excess = D(requested) - D(available)
    if excess > 0:
        return Availability(False, excess)
    return Availability(True, ZERO)


def price_floor(pack_purchase_price, pack_size, wholesale_type: str):
    """Minimum wholesale price in the active unit, or None if unknown."""
    ppp = to_decimal(pack_purchase_price)
    if ppp is None:
        return None
    if wholesale_type == PACK:
        return ppp
    ps = to_decimal(pack_size)
    if ps is None or ps <= 0:
        return None
    return ppp / ps


def check_price_floor(price, pack_purchase_price, pack_size, wholesale_type: str) -> bool:
    """True when `price` is at or above the floor (or either side is unknown)."""
    p = to_decimal(price)
    floor = price_floor(pack_purchase_price, pack_size, wholesale_type)
    if p is None or floor is None:
        return True
    return p >= floor


def flag_item(item: LineItem, document: Document) -> LineItem:
    flags = set()
    if item.product_id is not None:
        if document.kind == PURCHASE:
            margin = to_decimal(item.margin)
            if margin is not None and margin <= 0:
                flags.add(FLAG_BELOW_COST)
        else:
            if item.current_quantity != "" and to_decimal(item.quantity) is not None:
                if not check_availability(item.quantity, item.current_quantity).ok:
                    flags.add(FLAG_EXCEEDS_AVAILABLE)
            mode = document.sale_mode
            if mode != RETAIL and not check_price_floor(
                item.price, item.pack_purchase_price, item.pack_size, mode
            ):
                flags.add(FLAG_BELOW_COST)
    flags = frozenset(flags)
    return item if flags == item.flags else replace(item, flags=flags)


def flag_document(document: Document) -> Document:
    items = tuple(flag_item(i, document) for i in document.items)
    return replace(document, items=items)
