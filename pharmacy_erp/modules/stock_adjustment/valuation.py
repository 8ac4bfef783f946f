"""
stock_adjustment/valuation.py

A stock count against the system quantity.

    diff_qty       = actual_qty - available_qty   (signed)
    worth_adjusted = |diff_qty| * unit_cost
    total_worth    = sum(worth_adjusted)

unit_cost is seeded from the product's unit purchase price and may be
typed over; it is rounded to money places on blur.
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from ...utils.numeric import D, coerce, commit, fmt, to_decimal
from ..documents.model import StockAdjustment, StockAdjustmentItem

__all__ = [
    "recalc_adjustment_item",
    "recalc_adjustment",
    "recalc_document",
    "edit_item",
    "commit_item",
    "select_product",
    "select_batch",
]


def recalc_adjustment_item(item: StockAdjustmentItem) -> StockAdjustmentItem:
    actual = to_decimal(item.actual_qty)
    if item.product_id is None or actual is None:
        return replace(item, diff_qty="", worth_adjusted="0")
    diff = actual - D(item.available_qty)
    worth = abs(diff) * D(item.unit_cost)
    return replace(item, diff_qty=fmt(diff), worth_adjusted=fmt(worth))


def recalc_adjustment(items) -> tuple[tuple, str]:
    """(items', total_worth) with total_worth at full precision."""
    out = tuple(recalc_adjustment_item(i) for i in items)
    total = sum((D(i.worth_adjusted) for i in out), Decimal("0"))
    return out, fmt(total)


def recalc_document(adjustment: StockAdjustment) -> StockAdjustment:
    items, total = recalc_adjustment(adjustment.items)
    return replace(adjustment, items=items, total_worth=total)


NUMERIC_FIELDS = ("actual_qty", "unit_cost")


def edit_item(item: StockAdjustmentItem, field: str, raw) -> StockAdjustmentItem:
    if field in NUMERIC_FIELDS:
        return recalc_adjustment_item(replace(item, **{field: coerce(raw, decimal=True)}))
    if field == "batch_number":
        return recalc_adjustment_item(replace(item, batch_number=raw or ""))
    raise KeyError(f"'{field}' is not an editable adjustment field")


def commit_item(item: StockAdjustmentItem, field: str, places: int = 2) -> StockAdjustmentItem:
    """Blur: the unit cost settles at money places; other fields are left as typed."""
    if field != "unit_cost" or item.unit_cost == commit(item.unit_cost, places):
        return item
    return recalc_adjustment_item(replace(item, unit_cost=commit(item.unit_cost, places)))


def _unit_cost(product) -> str:
    """Unit purchase price, or pack purchase price over pack size."""
    if to_decimal(product.unit_purchase_price) is not None:
        return product.unit_purchase_price
    ppp = to_decimal(product.pack_purchase_price)
    ps = to_decimal(product.pack_size)
    if ppp is not None and ps is not None and ps > 0:
        return fmt(ppp / ps)
    return ""


def select_product(item: StockAdjustmentItem, product) -> StockAdjustmentItem:
    same = item.product_id == product.product_id
    if product.has_batches:
        available = item.available_qty if same and item.batch_number else ""
    else:
        available = fmt(D(product.quantity))
    seeded = replace(
        item,
        product_id=product.product_id,
        product_name=product.name,
        has_batches=product.has_batches,
        batch_number=item.batch_number if same else "",
        expiry=item.expiry if same else "",
        available_qty=available,
        unit_cost=_unit_cost(product),
    )
    return recalc_adjustment_item(seeded)


def select_batch(item: StockAdjustmentItem, batch) -> StockAdjustmentItem:
    chosen = replace(
        item,
        batch_number=batch.batch_number,
        expiry=batch.expiry or "",
        available_qty=fmt(D(batch.quantity)),
    )
    return recalc_adjustment_item(chosen)
