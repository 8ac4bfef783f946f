"""
sales/formula.py

Line recalculation for sale invoices.

A sale line is priced and counted in one unit, chosen by the document:
  retail           -> single units at the retail unit price
  wholesale 'unit' -> single units at the wholesale unit price
  wholesale 'pack' -> whole packs at the wholesale pack price

`stock_units` is the available stock in single units (own reservation
included in edit mode); `current_quantity` is that figure in the active
unit, whole packs only in pack mode.

    sub_total = quantity * price * (1 - discount / 100)
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Optional

from ...config import SETTINGS
from ...utils.numeric import D, HUNDRED, coerce, commit, floor_div, fmt, to_decimal
from ..documents.model import PACK, RETAIL, LineItem

__all__ = [
    "FIELD_RULES",
    "TEXT_FIELDS",
    "COMMIT_FIELDS",
    "recalc_item",
    "edit_item",
    "commit_item",
    "seed_price",
    "select_product",
    "select_batch",
    "switch_wholesale_type",
    "reprice_item",
    "units_in_mode",
]

FIELD_RULES = {
    "quantity": (False, False),
    "price": (True, False),
    "item_discount_percentage": (True, True),
}

TEXT_FIELDS = ("batch_number",)

COMMIT_FIELDS = ("price", "item_discount_percentage")


def _ps(item_or_product) -> Optional[Decimal]:
    ps = to_decimal(item_or_product.pack_size)
    return ps if ps is not None and ps > 0 else None


def units_in_mode(units, pack_size, mode: str) -> str:
    """Single-unit stock expressed in the active unit ('' when unknown)."""
    u = to_decimal(units)
    if u is None:
        return ""
    ps = to_decimal(pack_size)
    if mode == PACK and ps is not None and ps > 0:
        return fmt(floor_div(u, ps))
    return fmt(u)


def recalc_item(item: LineItem, changed_field: str, mode: str = RETAIL) -> LineItem:
    v = {}
    if changed_field == "price":
        v["is_custom_price"] = True
    if item.stock_units != "":
        v["current_quantity"] = units_in_mode(item.stock_units, item.pack_size, mode)

    factor = 1 - D(item.item_discount_percentage) / HUNDRED
    v["sub_total"] = fmt(D(item.quantity) * D(item.price) * factor)
    return replace(item, **v)


def edit_item(item: LineItem, field: str, raw, mode: str = RETAIL) -> LineItem:
    if field in TEXT_FIELDS:
        return recalc_item(replace(item, **{field: raw or ""}), field, mode)
    if field not in FIELD_RULES:
        raise KeyError(f"'{field}' is not an editable sale line field")
    decimal, negative = FIELD_RULES[field]
    value = coerce(raw, decimal=decimal, negative=negative)
    return recalc_item(replace(item, **{field: value}), field, mode)


def commit_item(item: LineItem, field: str, mode: str = RETAIL, *, places: int = 2) -> LineItem:
    if field not in COMMIT_FIELDS:
        return item
    value = commit(getattr(item, field), places)
    if value == getattr(item, field):
        return item
    # rounding on blur is not a price decision
    return recalc_item(replace(item, **{field: value}), "commit", mode)


def seed_price(product, mode: str, customer_price: str = "") -> tuple[str, bool]:
    """
    Starting price for `mode` and whether it is customer specific.

    wholesale precedence: customer pack price, wholesale price for the unit,
    regular sale price for the unit, wholesale unit price scaled to a pack.
    """
    ps = _ps(product)
    cust = to_decimal(customer_price)

    if mode == RETAIL:
        if product.unit_sale_price:
            return product.unit_sale_price, False
        p = to_decimal(product.pack_sale_price)
        return (fmt(p / ps) if p is not None and ps is not None else ""), False

    if mode == PACK:
        if cust is not None:
            return fmt(cust), True
        for candidate in (product.whole_sale_pack_price, product.pack_sale_price):
            if to_decimal(candidate) is not None:
                return candidate, False
        wsu = to_decimal(product.whole_sale_unit_price)
        if wsu is not None and ps is not None:
            return fmt(wsu * ps), False
        return "", False

    # wholesale unit
    if cust is not None and ps is not None:
        return fmt(cust / ps), True
    for candidate in (product.whole_sale_unit_price, product.unit_sale_price):
        if to_decimal(candidate) is not None:
            return candidate, False
    for pack in (product.whole_sale_pack_price, product.pack_sale_price):
        p = to_decimal(pack)
        if p is not None and ps is not None:
            return fmt(p / ps), False
    return "", False


def select_product(
    item: LineItem,
    product,
    *,
    mode: str = RETAIL,
    customer_price: str = "",
    reserved=None,
    default_quantity: Optional[str] = None,
) -> LineItem:
    """
    Seed a sale row from the product master.

    Quantity is preset only when the row has none. Re-selecting the same
    product keeps batch, expiry and the batch stock snapshot.
    """
    same = item.product_id == product.product_id
    price, custom = seed_price(product, mode, customer_price)
    if same and item.has_batches:
        stock_units = item.stock_units
    elif product.has_batches:
        stock_units = ""
    else:
        stock_units = fmt(D(product.quantity) + D(reserved))

    seeded = replace(
        item,
        product_id=product.product_id,
        product_name=product.name,
        pack_size=product.pack_size,
        has_batches=product.has_batches,
        batch_number=item.batch_number if same else "",
        expiry=item.expiry if same else "",
        pack_purchase_price=product.pack_purchase_price,
        unit_purchase_price=product.unit_purchase_price,
        pack_sale_price=product.pack_sale_price,
        unit_sale_price=product.unit_sale_price,
        whole_sale_pack_price=product.whole_sale_pack_price,
        whole_sale_unit_price=product.whole_sale_unit_price,
        avg_price=product.avg_price,
        customer_price=customer_price or "",
        price=price,
        is_custom_price=custom,
        is_narcotic=product.is_narcotic,
        quantity=item.quantity or (default_quantity or SETTINGS.default_sale_quantity),
        stock_units=stock_units,
        current_quantity="" if stock_units == "" else item.current_quantity,
        flags=frozenset(),
    )
    return recalc_item(seeded, "product_select", mode)


def select_batch(item: LineItem, batch, *, mode: str = RETAIL, reserved=None) -> LineItem:
    chosen = replace(
        item,
        batch_number=batch.batch_number,
        expiry=batch.expiry or "",
        stock_units=fmt(D(batch.quantity) + D(reserved)),
    )
    return recalc_item(chosen, "batch_select", mode)


def switch_wholesale_type(item: LineItem, from_mode: str, to_mode: str) -> LineItem:
    """
    Convert a row between unit and pack pricing.

    unit -> pack: price * pack_size (a customer pack price wins), quantity
                  floored to whole packs, at least one pack when any quantity.
    pack -> unit: price / pack_size, quantity * pack_size.
    Retail and wholesale unit share single units: nothing to convert.
    """
    if item.product_id is None or PACK not in (from_mode, to_mode) or from_mode == to_mode:
        return recalc_item(item, "wholesale_type", to_mode)
    ps = _ps(item)
    if ps is None:
        return recalc_item(item, "wholesale_type", to_mode)

    price = to_decimal(item.price)
    qty = to_decimal(item.quantity)
    cust = to_decimal(item.customer_price)
    v = {}
    if to_mode == PACK:
        if cust is not None:
            v["price"] = fmt(cust)
        elif price is not None:
            v["price"] = fmt(price * ps)
        if qty is not None:
            packs = floor_div(qty, ps)
            if qty > 0 and packs < 1:
                packs = Decimal("1")
            v["quantity"] = fmt(packs)
    else:
        if cust is not None:
            v["price"] = fmt(cust / ps)
        elif price is not None:
            v["price"] = fmt(price / ps)
        if qty is not None:
            v["quantity"] = fmt(qty * ps)
    return recalc_item(replace(item, **v), "wholesale_type", to_mode)


def reprice_item(item: LineItem, product, mode: str, customer_price: str = "") -> LineItem:
    """Master data refresh: rows priced by hand keep their price."""
    if item.product_id is None or item.is_custom_price:
        return item
    price, custom = seed_price(product, mode, customer_price)
    line = replace(
        item,
        price=price,
        is_custom_price=custom,
        customer_price=customer_price or "",
        pack_purchase_price=product.pack_purchase_price,
        whole_sale_pack_price=product.whole_sale_pack_price,
        whole_sale_unit_price=product.whole_sale_unit_price,
    )
    return recalc_item(line, "reprice", mode)
