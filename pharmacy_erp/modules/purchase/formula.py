"""
purchase/formula.py

Line recalculation for purchase invoices.

recalc_item(item, changed_field) returns a new LineItem whose derived fields
agree with the field the user just changed. The changed field itself is
never rewritten, so running it twice gives the same line.

Quantities
    unit_quantity = pack_quantity * pack_size + loose_units
    editing unit_quantity splits it back into whole packs and loose units;
    without a pack size unit_quantity is the only quantity.
    pack_quantity and pack_bonus may be part packs (1.5 packs of 10 = 15
    units); unit_quantity, loose_units and unit_bonus are whole numbers.
    quantity      = unit_quantity + bonus units (pack_bonus * pack_size + unit_bonus)

Cost
    sub_total = unit_quantity * unit cost * (1 - discount / 100)
    where unit cost is pack_purchase_price / pack_size when both are known.
    Bonus units are free: they count towards average cost, not sub_total.
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Optional

from ...config import SETTINGS
from ...utils.numeric import D, HUNDRED, coerce, commit, floor_div, fmt, to_decimal
from ..documents.model import LineItem
from .costing import average_cost, margin_of, price_for_margin

__all__ = [
    "QUANTITY_FIELDS",
    "PRICE_PAIRS",
    "FIELD_RULES",
    "TEXT_FIELDS",
    "COMMIT_FIELDS",
    "pack_size_of",
    "recalc_item",
    "edit_item",
    "commit_item",
    "select_product",
    "select_batch",
]

QUANTITY_FIELDS = ("pack_quantity", "loose_units", "unit_quantity", "pack_bonus", "unit_bonus")

PRICE_PAIRS = (
    ("pack_purchase_price", "unit_purchase_price"),
    ("pack_sale_price", "unit_sale_price"),
    ("whole_sale_pack_price", "whole_sale_unit_price"),
)

# field -> (decimal point allowed, sign allowed)
FIELD_RULES = {f: (False, False) for f in QUANTITY_FIELDS}
# a part pack is allowed; single units are whole
FIELD_RULES.update({"pack_quantity": (True, False), "pack_bonus": (True, False)})
FIELD_RULES.update({f: (True, False) for pair in PRICE_PAIRS for f in pair})
FIELD_RULES.update({
    "item_discount_percentage": (True, True),
    "margin": (True, True),
    "whole_sale_margin": (True, True),
})

TEXT_FIELDS = ("batch_number", "expiry")

COMMIT_FIELDS = tuple(f for pair in PRICE_PAIRS for f in pair) + (
    "item_discount_percentage",
    "margin",
    "whole_sale_margin",
)


def pack_size_of(item) -> Optional[Decimal]:
    ps = to_decimal(item.pack_size)
    return ps if ps is not None and ps > 0 else None


def _quantities(item: LineItem, changed: str, ps: Optional[Decimal]) -> dict:
    v = {}
    if ps is not None:
        if changed in ("pack_quantity", "loose_units"):
            packs = to_decimal(item.pack_quantity)
            loose = to_decimal(item.loose_units)
            if packs is None and loose is None:
                v["unit_quantity"] = ""
            else:
                v["unit_quantity"] = fmt(D(packs) * ps + D(loose))
        elif changed in ("unit_quantity", "product_select"):
            units = to_decimal(item.unit_quantity)
            if units is None:
                if changed == "unit_quantity":
                    v["pack_quantity"] = ""
                    v["loose_units"] = ""
            else:
                packs = floor_div(units, ps)
                v["pack_quantity"] = fmt(packs)
                v["loose_units"] = fmt(units - packs * ps)

    units = to_decimal(v.get("unit_quantity", item.unit_quantity))
    bonus = D(item.unit_bonus)
    if ps is not None:
        bonus += D(item.pack_bonus) * ps
    if units is None and bonus == 0:
        v["quantity"] = ""
    else:
        v["quantity"] = fmt(D(units) + bonus)
    return v


def _prices(item: LineItem, changed: str, ps: Optional[Decimal]) -> dict:
    v = {}
    if ps is None:
        return v
    for pack_f, unit_f in PRICE_PAIRS:
        if changed == pack_f:
            p = to_decimal(getattr(item, pack_f))
            v[unit_f] = "" if p is None else fmt(p / ps)
        elif changed == unit_f:
            u = to_decimal(getattr(item, unit_f))
            v[pack_f] = "" if u is None else fmt(u * ps)
    return v


def _line_cost(item: LineItem, ps: Optional[Decimal]):
    """(sub_total, net unit cost or None)"""
    factor = 1 - D(item.item_discount_percentage) / HUNDRED
    units = D(item.unit_quantity)
    ppp = to_decimal(item.pack_purchase_price)
    upp = to_decimal(item.unit_purchase_price)
    if ps is not None and ppp is not None:
        return units * ppp / ps * factor, ppp / ps * factor
    if upp is not None:
        return units * upp * factor, upp * factor
    return Decimal("0"), None


def _margins(item: LineItem, changed: str, ps: Optional[Decimal], avg) -> dict:
    v = {}
    for margin_f, unit_f, pack_f in (
        ("margin", "unit_sale_price", "pack_sale_price"),
        ("whole_sale_margin", "whole_sale_unit_price", "whole_sale_pack_price"),
    ):
        if changed == margin_f:
            price = price_for_margin(getattr(item, margin_f), avg)
            if price is not None:
                v[unit_f] = fmt(price)
                if ps is not None:
                    v[pack_f] = fmt(price * ps)
        else:
            v[margin_f] = fmt(margin_of(getattr(item, unit_f), avg))
    return v


def recalc_item(item: LineItem, changed_field: str, *, policy: Optional[str] = None) -> LineItem:
    ps = pack_size_of(item)
    line = replace(item, **_quantities(item, changed_field, ps))
    line = replace(line, **_prices(line, changed_field, ps))

    sub_total, net_unit_cost = _line_cost(line, ps)
    avg = average_cost(
        line_cost=sub_total,
        incoming=D(line.quantity),
        stock=line.current_quantity,
        stock_avg=line.stock_avg_price,
        net_unit_cost=net_unit_cost,
        policy=policy or SETTINGS.avg_price_policy,
    )
    line = replace(line, avg_price=fmt(avg), **_margins(line, changed_field, ps, avg))
    return replace(line, sub_total=fmt(sub_total))


def edit_item(item: LineItem, field: str, raw, *, policy: Optional[str] = None) -> LineItem:
    """Apply one keystroke/paste to `field` and recalculate."""
    if field in TEXT_FIELDS:
        return recalc_item(replace(item, **{field: raw or ""}), field, policy=policy)
    if field not in FIELD_RULES:
        raise KeyError(f"'{field}' is not an editable purchase line field")
    decimal, negative = FIELD_RULES[field]
    value = coerce(raw, decimal=decimal, negative=negative)
    return recalc_item(replace(item, **{field: value}), field, policy=policy)


def commit_item(item: LineItem, field: str, *, places: int = 2, policy: Optional[str] = None) -> LineItem:
    """Blur: money/percentage fields settle at `places` decimals."""
    if field not in COMMIT_FIELDS:
        return item
    value = commit(getattr(item, field), places)
    if value == getattr(item, field):
        return item
    return recalc_item(replace(item, **{field: value}), field, policy=policy)


def _unit_of(pack: str, unit: str, ps: Optional[Decimal]) -> str:
    if unit:
        return unit
    p = to_decimal(pack)
    if p is None or ps is None:
        return ""
    return fmt(p / ps)


def select_product(item: LineItem, product, *, reserved=None, policy: Optional[str] = None) -> LineItem:
    """
    Seed a row from the product master.

    Re-selecting the same product keeps the chosen batch; typed quantities
    are kept either way. On-hand stock used for weighting excludes what this
    document already brought in (edit mode).
    """
    same = item.product_id == product.product_id
    ps = to_decimal(product.pack_size)
    ps = ps if ps is not None and ps > 0 else None
    on_hand = D(product.quantity) - D(reserved)
    seeded = replace(
        item,
        product_id=product.product_id,
        product_name=product.name,
        pack_size=product.pack_size,
        has_batches=product.has_batches,
        batch_number=item.batch_number if same else "",
        expiry=item.expiry if same else "",
        pack_purchase_price=product.pack_purchase_price,
        unit_purchase_price=_unit_of(product.pack_purchase_price, product.unit_purchase_price, ps),
        pack_sale_price=product.pack_sale_price,
        unit_sale_price=_unit_of(product.pack_sale_price, product.unit_sale_price, ps),
        whole_sale_pack_price=product.whole_sale_pack_price,
        whole_sale_unit_price=_unit_of(product.whole_sale_pack_price, product.whole_sale_unit_price, ps),
        stock_avg_price=product.avg_price,
        current_quantity=fmt(on_hand if on_hand > 0 else Decimal("0")),
        is_narcotic=product.is_narcotic,
        is_custom_price=False,
        flags=frozenset(),
    )
    return recalc_item(seeded, "product_select", policy=policy)


def select_batch(item: LineItem, batch, *, policy: Optional[str] = None) -> LineItem:
    """Pick an existing batch: batch number and expiry only, quantities untouched."""
    chosen = replace(item, batch_number=batch.batch_number, expiry=batch.expiry or "")
    return recalc_item(chosen, "batch_select", policy=policy)
