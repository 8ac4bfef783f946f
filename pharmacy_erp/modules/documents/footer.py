"""
documents/footer.py

Header totals of a purchase/sale document.

    gross_amount = sum(item.sub_total)
    total_amount = gross - discount_amount + tax_amount

Each percentage/amount pair is kept consistent against gross. Whichever
member of a pair the user just edited (`source`) is the input and the other
one is derived; for "items"/"init" both amounts follow their percentages.
The field named by `source` is never written here.
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from ...utils.numeric import D, HUNDRED, fmt, money, quantize, to_decimal
from .model import Document

__all__ = ["recalc_footer", "gross_of", "settled_totals", "FOOTER_SOURCES"]

_PAIRS = (
    ("tax_percentage", "tax_amount"),
    ("discount_percentage", "discount_amount"),
)

FOOTER_SOURCES = ("items", "init") + tuple(f for pair in _PAIRS for f in pair)


def gross_of(items) -> Decimal:
    return sum((D(i.sub_total) for i in items), Decimal("0"))


def _pair(gross: Decimal, pct_text: str, amt_text: str, from_amount: bool) -> tuple[str, str]:
    if from_amount:
        amt = to_decimal(amt_text)
        if amt is None:
            return "", amt_text
        if gross > 0:
            return fmt(amt / gross * HUNDRED), amt_text
        return pct_text, amt_text

    pct = to_decimal(pct_text)
    if pct is None:
        # percentage unset: an amount typed earlier stays as is
        return pct_text, amt_text
    return pct_text, fmt(gross * pct / HUNDRED)


def recalc_footer(document: Document, source: str = "items") -> Document:
    if source not in FOOTER_SOURCES:
        source = "items"

    gross = gross_of(document.items)
    values = {}
    for pct_field, amt_field in _PAIRS:
        pct, amt = _pair(
            gross,
            getattr(document, pct_field),
            getattr(document, amt_field),
            from_amount=(source == amt_field),
        )
        if source != pct_field:
            values[pct_field] = pct
        if source != amt_field:
            values[amt_field] = amt

    tax = D(values.get("tax_amount", document.tax_amount))
    discount = D(values.get("discount_amount", document.discount_amount))
    values["gross_amount"] = fmt(gross)
    values["total_amount"] = fmt(gross - discount + tax)
    return replace(document, **values)


def settled_totals(document: Document, places: int = 2) -> dict:
    """
    Footer amounts as they are stored: each line sub_total is rounded to
    `places` first and the totals are rebuilt from the rounded parts, so
    gross_amount always equals the sum of the stored sub_totals.
    """
    rows = [i for i in document.items if i.product_id is not None]
    gross = sum((quantize(D(i.sub_total), places) for i in rows), Decimal("0"))
    discount = quantize(D(document.discount_amount), places)
    tax = quantize(D(document.tax_amount), places)
    return {
        "gross_amount": money(gross, places),
        "discount_amount": money(discount, places),
        "tax_amount": money(tax, places),
        "total_amount": money(gross - discount + tax, places),
    }
