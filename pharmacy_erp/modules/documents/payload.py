"""
documents/payload.py

Full replacement payloads for the persistence boundary.

Every numeric field leaves here as definite text: money and percentages
at money places, quantities as plain decimals. Unset and partial entries
('-', '.') become zero, except the supplier's invoice amount, which
stays empty when it was never entered. Wholesale pack quantities are sent in single units.
Header totals come from footer.settled_totals, so the stored gross is the
sum of the stored line sub_totals.
A posted number is only sent back for a document that already has one.
"""
from __future__ import annotations

from ...config import SETTINGS
from ...utils.numeric import D, commit, fmt, money
from ..payments.payment_utilities.calculations import status_from_paid
from ..payments.payment_utilities.linkage import resolved_payment
from .footer import settled_totals
from .model import PACK, PURCHASE, Document, StockAdjustment

__all__ = ["build_payload", "build_adjustment_payload"]

_PURCHASE_MONEY = (
    "pack_purchase_price",
    "unit_purchase_price",
    "pack_sale_price",
    "unit_sale_price",
    "whole_sale_pack_price",
    "whole_sale_unit_price",
    "whole_sale_margin",
    "item_discount_percentage",
    "margin",
    "avg_price",
    "sub_total",
)

_PURCHASE_QTY = ("pack_size", "pack_quantity", "loose_units", "unit_quantity", "pack_bonus", "unit_bonus", "quantity")


def _qty(text) -> str:
    return fmt(D(text))


def _purchase_item(item, places: int) -> dict:
    out = {
        "product_id": item.product_id,
        "batch_number": item.batch_number,
        "expiry": item.expiry,
    }
    out.update({f: _qty(getattr(item, f)) for f in _PURCHASE_QTY})
    out.update({f: money(getattr(item, f), places) for f in _PURCHASE_MONEY})
    return out


def _sale_item(item, mode: str, places: int) -> dict:
    qty = D(item.quantity)
    ps = D(item.pack_size)
    if mode == PACK and ps > 0:
        qty = qty * ps
    return {
        "product_id": item.product_id,
        "batch_number": item.batch_number,
        "expiry": item.expiry,
        "unit": mode,
        "pack_size": _qty(item.pack_size),
        "quantity": fmt(qty),
        "price": money(item.price, places),
        "item_discount_percentage": money(item.item_discount_percentage, places),
        "sub_total": money(item.sub_total, places),
        "is_custom_price": item.is_custom_price,
        "is_narcotic": item.is_narcotic,
    }


def build_payload(document: Document, *, places: int = None) -> dict:
    places = SETTINGS.money_places if places is None else places
    rows = [i for i in document.items if i.product_id is not None]
    totals = settled_totals(document, places)
    paid = resolved_payment(document, places, total=totals["total_amount"])
    payload = {
        "document_id": document.document_id,
        "invoice_type": document.invoice_type,
        "date": document.date,
        "remarks": document.remarks,
        "discount_percentage": money(document.discount_percentage, places),
        "tax_percentage": money(document.tax_percentage, places),
        **totals,
        document.payment_field: paid,
        "payment_status": status_from_paid(totals["total_amount"], paid, places),
    }
    if document.posted_number:
        payload["posted_number"] = document.posted_number

    if document.kind == PURCHASE:
        payload.update({
            "supplier_id": document.supplier_id,
            "invoice_number": document.invoice_number.strip(),
            "invoice_amount": commit(document.invoice_amount, places),
            "items": [_purchase_item(i, places) for i in rows],
        })
    else:
        mode = document.sale_mode
        payload.update({
            "customer_id": document.customer_id,
            "sale_type": document.sale_type,
            "wholesale_type": document.wholesale_type,
            "doctor_name": document.doctor_name.strip(),
            "patient_name": document.patient_name.strip(),
            "items": [_sale_item(i, mode, places) for i in rows],
        })
    return payload


def build_adjustment_payload(adjustment: StockAdjustment, *, places: int = None) -> dict:
    places = SETTINGS.money_places if places is None else places
    payload = {
        "document_id": adjustment.document_id,
        "date": adjustment.date,
        "remarks": adjustment.remarks,
        "total_worth": money(adjustment.total_worth, places),
        "items": [
            {
                "product_id": i.product_id,
                "batch_number": i.batch_number,
                "expiry": i.expiry,
                "available_qty": _qty(i.available_qty),
                "actual_qty": _qty(i.actual_qty),
                "diff_qty": _qty(i.diff_qty),
                "unit_cost": money(i.unit_cost, places),
                "worth_adjusted": money(i.worth_adjusted, places),
            }
            for i in adjustment.items
            if i.product_id is not None
        ],
    }
    if adjustment.posted_number:
        payload["posted_number"] = adjustment.posted_number
    return payload
