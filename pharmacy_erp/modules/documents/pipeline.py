"""
documents/pipeline.py

apply_event(document, event) -> document'

Every edit goes through the same one-way pipeline:

    line recalculation (line events only)
      -> footer totals
      -> payment linkage
      -> advisory flags (stock, price floor, margin)

No stage feeds back into an earlier one and the input document is never
modified. Notices raised by the event (duplicate lines) are returned on
the new snapshot's `notices`; they do not survive the next event.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Optional

from ...config import SETTINGS, EngineSettings
from ...utils.numeric import D, coerce, commit, fmt
from ..payments.payment_utilities import linkage
from ..purchase import formula as purchase_formula
from ..sales import formula as sales_formula
from ..stock_adjustment import valuation
from .availability import flag_document
from .duplicates import guard_row, refuse_batch_text
from .footer import FOOTER_SOURCES, recalc_footer
from .model import (
    PACK,
    PURCHASE,
    RETAIL,
    SALE,
    Document,
    LineItem,
    StockAdjustment,
    StockAdjustmentItem,
)

_log = logging.getLogger(__name__)

__all__ = [
    "ItemEdited",
    "HeaderEdited",
    "FieldCommitted",
    "ProductSelected",
    "BatchSelected",
    "RowAdded",
    "RowRemoved",
    "InvoiceTypeChanged",
    "SaleTypeChanged",
    "WholesaleTypeChanged",
    "PaymentEdited",
    "PaymentCommitted",
    "PaymentRelinked",
    "MasterPricesRefreshed",
    "apply_event",
    "load_document",
    "reservations_of",
]


# ---------- Events ----------

@dataclass(frozen=True)
class ItemEdited:
    row: int
    field: str
    value: Any


@dataclass(frozen=True)
class HeaderEdited:
    field: str
    value: Any


@dataclass(frozen=True)
class FieldCommitted:
    """Blur of a money/percentage field; `row` is None for header fields."""
    field: str
    row: Optional[int] = None


@dataclass(frozen=True)
class ProductSelected:
    row: int
    product: Any
    customer_price: str = ""


@dataclass(frozen=True)
class BatchSelected:
    row: int
    batch: Any


@dataclass(frozen=True)
class RowAdded:
    pass


@dataclass(frozen=True)
class RowRemoved:
    row: int


@dataclass(frozen=True)
class InvoiceTypeChanged:
    invoice_type: str


@dataclass(frozen=True)
class SaleTypeChanged:
    sale_type: str


@dataclass(frozen=True)
class WholesaleTypeChanged:
    wholesale_type: str


@dataclass(frozen=True)
class PaymentEdited:
    value: Any


@dataclass(frozen=True)
class PaymentCommitted:
    pass


@dataclass(frozen=True)
class PaymentRelinked:
    pass


@dataclass(frozen=True)
class MasterPricesRefreshed:
    """Fresh product masters (by product_id) and customer pack prices."""
    products: dict = field(default_factory=dict)
    customer_prices: dict = field(default_factory=dict)


HEADER_NUMERIC = {
    "tax_percentage": (True, True),
    "discount_percentage": (True, True),
    "tax_amount": (True, False),
    "discount_amount": (True, False),
    "invoice_amount": (True, False),
}

HEADER_TEXT = ("invoice_number", "date", "remarks", "doctor_name", "patient_name")

HEADER_PARTY = ("supplier_id", "customer_id")


# ---------- Helpers ----------

def _reserved_for(document: Document, product_id, batch: str = "") -> Decimal:
    if document.kind == PURCHASE:
        # product level: all batches of this product on the stored document
        return sum(
            (D(q) for (pid, _b), q in document.reserved.items() if pid == product_id),
            Decimal("0"),
        )
    return D(document.reserved.get((product_id, batch or "")))


def reservations_of(document: Document) -> dict:
    """Quantities a stored document holds, in single units, by (product, batch)."""
    out: dict = {}
    for it in document.items:
        if it.product_id is None:
            continue
        qty = D(it.quantity)
        ps = purchase_formula.pack_size_of(it)
        if document.kind == SALE and document.sale_mode == PACK and ps is not None:
            qty *= ps
        key = it.key()
        out[key] = fmt(D(out.get(key)) + qty)
    return out


def _edit_row(document: Document, row: int, name: str, value, settings: EngineSettings) -> Document:
    previous = item = document.items[row]
    if document.kind == PURCHASE:
        item = purchase_formula.edit_item(item, name, value, policy=settings.avg_price_policy)
    else:
        item = sales_formula.edit_item(item, name, value, document.sale_mode)
    document = document.with_item(row, item)
    if name == "batch_number":
        document, _ = refuse_batch_text(document, row, previous)
    return document


def _commit_row(document: Document, row: int, name: str, settings: EngineSettings) -> Document:
    item = document.items[row]
    if document.kind == PURCHASE:
        item = purchase_formula.commit_item(
            item, name, places=settings.money_places, policy=settings.avg_price_policy
        )
    else:
        item = sales_formula.commit_item(item, name, document.sale_mode, places=settings.money_places)
    return document.with_item(row, item)


def _select_product(document: Document, event: ProductSelected, settings: EngineSettings) -> Document:
    item = document.items[event.row]
    product = event.product
    if document.kind == PURCHASE:
        item = purchase_formula.select_product(
            item, product,
            reserved=_reserved_for(document, product.product_id),
            policy=settings.avg_price_policy,
        )
    else:
        item = sales_formula.select_product(
            item, product,
            mode=document.sale_mode,
            customer_price=event.customer_price,
            reserved=_reserved_for(document, product.product_id),
            default_quantity=settings.default_sale_quantity,
        )
    document, _ = guard_row(document.with_item(event.row, item), event.row)
    return document


def _select_batch(document: Document, event: BatchSelected, settings: EngineSettings) -> Document:
    item = document.items[event.row]
    if document.kind == PURCHASE:
        item = purchase_formula.select_batch(item, event.batch, policy=settings.avg_price_policy)
    else:
        item = sales_formula.select_batch(
            item, event.batch,
            mode=document.sale_mode,
            reserved=_reserved_for(document, item.product_id, event.batch.batch_number),
        )
    document, _ = guard_row(document.with_item(event.row, item), event.row)
    return document


def _switch_mode(document: Document, **changes) -> Document:
    if document.kind != SALE:
        return document
    before = document.sale_mode
    switched = replace(document, **changes)
    after = switched.sale_mode
    items = tuple(sales_formula.switch_wholesale_type(i, before, after) for i in switched.items)
    return replace(switched, items=items)


def _reprice(document: Document, event: MasterPricesRefreshed) -> Document:
    if document.kind != SALE:
        return document
    mode = document.sale_mode
    items = []
    for it in document.items:
        product = event.products.get(it.product_id)
        if product is None:
            items.append(it)
            continue
        customer_price = event.customer_prices.get(it.product_id, "") if mode != RETAIL else ""
        items.append(sales_formula.reprice_item(it, product, mode, customer_price))
    return replace(document, items=tuple(items))


# ---------- Reducer ----------

def apply_event(document, event, *, settings: Optional[EngineSettings] = None):
    """Return the next snapshot of `document` after `event`."""
    settings = settings or SETTINGS
    if isinstance(document, StockAdjustment):
        return _apply_adjustment(document, event, settings)

    doc = replace(document, notices=())
    source = "items"
    typed = None  # (field, raw) of a header field typed by the user

    if isinstance(event, ItemEdited):
        doc = _edit_row(doc, event.row, event.field, event.value, settings)
    elif isinstance(event, ProductSelected):
        doc = _select_product(doc, event, settings)
    elif isinstance(event, BatchSelected):
        doc = _select_batch(doc, event, settings)
    elif isinstance(event, RowAdded):
        doc = replace(doc, items=doc.items + (LineItem(),))
    elif isinstance(event, RowRemoved):
        items = list(doc.items)
        del items[event.row]
        doc = replace(doc, items=tuple(items))
    elif isinstance(event, HeaderEdited):
        if event.field in HEADER_NUMERIC:
            decimal, negative = HEADER_NUMERIC[event.field]
            raw = coerce(event.value, decimal=decimal, negative=negative)
            doc = replace(doc, **{event.field: raw})
            typed = (event.field, raw)
            if event.field in FOOTER_SOURCES:
                source = event.field
        elif event.field in HEADER_TEXT:
            doc = replace(doc, **{event.field: event.value or ""})
        elif event.field in HEADER_PARTY:
            doc = replace(doc, **{event.field: event.value})
        else:
            raise KeyError(f"'{event.field}' is not an editable header field")
    elif isinstance(event, FieldCommitted):
        if event.row is not None:
            doc = _commit_row(doc, event.row, event.field, settings)
        elif event.field == doc.payment_field:
            doc = linkage.commit_payment(doc)
        elif event.field in HEADER_NUMERIC:
            raw = commit(getattr(doc, event.field), settings.money_places)
            doc = replace(doc, **{event.field: raw})
            typed = (event.field, raw)
            if event.field in FOOTER_SOURCES:
                source = event.field
    elif isinstance(event, InvoiceTypeChanged):
        doc = linkage.change_invoice_type(doc, event.invoice_type)
    elif isinstance(event, SaleTypeChanged):
        doc = _switch_mode(doc, sale_type=event.sale_type)
    elif isinstance(event, WholesaleTypeChanged):
        doc = _switch_mode(doc, wholesale_type=event.wholesale_type)
    elif isinstance(event, PaymentEdited):
        doc = linkage.edit_payment(doc, event.value)
    elif isinstance(event, PaymentCommitted):
        doc = linkage.commit_payment(doc)
    elif isinstance(event, PaymentRelinked):
        doc = linkage.relink(doc)
    elif isinstance(event, MasterPricesRefreshed):
        doc = _reprice(doc, event)
    else:
        raise TypeError(f"Unsupported event {type(event).__name__}")

    doc = recalc_footer(doc, source)
    if typed is not None:
        doc = replace(doc, **{typed[0]: typed[1]})
    doc = linkage.sync_payment(doc)
    doc = flag_document(doc)
    if doc.notices:
        _log.debug("%s raised %d notice(s)", type(event).__name__, len(doc.notices))
    return doc


def load_document(document):
    """
    Prepare a persisted document for editing: own reservations recorded,
    footer recalculated from stored percentages, payment relinked.
    """
    if isinstance(document, StockAdjustment):
        return valuation.recalc_document(replace(document, notices=()))
    doc = replace(document, reserved=reservations_of(document), notices=())
    if doc.kind == SALE:
        mode = doc.sale_mode
        doc = replace(doc, items=tuple(sales_formula.recalc_item(i, "load", mode) for i in doc.items))
    doc = recalc_footer(doc, "init")
    doc = linkage.link_loaded(doc)
    return flag_document(doc)


# ---------- Stock adjustments ----------

def _apply_adjustment(adjustment: StockAdjustment, event, settings: EngineSettings) -> StockAdjustment:
    doc = replace(adjustment, notices=())
    if isinstance(event, ItemEdited):
        previous = doc.items[event.row]
        doc = doc.with_item(event.row, valuation.edit_item(previous, event.field, event.value))
        if event.field == "batch_number":
            doc, _ = refuse_batch_text(doc, event.row, previous)
    elif isinstance(event, FieldCommitted) and event.row is not None:
        item = valuation.commit_item(doc.items[event.row], event.field, settings.money_places)
        doc = doc.with_item(event.row, item)
    elif isinstance(event, ProductSelected):
        doc = doc.with_item(event.row, valuation.select_product(doc.items[event.row], event.product))
        doc, _ = guard_row(doc, event.row)
    elif isinstance(event, BatchSelected):
        doc = doc.with_item(event.row, valuation.select_batch(doc.items[event.row], event.batch))
        doc, _ = guard_row(doc, event.row)
    elif isinstance(event, RowAdded):
        doc = replace(doc, items=doc.items + (StockAdjustmentItem(),))
    elif isinstance(event, RowRemoved):
        items = list(doc.items)
        del items[event.row]
        doc = replace(doc, items=tuple(items))
    elif isinstance(event, HeaderEdited) and event.field in ("date", "remarks"):
        doc = replace(doc, **{event.field: event.value or ""})
    else:
        raise TypeError(f"Unsupported stock adjustment event {type(event).__name__}")
    return valuation.recalc_document(doc)
