"""
documents/model.py

Immutable document snapshots.

Numeric fields that the user can type into hold the raw text exactly as
typed ("" = unset, distinct from "0"). Derived fields (sub_total, totals,
avg_price, margin) hold plain full-precision decimal text.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .errors import ValidationIssue

PURCHASE = "purchase"
SALE = "sale"

DEBIT = "debit"
CREDIT = "credit"

RETAIL = "retail"
WHOLESALE = "wholesale"

UNIT = "unit"
PACK = "pack"

# advisory flags carried on a line
FLAG_EXCEEDS_AVAILABLE = "exceeds_available"
FLAG_BELOW_COST = "below_cost"


@dataclass(frozen=True)
class LineItem:
    product_id: Optional[int] = None
    product_name: str = ""
    batch_number: str = ""
    expiry: str = ""
    has_batches: bool = False
    pack_size: str = ""

    # purchase quantities
    pack_quantity: str = ""
    loose_units: str = ""
    unit_quantity: str = ""
    pack_bonus: str = ""
    unit_bonus: str = ""
    # purchase: incoming units incl. bonus; sale: quantity in the chosen unit
    quantity: str = ""

    pack_purchase_price: str = ""
    unit_purchase_price: str = ""
    pack_sale_price: str = ""
    unit_sale_price: str = ""
    whole_sale_pack_price: str = ""
    whole_sale_unit_price: str = ""
    whole_sale_margin: str = ""
    # sale price in the chosen unit
    price: str = ""
    # customer specific wholesale pack price, if any
    customer_price: str = ""

    item_discount_percentage: str = ""
    margin: str = ""
    avg_price: str = ""
    stock_avg_price: str = ""
    sub_total: str = "0"
    current_quantity: str = ""
    # sale: available single units behind current_quantity
    stock_units: str = ""

    is_narcotic: bool = False
    is_custom_price: bool = False
    flags: frozenset = frozenset()

    @property
    def is_empty(self) -> bool:
        return self.product_id is None

    def key(self) -> tuple:
        """(product, batch) identity used for duplicates and reservations."""
        return (self.product_id, self.batch_number or "")


@dataclass(frozen=True)
class Document:
    kind: str = PURCHASE
    invoice_type: str = DEBIT
    sale_type: str = RETAIL
    wholesale_type: str = UNIT

    items: tuple = ()

    tax_percentage: str = ""
    tax_amount: str = ""
    discount_percentage: str = ""
    discount_amount: str = ""
    gross_amount: str = "0"
    total_amount: str = "0"
    total_paid: str = ""
    total_receive: str = ""

    posted_number: str = ""
    document_id: Optional[int] = None

    supplier_id: Optional[int] = None
    customer_id: Optional[int] = None
    invoice_number: str = ""
    invoice_amount: str = ""
    date: str = ""
    remarks: str = ""
    doctor_name: str = ""
    patient_name: str = ""

    overrides: frozenset = frozenset()
    # edit mode: own pre-edit quantities keyed by (product_id, batch_number)
    reserved: dict = field(default_factory=dict, compare=False, hash=False)
    notices: tuple = ()

    @property
    def payment_field(self) -> str:
        return "total_paid" if self.kind == PURCHASE else "total_receive"

    @property
    def payment(self) -> str:
        return getattr(self, self.payment_field)

    @property
    def sale_mode(self) -> str:
        """'retail', 'unit' or 'pack': which price list and unit a sale line uses."""
        if self.kind != SALE or self.sale_type != WHOLESALE:
            return RETAIL
        return self.wholesale_type

    def with_item(self, row: int, item: LineItem) -> "Document":
        items = list(self.items)
        items[row] = item
        return replace(self, items=tuple(items))


def new_purchase(**kw) -> Document:
    return Document(kind=PURCHASE, **kw)


def new_sale(**kw) -> Document:
    return Document(kind=SALE, **kw)


@dataclass(frozen=True)
class StockAdjustmentItem:
    product_id: Optional[int] = None
    product_name: str = ""
    batch_number: str = ""
    expiry: str = ""
    has_batches: bool = False
    available_qty: str = ""
    actual_qty: str = ""
    diff_qty: str = ""
    unit_cost: str = ""
    worth_adjusted: str = "0"

    @property
    def is_empty(self) -> bool:
        return self.product_id is None

    def key(self) -> tuple:
        return (self.product_id, self.batch_number or "")


@dataclass(frozen=True)
class StockAdjustment:
    items: tuple = ()
    total_worth: str = "0"
    date: str = ""
    remarks: str = ""
    posted_number: str = ""
    document_id: Optional[int] = None
    notices: tuple = ()

    def with_item(self, row: int, item: StockAdjustmentItem) -> "StockAdjustment":
        items = list(self.items)
        items[row] = item
        return replace(self, items=tuple(items))


__all__ = [
    "LineItem",
    "Document",
    "StockAdjustmentItem",
    "StockAdjustment",
    "ValidationIssue",
    "new_purchase",
    "new_sale",
]
