"""
documents/errors.py

Structured validation results. The engine never raises for user input;
every problem found at submit time (or flagged while typing) is a
ValidationIssue the view can attach to a row/field.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class IssueKind:
    MISSING_SELECTION = "MissingSelection"
    QUANTITY_EXCEEDS_AVAILABLE = "QuantityExceedsAvailable"
    MARGIN_NON_POSITIVE = "MarginNonPositive"
    PAYMENT_OUT_OF_RANGE = "PaymentOutOfRange"
    PRICE_BELOW_COST = "PriceBelowCost"
    DUPLICATE_LINE = "DuplicateLine"
    MISSING_PRESCRIPTION_FIELDS = "MissingPrescriptionFields"
    MISSING_QUANTITY = "MissingQuantity"
    NEGATIVE_VALUE = "NegativeValue"
    MISSING_PARTY = "MissingParty"
    INVOICE_AMOUNT_MISMATCH = "InvoiceAmountMismatch"
    DUPLICATE_INVOICE_NUMBER = "DuplicateInvoiceNumber"


@dataclass(frozen=True)
class ValidationIssue:
    kind: str
    message: str
    row: Optional[int] = None
    field: Optional[str] = None

