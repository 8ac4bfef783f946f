"""
purchase/validation.py

Submit-time checks for a purchase invoice. Returns a list of
ValidationIssue; an empty list means the document may be saved.
"""
from __future__ import annotations

from typing import Callable, Optional

from ...config import SETTINGS, EngineSettings
from ...utils.numeric import D, money, to_decimal
from ...utils.helpers import fmt_money
from ...utils.validators import is_strictly_positive_number, non_empty
from ..documents.duplicates import find_duplicates
from ..documents.errors import IssueKind, ValidationIssue
from ..documents.lines import negative_issues, selection_issues
from ..documents.model import CREDIT, Document
from ..payments.payment_utilities.linkage import validate_payment
from .formula import PRICE_PAIRS, QUANTITY_FIELDS

_NON_NEGATIVE = QUANTITY_FIELDS + tuple(f for pair in PRICE_PAIRS for f in pair)

# (supplier_id, invoice_number, exclude_document_id) -> bool
InvoiceNumberLookup = Callable[[int, str, Optional[int]], bool]


def validate_purchase(
    document: Document,
    *,
    settings: Optional[EngineSettings] = None,
    invoice_number_exists: Optional[InvoiceNumberLookup] = None,
) -> list[ValidationIssue]:
    settings = settings or SETTINGS
    places = settings.money_places
    issues = selection_issues(document.items)

    for row, it in enumerate(document.items):
        if it.product_id is None:
            continue
        if not is_strictly_positive_number(it.quantity):
            issues.append(ValidationIssue(
                IssueKind.MISSING_QUANTITY, f"Row {row + 1}: enter a quantity.", row=row, field="unit_quantity"
            ))
        margin = to_decimal(it.margin)
        if margin is None or margin <= 0:
            issues.append(ValidationIssue(
                IssueKind.MARGIN_NON_POSITIVE,
                f"Row {row + 1}: sale price must be above average cost.",
                row=row, field="margin",
            ))

    issues += negative_issues(document.items, _NON_NEGATIVE)
    issues += find_duplicates(document.items)

    if document.invoice_type == CREDIT and document.supplier_id is None:
        issues.append(ValidationIssue(
            IssueKind.MISSING_PARTY, "Credit purchases need a supplier.", field="supplier_id"
        ))

    invoice_amount = to_decimal(document.invoice_amount)
    if invoice_amount is not None:
        total = D(money(document.total_amount, places))
        if abs(invoice_amount - total) > settings.invoice_amount_tolerance:
            issues.append(ValidationIssue(
                IssueKind.INVOICE_AMOUNT_MISMATCH,
                f"Invoice amount {fmt_money(invoice_amount, places)} differs from total "
                f"{fmt_money(total, places)} by more than {settings.invoice_amount_tolerance}.",
                field="invoice_amount",
            ))

    if (
        invoice_number_exists is not None
        and document.supplier_id is not None
        and non_empty(document.invoice_number)
        and invoice_number_exists(document.supplier_id, document.invoice_number.strip(), document.document_id)
    ):
        issues.append(ValidationIssue(
            IssueKind.DUPLICATE_INVOICE_NUMBER,
            f"Invoice number {document.invoice_number.strip()} is already recorded for this supplier.",
            field="invoice_number",
        ))

    issues += validate_payment(document, places)
    return issues
