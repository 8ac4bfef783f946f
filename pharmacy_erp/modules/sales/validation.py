"""
sales/validation.py

Submit-time checks for a sale invoice. The stock and price-floor flags set
while typing become hard errors here.
"""
from __future__ import annotations

from typing import Optional

from ...config import SETTINGS, EngineSettings
from ...utils.helpers import fmt_money
from ...utils.validators import is_strictly_positive_number, non_empty
from ..documents.availability import check_availability, check_price_floor, price_floor
from ..documents.duplicates import find_duplicates
from ..documents.errors import IssueKind, ValidationIssue
from ..documents.lines import negative_issues, selection_issues
from ..documents.model import CREDIT, RETAIL, WHOLESALE, Document
from ..payments.payment_utilities.linkage import validate_payment


def validate_sale(document: Document, *, settings: Optional[EngineSettings] = None) -> list[ValidationIssue]:
    settings = settings or SETTINGS
    mode = document.sale_mode
    issues = selection_issues(document.items)
    narcotic = False

    for row, it in enumerate(document.items):
        if it.product_id is None:
            continue
        narcotic = narcotic or it.is_narcotic
        if not is_strictly_positive_number(it.quantity):
            issues.append(ValidationIssue(
                IssueKind.MISSING_QUANTITY, f"Row {row + 1}: enter a quantity.", row=row, field="quantity"
            ))
        elif it.current_quantity != "":
            avail = check_availability(it.quantity, it.current_quantity)
            if not avail.ok:
                issues.append(ValidationIssue(
                    IssueKind.QUANTITY_EXCEEDS_AVAILABLE,
                    f"Row {row + 1}: only {it.current_quantity} available ({avail.excess} short).",
                    row=row, field="quantity",
                ))
        if mode != RETAIL and not check_price_floor(it.price, it.pack_purchase_price, it.pack_size, mode):
            floor = price_floor(it.pack_purchase_price, it.pack_size, mode)
            issues.append(ValidationIssue(
                IssueKind.PRICE_BELOW_COST,
                f"Row {row + 1}: price is below cost ({fmt_money(floor)}).",
                row=row, field="price",
            ))

    issues += negative_issues(document.items, ("quantity", "price"))
    issues += find_duplicates(document.items)

    if narcotic and not (non_empty(document.doctor_name) and non_empty(document.patient_name)):
        issues.append(ValidationIssue(
            IssueKind.MISSING_PRESCRIPTION_FIELDS,
            "Narcotic items need the doctor's and patient's names.",
            field="doctor_name" if not non_empty(document.doctor_name) else "patient_name",
        ))

    if document.customer_id is None:
        if document.sale_type == WHOLESALE:
            issues.append(ValidationIssue(
                IssueKind.MISSING_PARTY, "Wholesale invoices need a customer.", field="customer_id"
            ))
        elif document.invoice_type == CREDIT:
            issues.append(ValidationIssue(
                IssueKind.MISSING_PARTY, "Credit sales need a customer.", field="customer_id"
            ))

    issues += validate_payment(document, settings.money_places)
    return issues
