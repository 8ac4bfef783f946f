"""
payment_utilities/linkage.py

Keeps the amount paid (purchase: total_paid) or received (sale:
total_receive) linked to the document total until the user takes it over.

  - untouched, debit  : amount follows the stored total (see settled_totals)
  - untouched, credit : amount is empty
  - touched           : the typed amount is left alone

"Touched" is the payment field's name being present in Document.overrides.
"""
from __future__ import annotations

from dataclasses import replace

from ....utils.numeric import coerce, commit, money, to_decimal
from ...documents.errors import IssueKind, ValidationIssue
from ...documents.footer import settled_totals
from ...documents.model import CREDIT, DEBIT, Document

__all__ = [
    "is_touched",
    "sync_payment",
    "edit_payment",
    "commit_payment",
    "relink",
    "change_invoice_type",
    "linked_total",
    "resolved_payment",
    "validate_payment",
    "link_loaded",
]


def is_touched(document: Document) -> bool:
    return document.payment_field in document.overrides


def _set(document: Document, value: str, touched: bool) -> Document:
    name = document.payment_field
    overrides = set(document.overrides)
    if touched:
        overrides.add(name)
    else:
        overrides.discard(name)
    return replace(document, **{name: value, "overrides": frozenset(overrides)})


def sync_payment(document: Document) -> Document:
    """Re-derive an untouched payment amount from total and invoice type."""
    if is_touched(document):
        return document
    if document.invoice_type == CREDIT:
        value = ""
    else:
        value = linked_total(document)
    if value == document.payment:
        return document
    return replace(document, **{document.payment_field: value})


def edit_payment(document: Document, raw: str) -> Document:
    """Keystroke in the payment field: keep the text and mark it touched."""
    return _set(document, coerce(raw, decimal=True), touched=True)


def commit_payment(document: Document) -> Document:
    """
    Blur: round to money places. A debit amount equal to the rounded total
    goes back to being linked.
    """
    value = commit(document.payment)
    touched = is_touched(document)
    if document.invoice_type == DEBIT and value == linked_total(document):
        touched = False
    return _set(document, value, touched)


def relink(document: Document) -> Document:
    return sync_payment(_set(document, document.payment, touched=False))


def change_invoice_type(document: Document, invoice_type: str) -> Document:
    if invoice_type not in (DEBIT, CREDIT) or invoice_type == document.invoice_type:
        return document
    doc = replace(document, invoice_type=invoice_type)
    if invoice_type == CREDIT:
        return _set(doc, "", touched=True)
    # back to debit: an amount emptied by credit is not a user choice
    if is_touched(doc) and doc.payment == "":
        doc = _set(doc, "", touched=False)
    return sync_payment(doc)


def linked_total(document: Document, places: int = 2) -> str:
    """The total a linked amount follows: the one that gets stored."""
    return settled_totals(document, places)["total_amount"]


def resolved_payment(document: Document, places: int = 2, total=None) -> str:
    """
    Definite payment text for persistence ('' -> '0.00'). A linked debit
    amount follows `total` when one is given.
    """
    if total is not None and document.invoice_type == DEBIT and not is_touched(document):
        return money(total, places)
    return money(document.payment, places)


def validate_payment(document: Document, places: int = 2) -> list[ValidationIssue]:
    amount = to_decimal(commit(document.payment, places)) or 0
    total = to_decimal(linked_total(document, places))
    if amount < 0 or amount > total:
        label = "Paid" if document.payment_field == "total_paid" else "Received"
        return [ValidationIssue(
            IssueKind.PAYMENT_OUT_OF_RANGE,
            f"{label} amount must be between 0 and {money(total, places)}.",
            field=document.payment_field,
        )]
    return []


def link_loaded(document: Document) -> Document:
    """
    A persisted document opened for editing: its stored amount stays, and
    counts as linked only when it matches what linkage would produce.
    """
    linked = "" if document.invoice_type == CREDIT else linked_total(document)
    return _set(document, document.payment, touched=commit(document.payment) != linked)
