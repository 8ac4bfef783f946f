"""
documents/lines.py

Submit-time checks shared by every document kind.
"""
from __future__ import annotations

from ...utils.validators import is_negative_number
from .errors import IssueKind, ValidationIssue


def is_blank_row(item) -> bool:
    """A trailing row the user never touched is ignored, not reported."""
    return item.product_id is None and not any(
        getattr(item, f, "") for f in ("quantity", "unit_quantity", "price", "actual_qty", "batch_number")
    )


def selection_issues(items) -> list[ValidationIssue]:
    out: list[ValidationIssue] = []
    filled = [i for i in items if not is_blank_row(i)]
    if not filled:
        return [ValidationIssue(IssueKind.MISSING_SELECTION, "Add at least one product.")]
    for row, it in enumerate(items):
        if is_blank_row(it):
            continue
        if it.product_id is None:
            out.append(ValidationIssue(
                IssueKind.MISSING_SELECTION, f"Row {row + 1}: select a product.", row=row, field="product_id"
            ))
        elif it.has_batches and not (it.batch_number or "").strip():
            out.append(ValidationIssue(
                IssueKind.MISSING_SELECTION, f"Row {row + 1}: select a batch.", row=row, field="batch_number"
            ))
    return out


def negative_issues(items, fields) -> list[ValidationIssue]:
    out: list[ValidationIssue] = []
    for row, it in enumerate(items):
        if it.product_id is None:
            continue
        for f in fields:
            if is_negative_number(getattr(it, f)):
                out.append(ValidationIssue(
                    IssueKind.NEGATIVE_VALUE, f"Row {row + 1}: {f.replace('_', ' ')} cannot be negative.",
                    row=row, field=f,
                ))
    return out
