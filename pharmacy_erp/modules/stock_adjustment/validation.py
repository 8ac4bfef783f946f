"""
stock_adjustment/validation.py
"""
from __future__ import annotations

from ...utils.numeric import to_decimal
from ..documents.duplicates import find_duplicates
from ..documents.errors import IssueKind, ValidationIssue
from ..documents.lines import negative_issues, selection_issues
from ..documents.model import StockAdjustment


def validate_adjustment(adjustment: StockAdjustment) -> list[ValidationIssue]:
    issues = selection_issues(adjustment.items)
    for row, it in enumerate(adjustment.items):
        if it.product_id is not None and to_decimal(it.actual_qty) is None:
            issues.append(ValidationIssue(
                IssueKind.MISSING_QUANTITY, f"Row {row + 1}: enter the counted quantity.",
                row=row, field="actual_qty",
            ))
    issues += negative_issues(adjustment.items, ("actual_qty", "unit_cost"))
    issues += find_duplicates(adjustment.items)
    return issues
