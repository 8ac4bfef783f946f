"""
documents/duplicates.py

A product may appear on a document once per batch. Two rows conflict when
they carry the same product and the same batch, or the same product and no
batch on either. A product with batch "B1" and the same product with no
batch chosen yet do not conflict.

A chosen product or batch that conflicts clears the row. A typed batch
number that conflicts is refused one keystroke at a time: the row keeps
its previous text.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .errors import IssueKind, ValidationIssue

__all__ = ["check_duplicate", "guard_row", "refuse_batch_text", "find_duplicates"]


def _norm(batch) -> str:
    return (batch or "").strip()


def check_duplicate(items, row: int, product_id, batch) -> Optional[int]:
    """Index of the first other row holding (product_id, batch), else None."""
    if product_id is None:
        return None
    wanted = _norm(batch)
    for i, it in enumerate(items):
        if i == row or it.product_id is None:
            continue
        if it.product_id == product_id and _norm(it.batch_number) == wanted:
            return i
    return None


def guard_row(document, row: int):
    """
    Revert `row` to an empty line if it duplicates another row.

    Returns (document', conflicting_row or None). The reverted document
    carries a DuplicateLine notice naming the conflicting row.
    """
    item = document.items[row]
    other = check_duplicate(document.items, row, item.product_id, item.batch_number)
    if other is None:
        return document, None
    notice = _notice(item, row, other, "product_id")
    reverted = document.with_item(row, type(item)())
    return replace(reverted, notices=tuple(document.notices) + (notice,)), other


def refuse_batch_text(document, row: int, previous):
    """
    Undo a batch keystroke on `row` that made it duplicate another row.

    `previous` is the item as it was before the keystroke; it is put back
    whole. Returns (document', conflicting_row or None).
    """
    item = document.items[row]
    other = check_duplicate(document.items, row, item.product_id, item.batch_number)
    if other is None:
        return document, None
    notice = _notice(item, row, other, "batch_number")
    kept = document.with_item(row, previous)
    return replace(kept, notices=tuple(document.notices) + (notice,)), other


def _notice(item, row: int, other: int, field: str) -> ValidationIssue:
    name = item.product_name or f"product {item.product_id}"
    return ValidationIssue(
        IssueKind.DUPLICATE_LINE,
        f"{name} is already on row {other + 1}.",
        row=row,
        field=field,
    )


def find_duplicates(items) -> list[ValidationIssue]:
    out: list[ValidationIssue] = []
    for row, it in enumerate(items):
        other = check_duplicate(items[:row], row, it.product_id, it.batch_number)
        if other is not None:
            out.append(ValidationIssue(
                IssueKind.DUPLICATE_LINE,
                f"Row {row + 1} repeats row {other + 1}.",
                row=row,
                field="product_id",
            ))
    return out
