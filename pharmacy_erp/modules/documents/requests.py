"""
documents/requests.py

Product/batch master data arrives out of band. Each row remembers the token
of its latest request; a delivery carrying an older token is dropped, so
the last request for a row always wins.
"""
from __future__ import annotations

import itertools

__all__ = ["RowRequestTracker"]


class RowRequestTracker:
    def __init__(self):
        self._latest: dict[int, int] = {}
        self._seq = itertools.count(1)

    def issue(self, row: int) -> int:
        token = next(self._seq)
        self._latest[row] = token
        return token

    def is_current(self, row: int, token: int) -> bool:
        return self._latest.get(row) == token

    def accept(self, row: int, token: int) -> bool:
        """True (and the request is settled) if `token` is the row's latest."""
        if not self.is_current(row, token):
            return False
        del self._latest[row]
        return True

    def forget(self, row: int) -> None:
        """Row removed: drop its pending request and shift rows below it up."""
        shifted = {}
        for r, t in self._latest.items():
            if r < row:
                shifted[r] = t
            elif r > row:
                shifted[r - 1] = t
        self._latest = shifted

    def pending(self) -> dict[int, int]:
        return dict(self._latest)
