# database/repositories/numbering.py
from __future__ import annotations

import sqlite3


def next_posted_number(conn: sqlite3.Connection, table: str, prefix: str, width: int) -> str:
    """
    Next number for `table`, e.g. PRINV-0001, PRINV-0002 ...

    Must run inside the saving transaction (BEGIN IMMEDIATE) so two sessions
    cannot read the same maximum. Compared numerically, so numbers that
    outgrow `width` keep counting up.
    """
    row = conn.execute(
        f"SELECT MAX(CAST(SUBSTR(posted_number, ?) AS INTEGER)) AS m "
        f"FROM {table} WHERE posted_number LIKE ?",
        (len(prefix) + 1, prefix + "%"),
    ).fetchone()
    last = int(row["m"]) if row and row["m"] is not None else 0
    return f"{prefix}{last + 1:0{width}d}"
