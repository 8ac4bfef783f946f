# database/repositories/base.py
from __future__ import annotations

import sqlite3
from contextlib import contextmanager


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


class Repo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Use Row for named access; we normalize to dicts/dataclasses where we return them.
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- TX helper ----------------------------

    @contextmanager
    def _immediate_tx(self):
        """
        Start an IMMEDIATE transaction (write lock once first write happens),
        commit on success, rollback on error.
        """
        cur = self.conn.cursor()
        try:
            cur.execute("BEGIN IMMEDIATE")
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cur.close()

    # ---------------------------- Low-level ----------------------------

    def _insert(self, table: str, row: dict) -> int:
        cols = ", ".join(row)
        marks = ", ".join("?" for _ in row)
        cur = self.conn.execute(f"INSERT INTO {table}({cols}) VALUES ({marks})", tuple(row.values()))
        return int(cur.lastrowid)
