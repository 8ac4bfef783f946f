# database/__init__.py
"""
Connection factory for the pharmacy ledger database.

Every connection handed out has the current schema applied, foreign keys
enforced, rows readable by column name, and a busy timeout so that two
windows posting documents at once wait for each other's BEGIN IMMEDIATE
instead of failing.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from ..config import DB_PATH
from ..constants import SCHEMA_VERSION, TABLE_SCHEMA_VERSION
from . import schema as schema_module

_log = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 5000


class SchemaVersionError(RuntimeError):
    """The file was written by a different schema version of the ledger."""


def _check_schema_version(conn: sqlite3.Connection) -> str:
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id INTEGER PRIMARY KEY CHECK (id=1),
            version TEXT NOT NULL
        );
    """)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;").fetchone()
    if row is None:
        conn.execute(
            f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?);",
            (SCHEMA_VERSION,),
        )
        _log.info("new ledger database, schema version %s", SCHEMA_VERSION)
        return SCHEMA_VERSION
    if row["version"] != SCHEMA_VERSION:
        raise SchemaVersionError(
            f"database schema version {row['version']} does not match {SCHEMA_VERSION}"
        )
    return row["version"]


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Open the ledger at `db_path` (default: config.DB_PATH), creating the
    file and its tables on first use.

    Raises SchemaVersionError for a file of another schema version; the
    connection is closed before raising.
    """
    path = Path(db_path) if db_path is not None else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    schema_module.init_schema(path)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS};")
    try:
        _check_schema_version(conn)
        conn.commit()
    except SchemaVersionError:
        conn.close()
        raise
    return conn


__all__ = [
    "SchemaVersionError",
    "get_connection",
]
