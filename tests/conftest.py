# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures); Qt runs offscreen
# - Every test gets its own temporary SQLite DB with the full schema
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (get_connection)
# - Product masters are available both as DB rows (ids) and as plain
#   ProductRecord/BatchRecord values for engine-only tests
# ---------------------------------------------------------------------

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import sqlite3

import pytest

from pharmacy_erp.database import get_connection
from pharmacy_erp.database.repositories.products_repo import BatchRecord, ProductRecord, ProductsRepo


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path) -> sqlite3.Connection:
    con = get_connection(tmp_path / "pharmacy.db")
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Seed master data and return the ids used throughout the tests."""
    products = ProductsRepo(conn)
    para = products.create(
        "Paracetamol 500mg", pack_size="10", pack_purchase_price="100", unit_purchase_price="10",
        pack_sale_price="150", unit_sale_price="15", whole_sale_pack_price="130",
        whole_sale_unit_price="13", avg_price="10", quantity="50",
    )
    amox = products.create(
        "Amoxicillin 250mg", pack_size="12", pack_purchase_price="240", unit_purchase_price="20",
        pack_sale_price="360", unit_sale_price="30", whole_sale_pack_price="300",
        whole_sale_unit_price="25", avg_price="20", quantity="36",
    )
    codeine = products.create(
        "Codeine Linctus", pack_size="1", pack_purchase_price="80", unit_purchase_price="80",
        pack_sale_price="100", unit_sale_price="100", avg_price="80", quantity="5", is_narcotic=True,
    )
    conn.executemany(
        "INSERT INTO batches(product_id, batch_number, expiry, quantity) VALUES (?, ?, ?, ?)",
        [(amox, "B1", "2027-01-31", "24"), (amox, "B2", "2027-06-30", "12")],
    )
    supplier = conn.execute("INSERT INTO suppliers(name) VALUES ('Acme Pharma')").lastrowid
    customer = conn.execute("INSERT INTO customers(name) VALUES ('City Clinic')").lastrowid
    conn.execute(
        "INSERT INTO customer_wholesale_prices(customer_id, product_id, pack_price) VALUES (?, ?, '120')",
        (customer, para),
    )
    conn.commit()
    return {
        "paracetamol": para,
        "amoxicillin": amox,
        "codeine": codeine,
        "supplier": supplier,
        "customer": customer,
    }


def product_quantity(conn: sqlite3.Connection, product_id: int) -> str:
    return conn.execute("SELECT quantity FROM products WHERE product_id=?", (product_id,)).fetchone()[0]


@pytest.fixture()
def stock(conn):
    """stock(product_id) -> product quantity text as stored."""
    return lambda pid: product_quantity(conn, pid)


# ---------- Plain master records (no DB) ----------
@pytest.fixture()
def paracetamol() -> ProductRecord:
    return ProductRecord(
        product_id=1, name="Paracetamol 500mg", pack_size="10",
        pack_purchase_price="100", unit_purchase_price="",
        pack_sale_price="150", unit_sale_price="15",
        whole_sale_pack_price="130", whole_sale_unit_price="13",
        avg_price="10", quantity="50",
    )


@pytest.fixture()
def amoxicillin() -> ProductRecord:
    return ProductRecord(
        product_id=2, name="Amoxicillin 250mg", pack_size="12",
        pack_purchase_price="240", unit_purchase_price="20",
        pack_sale_price="360", unit_sale_price="30",
        whole_sale_pack_price="300", whole_sale_unit_price="25",
        avg_price="20", quantity="36", has_batches=True,
    )


@pytest.fixture()
def codeine() -> ProductRecord:
    return ProductRecord(
        product_id=3, name="Codeine Linctus", pack_size="1",
        pack_purchase_price="80", unit_purchase_price="80",
        pack_sale_price="100", unit_sale_price="100",
        whole_sale_pack_price="90", whole_sale_unit_price="90",
        avg_price="80", quantity="5", is_narcotic=True,
    )


@pytest.fixture()
def amox_batches() -> dict:
    return {
        "B1": BatchRecord(product_id=2, batch_number="B1", expiry="2027-01-31", quantity="24"),
        "B2": BatchRecord(product_id=2, batch_number="B2", expiry="2027-06-30", quantity="12"),
    }
