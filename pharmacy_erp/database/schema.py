from pathlib import Path
import logging
import sqlite3
import sys

_log = logging.getLogger(__name__)

# Money, prices and quantities are stored as decimal TEXT and never summed in SQL.
SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== MASTER DATA ======================== */

/* -------- products -------- */
CREATE TABLE IF NOT EXISTS products (
    product_id             INTEGER PRIMARY KEY AUTOINCREMENT,
    name                   TEXT NOT NULL,
    pack_size              TEXT NOT NULL DEFAULT '',
    pack_purchase_price    TEXT NOT NULL DEFAULT '',
    unit_purchase_price    TEXT NOT NULL DEFAULT '',
    pack_sale_price        TEXT NOT NULL DEFAULT '',
    unit_sale_price        TEXT NOT NULL DEFAULT '',
    whole_sale_pack_price  TEXT NOT NULL DEFAULT '',
    whole_sale_unit_price  TEXT NOT NULL DEFAULT '',
    avg_price              TEXT NOT NULL DEFAULT '',
    margin                 TEXT NOT NULL DEFAULT '',
    is_narcotic            INTEGER NOT NULL DEFAULT 0 CHECK (is_narcotic IN (0,1)),
    quantity               TEXT NOT NULL DEFAULT '0'
);

/* -------- batches (a product with none is stocked at product level) -------- */
CREATE TABLE IF NOT EXISTS batches (
    batch_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id    INTEGER NOT NULL,
    batch_number  TEXT NOT NULL,
    expiry        TEXT NOT NULL DEFAULT '',
    quantity      TEXT NOT NULL DEFAULT '0',
    UNIQUE (product_id, batch_number),
    FOREIGN KEY (product_id) REFERENCES products(product_id) ON DELETE CASCADE
);

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS suppliers (
    supplier_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS customers (
    customer_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS customer_wholesale_prices (
    customer_id  INTEGER NOT NULL,
    product_id   INTEGER NOT NULL,
    pack_price   TEXT NOT NULL,
    PRIMARY KEY (customer_id, product_id),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id) ON DELETE CASCADE
);

/* ======================== DOCUMENTS ======================== */

/* -------- purchase invoices -------- */
CREATE TABLE IF NOT EXISTS purchase_invoices (
    purchase_invoice_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    posted_number        TEXT NOT NULL UNIQUE,
    supplier_id          INTEGER,
    invoice_number       TEXT NOT NULL DEFAULT '',
    invoice_amount       TEXT NOT NULL DEFAULT '0.00',
    invoice_type         TEXT NOT NULL DEFAULT 'debit' CHECK (invoice_type IN ('debit','credit')),
    date                 TEXT NOT NULL DEFAULT '',
    remarks              TEXT NOT NULL DEFAULT '',
    gross_amount         TEXT NOT NULL DEFAULT '0.00',
    discount_percentage  TEXT NOT NULL DEFAULT '0.00',
    discount_amount      TEXT NOT NULL DEFAULT '0.00',
    tax_percentage       TEXT NOT NULL DEFAULT '0.00',
    tax_amount           TEXT NOT NULL DEFAULT '0.00',
    total_amount         TEXT NOT NULL DEFAULT '0.00',
    total_paid           TEXT NOT NULL DEFAULT '0.00',
    payment_status       TEXT NOT NULL DEFAULT 'unpaid' CHECK (payment_status IN ('unpaid','partial','paid')),
    FOREIGN KEY (supplier_id) REFERENCES suppliers(supplier_id)
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_purchase_invoices_supplier_number
ON purchase_invoices(supplier_id, invoice_number) WHERE invoice_number <> '';

CREATE TABLE IF NOT EXISTS purchase_invoice_items (
    item_id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_invoice_id       INTEGER NOT NULL,
    product_id                INTEGER NOT NULL,
    batch_number              TEXT NOT NULL DEFAULT '',
    expiry                    TEXT NOT NULL DEFAULT '',
    pack_size                 TEXT NOT NULL DEFAULT '0',
    pack_quantity             TEXT NOT NULL DEFAULT '0',
    loose_units               TEXT NOT NULL DEFAULT '0',
    unit_quantity             TEXT NOT NULL DEFAULT '0',
    pack_bonus                TEXT NOT NULL DEFAULT '0',
    unit_bonus                TEXT NOT NULL DEFAULT '0',
    quantity                  TEXT NOT NULL DEFAULT '0',
    pack_purchase_price       TEXT NOT NULL DEFAULT '0.00',
    unit_purchase_price       TEXT NOT NULL DEFAULT '0.00',
    pack_sale_price           TEXT NOT NULL DEFAULT '0.00',
    unit_sale_price           TEXT NOT NULL DEFAULT '0.00',
    whole_sale_pack_price     TEXT NOT NULL DEFAULT '0.00',
    whole_sale_unit_price     TEXT NOT NULL DEFAULT '0.00',
    whole_sale_margin         TEXT NOT NULL DEFAULT '0.00',
    item_discount_percentage  TEXT NOT NULL DEFAULT '0.00',
    margin                    TEXT NOT NULL DEFAULT '0.00',
    avg_price                 TEXT NOT NULL DEFAULT '0.00',
    sub_total                 TEXT NOT NULL DEFAULT '0.00',
    FOREIGN KEY (purchase_invoice_id) REFERENCES purchase_invoices(purchase_invoice_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
CREATE INDEX IF NOT EXISTS idx_purchase_invoice_items_product
ON purchase_invoice_items(product_id);

/* -------- sale invoices -------- */
CREATE TABLE IF NOT EXISTS sale_invoices (
    sale_invoice_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    posted_number        TEXT NOT NULL UNIQUE,
    customer_id          INTEGER,
    sale_type            TEXT NOT NULL DEFAULT 'retail' CHECK (sale_type IN ('retail','wholesale')),
    wholesale_type       TEXT NOT NULL DEFAULT 'unit' CHECK (wholesale_type IN ('unit','pack')),
    invoice_type         TEXT NOT NULL DEFAULT 'debit' CHECK (invoice_type IN ('debit','credit')),
    date                 TEXT NOT NULL DEFAULT '',
    remarks              TEXT NOT NULL DEFAULT '',
    doctor_name          TEXT NOT NULL DEFAULT '',
    patient_name         TEXT NOT NULL DEFAULT '',
    gross_amount         TEXT NOT NULL DEFAULT '0.00',
    discount_percentage  TEXT NOT NULL DEFAULT '0.00',
    discount_amount      TEXT NOT NULL DEFAULT '0.00',
    tax_percentage       TEXT NOT NULL DEFAULT '0.00',
    tax_amount           TEXT NOT NULL DEFAULT '0.00',
    total_amount         TEXT NOT NULL DEFAULT '0.00',
    total_receive        TEXT NOT NULL DEFAULT '0.00',
    payment_status       TEXT NOT NULL DEFAULT 'unpaid' CHECK (payment_status IN ('unpaid','partial','paid')),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
);

CREATE TABLE IF NOT EXISTS sale_invoice_items (
    item_id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_invoice_id           INTEGER NOT NULL,
    product_id                INTEGER NOT NULL,
    batch_number              TEXT NOT NULL DEFAULT '',
    expiry                    TEXT NOT NULL DEFAULT '',
    unit                      TEXT NOT NULL DEFAULT 'retail' CHECK (unit IN ('retail','unit','pack')),
    pack_size                 TEXT NOT NULL DEFAULT '0',
    quantity                  TEXT NOT NULL DEFAULT '0',   /* single units */
    price                     TEXT NOT NULL DEFAULT '0.00', /* per `unit` */
    item_discount_percentage  TEXT NOT NULL DEFAULT '0.00',
    sub_total                 TEXT NOT NULL DEFAULT '0.00',
    is_custom_price           INTEGER NOT NULL DEFAULT 0 CHECK (is_custom_price IN (0,1)),
    is_narcotic               INTEGER NOT NULL DEFAULT 0 CHECK (is_narcotic IN (0,1)),
    FOREIGN KEY (sale_invoice_id) REFERENCES sale_invoices(sale_invoice_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);

/* -------- stock adjustments -------- */
CREATE TABLE IF NOT EXISTS stock_adjustments (
    stock_adjustment_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    posted_number        TEXT NOT NULL UNIQUE,
    date                 TEXT NOT NULL DEFAULT '',
    remarks              TEXT NOT NULL DEFAULT '',
    total_worth          TEXT NOT NULL DEFAULT '0.00'
);

CREATE TABLE IF NOT EXISTS stock_adjustment_items (
    item_id              INTEGER PRIMARY KEY AUTOINCREMENT,
    stock_adjustment_id  INTEGER NOT NULL,
    product_id           INTEGER NOT NULL,
    batch_number         TEXT NOT NULL DEFAULT '',
    expiry               TEXT NOT NULL DEFAULT '',
    available_qty        TEXT NOT NULL DEFAULT '0',
    actual_qty           TEXT NOT NULL DEFAULT '0',
    diff_qty             TEXT NOT NULL DEFAULT '0',
    unit_cost            TEXT NOT NULL DEFAULT '0.00',
    worth_adjusted       TEXT NOT NULL DEFAULT '0.00',
    FOREIGN KEY (stock_adjustment_id) REFERENCES stock_adjustments(stock_adjustment_id) ON DELETE CASCADE,
    FOREIGN KEY (product_id) REFERENCES products(product_id)
);
"""


def init_schema(db_path: Path | str = "pharmacy.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        # Apply (idempotent) schema
        conn.executescript(SQL)
        conn.commit()
    _log.info("schema applied to %s", db_path)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "pharmacy.db"
    init_schema(target)
