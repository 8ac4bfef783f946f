import logging
from decimal import Decimal

import pytest

from pharmacy_erp.__main__ import main
from pharmacy_erp.constants import SCHEMA_VERSION
from pharmacy_erp.database import SchemaVersionError, get_connection
from pharmacy_erp.database.repositories.base import DomainError
from pharmacy_erp.database.repositories.numbering import next_posted_number
from pharmacy_erp.database.repositories.products_repo import ProductsRepo


def test_schema_is_applied_once(tmp_path):
    path = tmp_path / "db" / "pharmacy.db"
    get_connection(path).close()
    conn = get_connection(path)
    try:
        rows = conn.execute("SELECT version FROM schema_version").fetchall()
        assert [r["version"] for r in rows] == [SCHEMA_VERSION]
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    finally:
        conn.close()


def test_connection_settings(conn):
    assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    assert conn.execute("PRAGMA busy_timeout").fetchone()[0] == 5000


def test_other_schema_version_is_refused(tmp_path):
    path = tmp_path / "pharmacy.db"
    conn = get_connection(path)
    conn.execute("UPDATE schema_version SET version='1' WHERE id=1")
    conn.commit()
    conn.close()
    with pytest.raises(SchemaVersionError, match="version 1"):
        get_connection(path)


def test_posted_numbers_count_up(conn):
    assert next_posted_number(conn, "stock_adjustments", "STADJ-", 5) == "STADJ-00001"
    conn.execute("INSERT INTO stock_adjustments(posted_number) VALUES ('STADJ-00009')")
    assert next_posted_number(conn, "stock_adjustments", "STADJ-", 5) == "STADJ-00010"


def test_posted_numbers_outgrow_their_width(conn):
    conn.execute("INSERT INTO stock_adjustments(posted_number) VALUES ('STADJ-99999')")
    assert next_posted_number(conn, "stock_adjustments", "STADJ-", 5) == "STADJ-100000"
    conn.execute("INSERT INTO stock_adjustments(posted_number) VALUES ('STADJ-100000')")
    assert next_posted_number(conn, "stock_adjustments", "STADJ-", 5) == "STADJ-100001"


def test_products_repo_masters(conn, ids):
    repo = ProductsRepo(conn)
    para = repo.get_product(ids["paracetamol"])
    assert para.pack_size == "10"
    assert para.has_batches is False
    assert repo.get_product(ids["amoxicillin"]).has_batches is True
    assert repo.get_product(999) is None
    assert [b.batch_number for b in repo.list_batches(ids["amoxicillin"])] == ["B1", "B2"]
    assert repo.available_quantity(ids["amoxicillin"], "B2") == Decimal("12")
    assert repo.customer_price(ids["customer"], ids["paracetamol"]) == "120"
    assert repo.customer_wholesale_prices(None) == {}


def test_stock_movements(conn, ids, stock):
    repo = ProductsRepo(conn)
    with repo._immediate_tx():
        repo.add_stock(ids["amoxicillin"], "B3", "2028-01-31", Decimal("6"))
        before = repo.set_stock(ids["amoxicillin"], "B1", Decimal("20"))
    assert before == Decimal("24")
    assert repo.get_batch(ids["amoxicillin"], "B3").quantity == "6"
    assert stock(ids["amoxicillin"]) == "38"

    with pytest.raises(DomainError):
        with repo._immediate_tx():
            repo.add_stock(ids["paracetamol"], "", "", Decimal("-1"))
            repo.set_stock(ids["amoxicillin"], "NOPE", Decimal("1"))
    # rolled back
    assert stock(ids["paracetamol"]) == "50"


def test_main_prepares_database(tmp_path, caplog):
    target = tmp_path / "cli.db"
    with caplog.at_level(logging.INFO, logger="pharmacy_erp"):
        assert main([str(target)]) == 0
    assert target.exists()
    assert "database ready" in caplog.text


def test_main_reports_other_schema_version(tmp_path, caplog):
    target = tmp_path / "old.db"
    conn = get_connection(target)
    conn.execute("UPDATE schema_version SET version='1' WHERE id=1")
    conn.commit()
    conn.close()
    with caplog.at_level(logging.INFO, logger="pharmacy_erp"):
        assert main([str(target)]) == 1
    assert "does not match" in caplog.text
