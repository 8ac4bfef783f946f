# pharmacy_erp/database/repositories/products_repo.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import sqlite3

from ...modules.purchase.costing import margin_of
from ...utils.numeric import D, fmt, to_decimal
from .base import DomainError, Repo

_MASTER_PRICES = (
    "pack_purchase_price",
    "unit_purchase_price",
    "pack_sale_price",
    "unit_sale_price",
    "whole_sale_pack_price",
    "whole_sale_unit_price",
)


@dataclass(frozen=True)
class ProductRecord:
    product_id: int
    name: str
    pack_size: str = ""
    pack_purchase_price: str = ""
    unit_purchase_price: str = ""
    pack_sale_price: str = ""
    unit_sale_price: str = ""
    whole_sale_pack_price: str = ""
    whole_sale_unit_price: str = ""
    avg_price: str = ""
    margin: str = ""
    is_narcotic: bool = False
    quantity: str = "0"
    has_batches: bool = False


@dataclass(frozen=True)
class BatchRecord:
    product_id: int
    batch_number: str
    expiry: str = ""
    quantity: str = "0"


class ProductsRepo(Repo):

    # ---------------------------- Products ----------------------------

    def create(self, name: str, **fields) -> int:
        row = {"name": name}
        for k, v in fields.items():
            if k == "is_narcotic":
                v = 1 if v else 0
            elif v is not None and not isinstance(v, str):
                v = fmt(Decimal(v))
            row[k] = v
        with self._immediate_tx():
            return self._insert("products", row)

    def get_product(self, product_id: int) -> ProductRecord | None:
        r = self.conn.execute(
            """
            SELECT p.*,
                   EXISTS(SELECT 1 FROM batches b WHERE b.product_id = p.product_id) AS has_batches
            FROM products p WHERE p.product_id=?
            """,
            (product_id,),
        ).fetchone()
        if r is None:
            return None
        d = dict(r)
        d["is_narcotic"] = bool(d["is_narcotic"])
        d["has_batches"] = bool(d["has_batches"])
        return ProductRecord(**d)

    def get_products(self, product_ids) -> dict[int, ProductRecord]:
        out = {}
        for pid in set(product_ids):
            if pid is None:
                continue
            p = self.get_product(pid)
            if p is not None:
                out[pid] = p
        return out

    # ---------------------------- Batches ----------------------------

    def list_batches(self, product_id: int) -> list[BatchRecord]:
        rows = self.conn.execute(
            "SELECT product_id, batch_number, expiry, quantity FROM batches "
            "WHERE product_id=? ORDER BY expiry, batch_number",
            (product_id,),
        ).fetchall()
        return [BatchRecord(**r) for r in rows]

    def get_batch(self, product_id: int, batch_number: str) -> BatchRecord | None:
        r = self.conn.execute(
            "SELECT product_id, batch_number, expiry, quantity FROM batches "
            "WHERE product_id=? AND batch_number=?",
            (product_id, batch_number),
        ).fetchone()
        return BatchRecord(**r) if r else None

    def available_quantity(self, product_id: int, batch_number: str = "") -> Decimal:
        if batch_number:
            b = self.get_batch(product_id, batch_number)
            return D(b.quantity) if b else Decimal("0")
        r = self.conn.execute("SELECT quantity FROM products WHERE product_id=?", (product_id,)).fetchone()
        return D(r["quantity"]) if r else Decimal("0")

    # ---------------------------- Customer prices ----------------------------

    def set_customer_price(self, customer_id: int, product_id: int, pack_price: str) -> None:
        with self._immediate_tx():
            self.conn.execute(
                """
                INSERT INTO customer_wholesale_prices(customer_id, product_id, pack_price)
                VALUES (?, ?, ?)
                ON CONFLICT(customer_id, product_id) DO UPDATE SET pack_price=excluded.pack_price
                """,
                (customer_id, product_id, pack_price),
            )

    def customer_wholesale_prices(self, customer_id: Optional[int]) -> dict[int, str]:
        if customer_id is None:
            return {}
        rows = self.conn.execute(
            "SELECT product_id, pack_price FROM customer_wholesale_prices WHERE customer_id=?",
            (customer_id,),
        ).fetchall()
        return {int(r["product_id"]): r["pack_price"] for r in rows}

    def customer_price(self, customer_id: Optional[int], product_id: int) -> str:
        return self.customer_wholesale_prices(customer_id).get(product_id, "")

    # ------------- Stock movements (call inside the caller's transaction) -------------

    def _require(self, product_id: int) -> sqlite3.Row:
        r = self.conn.execute("SELECT * FROM products WHERE product_id=?", (product_id,)).fetchone()
        if r is None:
            raise DomainError(f"Unknown product {product_id}.")
        return r

    def add_stock(self, product_id: int, batch_number: str, expiry: str, qty: Decimal) -> None:
        """Move stock by `qty` units (negative deducts) on product and batch."""
        p = self._require(product_id)
        if batch_number:
            b = self.get_batch(product_id, batch_number)
            if b is None:
                self._insert("batches", {
                    "product_id": product_id,
                    "batch_number": batch_number,
                    "expiry": expiry or "",
                    "quantity": fmt(qty),
                })
            else:
                self.conn.execute(
                    "UPDATE batches SET quantity=?, expiry=? WHERE product_id=? AND batch_number=?",
                    (fmt(D(b.quantity) + qty), expiry or b.expiry, product_id, batch_number),
                )
        self.conn.execute(
            "UPDATE products SET quantity=? WHERE product_id=?",
            (fmt(D(p["quantity"]) + qty), product_id),
        )

    def set_stock(self, product_id: int, batch_number: str, qty: Decimal) -> Decimal:
        """Set counted stock; returns the previous quantity."""
        p = self._require(product_id)
        if batch_number:
            b = self.get_batch(product_id, batch_number)
            if b is None:
                raise DomainError(f"Batch {batch_number} not found for product {product_id}.")
            before = D(b.quantity)
            self.conn.execute(
                "UPDATE batches SET quantity=? WHERE product_id=? AND batch_number=?",
                (fmt(qty), product_id, batch_number),
            )
            self.conn.execute(
                "UPDATE products SET quantity=? WHERE product_id=?",
                (fmt(D(p["quantity"]) + qty - before), product_id),
            )
            return before
        before = D(p["quantity"])
        self.conn.execute("UPDATE products SET quantity=? WHERE product_id=?", (fmt(qty), product_id))
        return before

    def update_master_prices(self, product_id: int, line: dict) -> None:
        """Latest purchase prices become the product's master prices."""
        values = {k: line[k] for k in _MASTER_PRICES if to_decimal(line.get(k)) is not None and D(line[k]) > 0}
        if not values:
            return
        sets = ", ".join(f"{k}=?" for k in values)
        self.conn.execute(f"UPDATE products SET {sets} WHERE product_id=?", (*values.values(), product_id))

    def recalc_product_averages(self, product_id: int) -> None:
        """
        avg_price = sum(qty * avg) / sum(qty) over every purchase line of the
        product; margin follows from the current unit sale price.
        """
        p = self._require(product_id)
        rows = self.conn.execute(
            "SELECT quantity, avg_price FROM purchase_invoice_items WHERE product_id=?",
            (product_id,),
        ).fetchall()
        units = sum((D(r["quantity"]) for r in rows), Decimal("0"))
        if units <= 0:
            return
        avg = sum((D(r["quantity"]) * D(r["avg_price"]) for r in rows), Decimal("0")) / units
        margin = margin_of(p["unit_sale_price"], avg)
        self.conn.execute(
            "UPDATE products SET avg_price=?, margin=? WHERE product_id=?",
            (fmt(avg), fmt(margin), product_id),
        )
