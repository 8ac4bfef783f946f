from __future__ import annotations

from decimal import Decimal
import logging

from ...constants import SALE_NUMBER_PREFIX, SALE_NUMBER_WIDTH
from ...modules.documents.model import PACK, SALE, Document, LineItem
from ...utils.numeric import D, fmt
from .base import DomainError, Repo
from .numbering import next_posted_number
from .products_repo import ProductsRepo

_log = logging.getLogger(__name__)

_HEADER_COLS = (
    "customer_id", "sale_type", "wholesale_type", "invoice_type", "date", "remarks",
    "doctor_name", "patient_name", "gross_amount", "discount_percentage", "discount_amount",
    "tax_percentage", "tax_amount", "total_amount", "total_receive", "payment_status",
)

_ITEM_COLS = (
    "product_id", "batch_number", "expiry", "unit", "pack_size", "quantity", "price",
    "item_discount_percentage", "sub_total", "is_custom_price", "is_narcotic",
)


class SalesRepo(Repo):
    def __init__(self, conn):
        super().__init__(conn)
        self.products = ProductsRepo(conn)

    # ---------- Query ----------
    def get_header(self, sale_invoice_id: int) -> dict | None:
        r = self.conn.execute(
            "SELECT * FROM sale_invoices WHERE sale_invoice_id=?", (sale_invoice_id,)
        ).fetchone()
        return dict(r) if r else None

    def list_items(self, sale_invoice_id: int) -> list[dict]:
        rows = self.conn.execute(
            """
            SELECT si.*, pr.name AS product_name
            FROM sale_invoice_items si
            JOIN products pr ON pr.product_id = si.product_id
            WHERE si.sale_invoice_id=?
            ORDER BY si.item_id
            """,
            (sale_invoice_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    def find_by_number(self, posted_number: str) -> dict | None:
        r = self.conn.execute(
            "SELECT * FROM sale_invoices WHERE posted_number=?", (posted_number,)
        ).fetchone()
        return dict(r) if r else None

    # ---------- Stock side effects ----------
    def _restore(self, items: list[dict]) -> None:
        for it in items:
            self.products.add_stock(it["product_id"], it["batch_number"], it["expiry"], D(it["quantity"]))

    def _deduct(self, items: list[dict]) -> None:
        """Stock is re-checked here; another session may have sold it meanwhile."""
        for it in items:
            qty = D(it["quantity"])
            if it["batch_number"] and self.products.get_batch(it["product_id"], it["batch_number"]) is None:
                raise DomainError(f"Batch {it['batch_number']} not found for product {it['product_id']}.")
            available = self.products.available_quantity(it["product_id"], it["batch_number"])
            if qty > available:
                raise DomainError(
                    f"Insufficient stock for product {it['product_id']}: "
                    f"{fmt(available)} available, {fmt(qty)} requested."
                )
            self.products.add_stock(it["product_id"], it["batch_number"], it["expiry"], -qty)

    def _insert_items(self, sale_invoice_id: int, items: list[dict]) -> None:
        for it in items:
            row = {c: it[c] for c in _ITEM_COLS}
            row["is_custom_price"] = 1 if it["is_custom_price"] else 0
            row["is_narcotic"] = 1 if it["is_narcotic"] else 0
            row["sale_invoice_id"] = sale_invoice_id
            self._insert("sale_invoice_items", row)

    # ---------- Save ----------
    def create(self, payload: dict) -> tuple[int, str]:
        with self._immediate_tx():
            number = next_posted_number(self.conn, "sale_invoices", SALE_NUMBER_PREFIX, SALE_NUMBER_WIDTH)
            header = {c: payload[c] for c in _HEADER_COLS}
            header["posted_number"] = number
            sid = self._insert("sale_invoices", header)
            self._insert_items(sid, payload["items"])
            self._deduct(payload["items"])
        _log.info("sale %s saved (%d lines)", number, len(payload["items"]))
        return sid, number

    def update(self, sale_invoice_id: int, payload: dict) -> str:
        """Replace a sale invoice; its previous deduction is restored first."""
        with self._immediate_tx():
            header = self.get_header(sale_invoice_id)
            if header is None:
                raise DomainError(f"Sale invoice {sale_invoice_id} not found.")
            self._restore(self.list_items(sale_invoice_id))
            self.conn.execute("DELETE FROM sale_invoice_items WHERE sale_invoice_id=?", (sale_invoice_id,))
            sets = ", ".join(f"{c}=?" for c in _HEADER_COLS)
            self.conn.execute(
                f"UPDATE sale_invoices SET {sets} WHERE sale_invoice_id=?",
                (*(payload[c] for c in _HEADER_COLS), sale_invoice_id),
            )
            self._insert_items(sale_invoice_id, payload["items"])
            self._deduct(payload["items"])
        _log.info("sale %s updated", header["posted_number"])
        return header["posted_number"]

    # ---------- Edit mode ----------
    def load_document(self, sale_invoice_id: int) -> Document:
        """
        Stored invoice as a Document. Quantities come back in the invoice's
        unit, and each line's stock snapshot includes what this invoice holds.
        """
        h = self.get_header(sale_invoice_id)
        if h is None:
            raise DomainError(f"Sale invoice {sale_invoice_id} not found.")
        rows = self.list_items(sale_invoice_id)
        own: dict[tuple, Decimal] = {}
        for r in rows:
            key = (r["product_id"], r["batch_number"] or "")
            own[key] = own.get(key, Decimal("0")) + D(r["quantity"])

        items = []
        for r in rows:
            product = self.products.get_product(r["product_id"])
            key = (r["product_id"], r["batch_number"] or "")
            units = D(r["quantity"])
            ps = D(r["pack_size"])
            qty = units / ps if r["unit"] == PACK and ps > 0 else units
            stock = self.products.available_quantity(r["product_id"], r["batch_number"]) + own[key]
            items.append(LineItem(
                product_id=r["product_id"],
                product_name=r["product_name"],
                batch_number=r["batch_number"],
                expiry=r["expiry"],
                has_batches=bool(product and product.has_batches),
                pack_size=r["pack_size"],
                quantity=fmt(qty),
                price=r["price"],
                item_discount_percentage=r["item_discount_percentage"],
                sub_total=r["sub_total"],
                pack_purchase_price=product.pack_purchase_price if product else "",
                unit_purchase_price=product.unit_purchase_price if product else "",
                pack_sale_price=product.pack_sale_price if product else "",
                unit_sale_price=product.unit_sale_price if product else "",
                whole_sale_pack_price=product.whole_sale_pack_price if product else "",
                whole_sale_unit_price=product.whole_sale_unit_price if product else "",
                avg_price=product.avg_price if product else "",
                stock_units=fmt(stock),
                is_custom_price=bool(r["is_custom_price"]),
                is_narcotic=bool(r["is_narcotic"]),
            ))
        return Document(
            kind=SALE,
            document_id=sale_invoice_id,
            posted_number=h["posted_number"],
            items=tuple(items),
            **{c: h[c] for c in _HEADER_COLS if c != "payment_status"},
        )
