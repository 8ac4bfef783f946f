from __future__ import annotations

from decimal import Decimal
from typing import Optional
import logging

from ...constants import PURCHASE_NUMBER_PREFIX, PURCHASE_NUMBER_WIDTH
from ...modules.documents.model import Document, LineItem, PURCHASE
from ...utils.numeric import D, fmt
from .base import DomainError, Repo
from .numbering import next_posted_number
from .products_repo import ProductsRepo

_log = logging.getLogger(__name__)

_HEADER_COLS = (
    "supplier_id", "invoice_number", "invoice_amount", "invoice_type", "date", "remarks",
    "gross_amount", "discount_percentage", "discount_amount", "tax_percentage", "tax_amount",
    "total_amount", "total_paid", "payment_status",
)

_ITEM_COLS = (
    "product_id", "batch_number", "expiry", "pack_size", "pack_quantity", "loose_units",
    "unit_quantity", "pack_bonus", "unit_bonus", "quantity", "pack_purchase_price",
    "unit_purchase_price", "pack_sale_price", "unit_sale_price", "whole_sale_pack_price",
    "whole_sale_unit_price", "whole_sale_margin", "item_discount_percentage", "margin",
    "avg_price", "sub_total",
)


class PurchasesRepo(Repo):
    def __init__(self, conn):
        super().__init__(conn)
        self.products = ProductsRepo(conn)

    # ---------- Query ----------
    def get_header(self, purchase_invoice_id: int) -> dict | None:
        r = self.conn.execute(
            "SELECT * FROM purchase_invoices WHERE purchase_invoice_id=?", (purchase_invoice_id,)
        ).fetchone()
        return dict(r) if r else None

    def list_items(self, purchase_invoice_id: int) -> list[dict]:
        rows = self.conn.execute(
            """
            SELECT pi.*, pr.name AS product_name
            FROM purchase_invoice_items pi
            JOIN products pr ON pr.product_id = pi.product_id
            WHERE pi.purchase_invoice_id=?
            ORDER BY pi.item_id
            """,
            (purchase_invoice_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    def find_by_number(self, posted_number: str) -> dict | None:
        r = self.conn.execute(
            "SELECT * FROM purchase_invoices WHERE posted_number=?", (posted_number,)
        ).fetchone()
        return dict(r) if r else None

    def invoice_number_exists(
        self, supplier_id: int, invoice_number: str, exclude_id: Optional[int] = None
    ) -> bool:
        r = self.conn.execute(
            """
            SELECT 1 FROM purchase_invoices
            WHERE supplier_id=? AND invoice_number=? AND purchase_invoice_id IS NOT ?
            """,
            (supplier_id, (invoice_number or "").strip(), exclude_id),
        ).fetchone()
        return r is not None

    # ---------- Stock side effects ----------
    def _apply_lines(self, items: list[dict], sign: int) -> None:
        for it in items:
            self.products.add_stock(
                it["product_id"], it["batch_number"], it["expiry"], D(it["quantity"]) * sign
            )

    def _refresh_products(self, items: list[dict]) -> None:
        for it in items:
            self.products.update_master_prices(it["product_id"], it)
        for pid in {it["product_id"] for it in items}:
            self.products.recalc_product_averages(pid)

    def _insert_items(self, purchase_invoice_id: int, items: list[dict]) -> None:
        for it in items:
            row = {c: it[c] for c in _ITEM_COLS}
            row["purchase_invoice_id"] = purchase_invoice_id
            self._insert("purchase_invoice_items", row)

    # ---------- Save ----------
    def create(self, payload: dict) -> tuple[int, str]:
        """
        Insert a purchase invoice, receive its stock and refresh product
        averages. The posted number is allocated inside the transaction.
        """
        with self._immediate_tx():
            if payload.get("supplier_id") is not None and payload.get("invoice_number") and \
                    self.invoice_number_exists(payload["supplier_id"], payload["invoice_number"]):
                raise DomainError(
                    f"Invoice number {payload['invoice_number']} is already recorded for this supplier."
                )
            number = next_posted_number(
                self.conn, "purchase_invoices", PURCHASE_NUMBER_PREFIX, PURCHASE_NUMBER_WIDTH
            )
            header = {c: payload[c] for c in _HEADER_COLS}
            header["posted_number"] = number
            pid = self._insert("purchase_invoices", header)
            self._insert_items(pid, payload["items"])
            self._apply_lines(payload["items"], +1)
            self._refresh_products(payload["items"])
        _log.info("purchase %s saved (%d lines)", number, len(payload["items"]))
        return pid, number

    def update(self, purchase_invoice_id: int, payload: dict) -> str:
        """Replace a purchase invoice; its previous stock receipt is reverted first."""
        with self._immediate_tx():
            header = self.get_header(purchase_invoice_id)
            if header is None:
                raise DomainError(f"Purchase invoice {purchase_invoice_id} not found.")
            if payload.get("supplier_id") is not None and payload.get("invoice_number") and \
                    self.invoice_number_exists(
                        payload["supplier_id"], payload["invoice_number"], purchase_invoice_id
                    ):
                raise DomainError(
                    f"Invoice number {payload['invoice_number']} is already recorded for this supplier."
                )
            old_items = self.list_items(purchase_invoice_id)
            self._apply_lines(old_items, -1)
            self.conn.execute(
                "DELETE FROM purchase_invoice_items WHERE purchase_invoice_id=?", (purchase_invoice_id,)
            )
            sets = ", ".join(f"{c}=?" for c in _HEADER_COLS)
            self.conn.execute(
                f"UPDATE purchase_invoices SET {sets} WHERE purchase_invoice_id=?",
                (*(payload[c] for c in _HEADER_COLS), purchase_invoice_id),
            )
            self._insert_items(purchase_invoice_id, payload["items"])
            self._apply_lines(payload["items"], +1)
            self._refresh_products(payload["items"])
            for pid in {it["product_id"] for it in old_items} - {it["product_id"] for it in payload["items"]}:
                self.products.recalc_product_averages(pid)
        _log.info("purchase %s updated", header["posted_number"])
        return header["posted_number"]

    # ---------- Edit mode ----------
    def load_document(self, purchase_invoice_id: int) -> Document:
        """Stored invoice as a Document; the caller runs it through load_document()."""
        h = self.get_header(purchase_invoice_id)
        if h is None:
            raise DomainError(f"Purchase invoice {purchase_invoice_id} not found.")
        items = []
        own: dict[int, Decimal] = {}
        for r in self.list_items(purchase_invoice_id):
            own[r["product_id"]] = own.get(r["product_id"], Decimal("0")) + D(r["quantity"])
        for r in self.list_items(purchase_invoice_id):
            product = self.products.get_product(r["product_id"])
            on_hand = D(product.quantity) - own[r["product_id"]] if product else Decimal("0")
            items.append(LineItem(
                product_id=r["product_id"],
                product_name=r["product_name"],
                has_batches=bool(product and product.has_batches),
                stock_avg_price=product.avg_price if product else "",
                current_quantity=fmt(on_hand if on_hand > 0 else Decimal("0")),
                is_narcotic=bool(product and product.is_narcotic),
                **{c: r[c] for c in _ITEM_COLS if c != "product_id"},
            ))
        return Document(
            kind=PURCHASE,
            document_id=purchase_invoice_id,
            posted_number=h["posted_number"],
            items=tuple(items),
            **{c: h[c] for c in _HEADER_COLS if c != "payment_status"},
        )
