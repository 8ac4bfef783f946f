from __future__ import annotations

import logging

from ...constants import ADJUSTMENT_NUMBER_PREFIX, ADJUSTMENT_NUMBER_WIDTH
from ...modules.documents.model import StockAdjustment, StockAdjustmentItem
from ...utils.numeric import D
from .base import DomainError, Repo
from .numbering import next_posted_number
from .products_repo import ProductsRepo

_log = logging.getLogger(__name__)

_ITEM_COLS = (
    "product_id", "batch_number", "expiry", "available_qty", "actual_qty", "diff_qty",
    "unit_cost", "worth_adjusted",
)


class StockAdjustmentsRepo(Repo):
    def __init__(self, conn):
        super().__init__(conn)
        self.products = ProductsRepo(conn)

    # ---------- Query ----------
    def get_header(self, stock_adjustment_id: int) -> dict | None:
        r = self.conn.execute(
            "SELECT * FROM stock_adjustments WHERE stock_adjustment_id=?", (stock_adjustment_id,)
        ).fetchone()
        return dict(r) if r else None

    def list_items(self, stock_adjustment_id: int) -> list[dict]:
        rows = self.conn.execute(
            """
            SELECT sa.*, pr.name AS product_name
            FROM stock_adjustment_items sa
            JOIN products pr ON pr.product_id = sa.product_id
            WHERE sa.stock_adjustment_id=?
            ORDER BY sa.item_id
            """,
            (stock_adjustment_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    # ---------- Stock side effects ----------
    def _apply(self, items: list[dict]) -> None:
        """Counted quantity becomes the stock of the product/batch."""
        for it in items:
            self.products.set_stock(it["product_id"], it["batch_number"], D(it["actual_qty"]))

    def _revert(self, items: list[dict]) -> None:
        # undo the difference, not the count: later movements stay intact
        for it in items:
            self.products.add_stock(it["product_id"], it["batch_number"], it["expiry"], -D(it["diff_qty"]))

    def _insert_items(self, stock_adjustment_id: int, items: list[dict]) -> None:
        for it in items:
            row = {c: it[c] for c in _ITEM_COLS}
            row["stock_adjustment_id"] = stock_adjustment_id
            self._insert("stock_adjustment_items", row)

    # ---------- Save ----------
    def create(self, payload: dict) -> tuple[int, str]:
        with self._immediate_tx():
            number = next_posted_number(
                self.conn, "stock_adjustments", ADJUSTMENT_NUMBER_PREFIX, ADJUSTMENT_NUMBER_WIDTH
            )
            aid = self._insert("stock_adjustments", {
                "posted_number": number,
                "date": payload["date"],
                "remarks": payload["remarks"],
                "total_worth": payload["total_worth"],
            })
            self._insert_items(aid, payload["items"])
            self._apply(payload["items"])
        _log.info("stock adjustment %s saved (%d lines)", number, len(payload["items"]))
        return aid, number

    def update(self, stock_adjustment_id: int, payload: dict) -> str:
        with self._immediate_tx():
            header = self.get_header(stock_adjustment_id)
            if header is None:
                raise DomainError(f"Stock adjustment {stock_adjustment_id} not found.")
            self._revert(self.list_items(stock_adjustment_id))
            self.conn.execute(
                "DELETE FROM stock_adjustment_items WHERE stock_adjustment_id=?", (stock_adjustment_id,)
            )
            self.conn.execute(
                "UPDATE stock_adjustments SET date=?, remarks=?, total_worth=? WHERE stock_adjustment_id=?",
                (payload["date"], payload["remarks"], payload["total_worth"], stock_adjustment_id),
            )
            self._insert_items(stock_adjustment_id, payload["items"])
            self._apply(payload["items"])
        _log.info("stock adjustment %s updated", header["posted_number"])
        return header["posted_number"]

    # ---------- Edit mode ----------
    def load_document(self, stock_adjustment_id: int) -> StockAdjustment:
        h = self.get_header(stock_adjustment_id)
        if h is None:
            raise DomainError(f"Stock adjustment {stock_adjustment_id} not found.")
        items = []
        for r in self.list_items(stock_adjustment_id):
            product = self.products.get_product(r["product_id"])
            items.append(StockAdjustmentItem(
                product_name=r["product_name"],
                has_batches=bool(product and product.has_batches),
                **{c: r[c] for c in _ITEM_COLS},
            ))
        return StockAdjustment(
            items=tuple(items),
            total_worth=h["total_worth"],
            date=h["date"],
            remarks=h["remarks"],
            posted_number=h["posted_number"],
            document_id=stock_adjustment_id,
        )
