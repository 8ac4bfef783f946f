import logging

from ...database.repositories.stock_adjustments_repo import StockAdjustmentsRepo
from ...utils.helpers import today_str
from ..base_module import BaseModule
from ..documents.model import StockAdjustment, StockAdjustmentItem
from ..documents.payload import build_adjustment_payload
from ..documents.pipeline import BatchSelected, ProductSelected
from .validation import validate_adjustment

_log = logging.getLogger(__name__)


class StockAdjustmentController(BaseModule):
    def new_document(self):
        return StockAdjustment(items=(StockAdjustmentItem(),), date=today_str())

    def repo(self) -> StockAdjustmentsRepo:
        return StockAdjustmentsRepo(self.conn)

    def product_event(self, row, product):
        return ProductSelected(row, product)

    def select_batch(self, row: int, batch_number: str):
        item = self.document.items[row]
        batch = self.products.get_batch(item.product_id, batch_number) if item.product_id else None
        if batch is None:
            _log.warning("batch %r not found for product %s", batch_number, item.product_id)
            return self.document
        return self.dispatch(BatchSelected(row, batch))

    def validate(self) -> list:
        return validate_adjustment(self.document)

    def payload(self) -> dict:
        return build_adjustment_payload(self.document, places=self.settings.money_places)
