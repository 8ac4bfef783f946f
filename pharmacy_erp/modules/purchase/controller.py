import logging

from ...database.repositories.products_repo import BatchRecord
from ...database.repositories.purchases_repo import PurchasesRepo
from ...utils.helpers import today_str
from ..base_module import BaseModule
from ..documents.model import LineItem, new_purchase
from ..documents.payload import build_payload
from ..documents.pipeline import BatchSelected, ProductSelected
from .validation import validate_purchase

_log = logging.getLogger(__name__)


class PurchaseController(BaseModule):
    def new_document(self):
        return new_purchase(items=(LineItem(),), date=today_str())

    def repo(self) -> PurchasesRepo:
        return PurchasesRepo(self.conn)

    def product_event(self, row, product):
        return ProductSelected(row, product)

    def select_batch(self, row: int, batch_number: str, expiry: str = ""):
        """Pick a stored batch, or start a new one typed on the line."""
        item = self.document.items[row]
        batch = self.products.get_batch(item.product_id, batch_number) if item.product_id else None
        if batch is None:
            _log.debug("row %s: new batch %r", row, batch_number)
            batch = BatchRecord(product_id=item.product_id, batch_number=batch_number, expiry=expiry)
        return self.dispatch(BatchSelected(row, batch))

    def validate(self) -> list:
        return validate_purchase(
            self.document,
            settings=self.settings,
            invoice_number_exists=self.repo().invoice_number_exists,
        )

    def payload(self) -> dict:
        return build_payload(self.document, places=self.settings.money_places)
