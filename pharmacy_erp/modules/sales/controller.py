import logging

from ...database.repositories.sales_repo import SalesRepo
from ...utils.helpers import today_str
from ..base_module import BaseModule
from ..documents.model import RETAIL, LineItem, new_sale
from ..documents.payload import build_payload
from ..documents.pipeline import (
    BatchSelected,
    HeaderEdited,
    MasterPricesRefreshed,
    ProductSelected,
    SaleTypeChanged,
)
from .validation import validate_sale

_log = logging.getLogger(__name__)


class SalesController(BaseModule):
    def new_document(self):
        return new_sale(items=(LineItem(),), date=today_str())

    def repo(self) -> SalesRepo:
        return SalesRepo(self.conn)

    def _customer_prices(self) -> dict:
        if self.document.sale_mode == RETAIL:
            return {}
        return self.products.customer_wholesale_prices(self.document.customer_id)

    def product_event(self, row, product):
        price = self._customer_prices().get(product.product_id, "")
        return ProductSelected(row, product, customer_price=price)

    def list_batches(self, row: int):
        item = self.document.items[row]
        return self.products.list_batches(item.product_id) if item.product_id else []

    def select_batch(self, row: int, batch_number: str):
        """Batches must come from the product's list; unknown numbers are ignored."""
        item = self.document.items[row]
        batch = self.products.get_batch(item.product_id, batch_number) if item.product_id else None
        if batch is None:
            _log.warning("batch %r not found for product %s", batch_number, item.product_id)
            return self.document
        return self.dispatch(BatchSelected(row, batch))

    def refresh_prices(self):
        """Re-read product masters and customer prices; hand-priced rows are kept."""
        ids = [i.product_id for i in self.document.items if i.product_id is not None]
        return self.dispatch(MasterPricesRefreshed(
            products=self.products.get_products(ids),
            customer_prices=self._customer_prices(),
        ))

    def set_customer(self, customer_id):
        self.dispatch(HeaderEdited("customer_id", customer_id))
        return self.refresh_prices()

    def set_sale_type(self, sale_type: str):
        self.dispatch(SaleTypeChanged(sale_type))
        return self.refresh_prices()

    def validate(self) -> list:
        return validate_sale(self.document, settings=self.settings)

    def payload(self) -> dict:
        return build_payload(self.document, places=self.settings.money_places)
