from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ..config import SETTINGS, EngineSettings
from ..database.repositories.base import DomainError
from ..database.repositories.products_repo import ProductsRepo
from .documents.pipeline import RowAdded, RowRemoved, apply_event, load_document
from .documents.requests import RowRequestTracker

_log = logging.getLogger(__name__)


class BaseModule(QObject):
    """
    One open document (purchase, sale or stock adjustment).

    Views feed edit events in through dispatch() and re-render from
    documentChanged. Master data lookups are token guarded per row so a
    late answer for an abandoned request never lands on the row.
    """

    documentChanged = Signal(object)
    noticeRaised = Signal(object)
    validationFailed = Signal(list)
    saved = Signal(str)
    saveFailed = Signal(object)

    def __init__(self, conn: sqlite3.Connection, settings: Optional[EngineSettings] = None, parent=None):
        super().__init__(parent)
        self.conn = conn
        self.settings = settings or SETTINGS
        self.products = ProductsRepo(conn)
        self.requests = RowRequestTracker()
        self.document = self.new_document()

    # ---------- To be provided by each document kind ----------
    def new_document(self):
        raise NotImplementedError

    def repo(self):
        raise NotImplementedError

    def validate(self) -> list:
        raise NotImplementedError

    def payload(self) -> dict:
        raise NotImplementedError

    def product_event(self, row: int, product):
        raise NotImplementedError

    # ---------- Events ----------
    def dispatch(self, event):
        self.document = apply_event(self.document, event, settings=self.settings)
        for notice in self.document.notices:
            self.noticeRaised.emit(notice)
        self.documentChanged.emit(self.document)
        return self.document

    def reset(self):
        self.requests = RowRequestTracker()
        self.document = self.new_document()
        self.documentChanged.emit(self.document)

    # ---------- Master data (last request per row wins) ----------
    def request_product(self, row: int) -> int:
        return self.requests.issue(row)

    def deliver_product(self, row: int, token: int, product_id: int) -> bool:
        if not self.requests.accept(row, token):
            _log.info("stale product delivery for row %s ignored (token %s)", row, token)
            return False
        product = self.products.get_product(product_id)
        if product is None:
            _log.warning("product %s not found", product_id)
            return False
        self.dispatch(self.product_event(row, product))
        return True

    def select_product(self, row: int, product_id: int) -> bool:
        return self.deliver_product(row, self.request_product(row), product_id)

    def add_row(self):
        return self.dispatch(RowAdded())

    def remove_row(self, row: int):
        self.requests.forget(row)
        return self.dispatch(RowRemoved(row))

    # ---------- Load / save ----------
    def load(self, document_id: int):
        self.requests = RowRequestTracker()
        self.document = load_document(self.repo().load_document(document_id))
        self.documentChanged.emit(self.document)
        return self.document

    def save(self) -> Optional[str]:
        """
        Validate, then create or replace through the repository. Validation
        problems go out on validationFailed, persistence errors on saveFailed;
        nothing is retried.
        """
        issues = self.validate()
        if issues:
            _log.info("save blocked by %d validation issue(s)", len(issues))
            self.validationFailed.emit(issues)
            return None

        payload = self.payload()
        repo = self.repo()
        try:
            if self.document.document_id is None:
                document_id, number = repo.create(payload)
            else:
                document_id = self.document.document_id
                number = repo.update(document_id, payload)
        except (DomainError, sqlite3.Error) as e:
            _log.error("save failed: %s", e)
            self.saveFailed.emit(e)
            return None

        self.load(document_id)
        self.saved.emit(number)
        return number
