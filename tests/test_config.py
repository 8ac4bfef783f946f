from decimal import Decimal

import pytest

from pharmacy_erp.config import EngineSettings, load_settings
from pharmacy_erp.constants import AVG_PRICE_LAST_COST, AVG_PRICE_WEIGHTED


def test_defaults(monkeypatch):
    for name in ("AVG_PRICE_POLICY", "INVOICE_AMOUNT_TOLERANCE", "MONEY_PLACES", "DEFAULT_SALE_QUANTITY"):
        monkeypatch.delenv("PHARMACY_ERP_" + name, raising=False)
    s = load_settings()
    assert s == EngineSettings()
    assert s.avg_price_policy == AVG_PRICE_WEIGHTED
    assert s.invoice_amount_tolerance == Decimal("5")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PHARMACY_ERP_AVG_PRICE_POLICY", " Last_Cost ")
    monkeypatch.setenv("PHARMACY_ERP_INVOICE_AMOUNT_TOLERANCE", "0.5")
    monkeypatch.setenv("PHARMACY_ERP_DEFAULT_SALE_QUANTITY", "2")
    s = load_settings()
    assert s.avg_price_policy == AVG_PRICE_LAST_COST
    assert s.invoice_amount_tolerance == Decimal("0.5")
    assert s.default_sale_quantity == "2"


@pytest.mark.parametrize("name,value", [
    ("AVG_PRICE_POLICY", "fifo"),
    ("INVOICE_AMOUNT_TOLERANCE", "five"),
])
def test_bad_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv("PHARMACY_ERP_" + name, value)
    with pytest.raises(ValueError):
        load_settings()
