from dataclasses import replace

import pytest

from pharmacy_erp.modules.documents.model import PACK, RETAIL, UNIT, LineItem
from pharmacy_erp.modules.sales.formula import (
    edit_item,
    recalc_item,
    reprice_item,
    seed_price,
    select_batch,
    select_product,
    switch_wholesale_type,
)


def test_retail_select_presets_quantity_and_stock(paracetamol):
    item = select_product(LineItem(), paracetamol, mode=RETAIL, default_quantity="1")
    assert item.price == "15"
    assert item.quantity == "1"
    assert item.current_quantity == "50"
    assert item.sub_total == "15"
    assert not item.is_custom_price


def test_quantity_preset_only_when_empty(paracetamol):
    item = select_product(LineItem(quantity="4"), paracetamol, mode=RETAIL)
    assert item.quantity == "4"
    assert item.sub_total == "60"


def test_own_reservation_is_available_again(paracetamol):
    item = select_product(LineItem(), paracetamol, mode=RETAIL, reserved="6")
    assert item.current_quantity == "56"


def test_customer_pack_price_wins_and_is_custom(paracetamol):
    item = select_product(LineItem(), paracetamol, mode=PACK, customer_price="120")
    assert item.price == "120"
    assert item.is_custom_price
    assert item.current_quantity == "5"


def test_customer_price_in_unit_mode_is_per_unit(paracetamol):
    price, custom = seed_price(paracetamol, UNIT, "120")
    assert (price, custom) == ("12", True)


@pytest.mark.parametrize("overrides, mode, expected", [
    ({}, PACK, "130"),
    ({}, UNIT, "13"),
    ({"whole_sale_pack_price": ""}, PACK, "150"),
    ({"whole_sale_pack_price": "", "pack_sale_price": ""}, PACK, "130"),
    ({"whole_sale_unit_price": ""}, UNIT, "15"),
    ({"unit_sale_price": ""}, RETAIL, "15"),
])
def test_wholesale_price_precedence(paracetamol, overrides, mode, expected):
    product = replace(paracetamol, **overrides)
    price, custom = seed_price(product, mode)
    assert price == expected
    assert not custom


def test_hand_edited_price_is_custom(paracetamol):
    item = select_product(LineItem(), paracetamol, mode=UNIT)
    item = edit_item(item, "price", "12.5", UNIT)
    assert item.is_custom_price
    assert item.sub_total == "12.5"


def test_reprice_skips_custom_rows(paracetamol):
    item = select_product(LineItem(), paracetamol, mode=UNIT)
    cheaper = replace(paracetamol, whole_sale_unit_price="11")
    assert reprice_item(item, cheaper, UNIT).price == "11"

    custom = edit_item(item, "price", "14", UNIT)
    assert reprice_item(custom, cheaper, UNIT).price == "14"


def test_switch_unit_to_pack_and_back(paracetamol):
    item = select_product(LineItem(), paracetamol, mode=UNIT)
    item = edit_item(item, "quantity", "25", UNIT)
    assert item.sub_total == "325"

    packs = switch_wholesale_type(item, UNIT, PACK)
    assert (packs.quantity, packs.price) == ("2", "130")
    assert packs.sub_total == "260"
    assert packs.current_quantity == "5"

    units = switch_wholesale_type(packs, PACK, UNIT)
    assert (units.quantity, units.price) == ("20", "13")
    assert units.current_quantity == "50"


def test_switch_to_pack_keeps_at_least_one_pack(paracetamol):
    item = edit_item(select_product(LineItem(), paracetamol, mode=UNIT), "quantity", "5", UNIT)
    assert switch_wholesale_type(item, UNIT, PACK).quantity == "1"


def test_switch_uses_customer_pack_price(paracetamol):
    item = select_product(LineItem(), paracetamol, mode=UNIT, customer_price="120")
    assert item.price == "12"
    assert switch_wholesale_type(item, UNIT, PACK).price == "120"


def test_switch_between_retail_and_unit_converts_nothing(paracetamol):
    item = edit_item(select_product(LineItem(), paracetamol, mode=RETAIL), "quantity", "7", RETAIL)
    same = switch_wholesale_type(item, RETAIL, UNIT)
    assert (same.quantity, same.price) == ("7", "15")


def test_batch_select_sets_expiry_and_stock(amoxicillin, amox_batches):
    item = select_product(LineItem(), amoxicillin, mode=RETAIL)
    assert item.current_quantity == ""
    item = select_batch(item, amox_batches["B1"], mode=RETAIL, reserved="12")
    assert item.expiry == "2027-01-31"
    assert item.current_quantity == "36"
    assert item.quantity == "1"


def test_batch_stock_in_packs_is_floored(amoxicillin, amox_batches):
    item = select_product(LineItem(), amoxicillin, mode=PACK)
    item = select_batch(item, amox_batches["B1"], mode=PACK, reserved="6")
    assert item.current_quantity == "2"


def test_reselecting_same_product_keeps_batch(amoxicillin, amox_batches):
    item = select_batch(select_product(LineItem(), amoxicillin), amox_batches["B2"])
    again = select_product(item, amoxicillin)
    assert (again.batch_number, again.current_quantity) == ("B2", "12")


def test_discount_applies_to_sub_total(paracetamol):
    item = edit_item(select_product(LineItem(), paracetamol), "quantity", "10")
    assert edit_item(item, "item_discount_percentage", "10").sub_total == "135"


@pytest.mark.parametrize("field, value", [("quantity", "3"), ("price", "9.99"), ("item_discount_percentage", "-2")])
def test_recalc_is_idempotent(paracetamol, field, value):
    item = edit_item(select_product(LineItem(), paracetamol, mode=PACK), field, value, PACK)
    assert recalc_item(item, field, PACK) == item
