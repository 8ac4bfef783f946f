from dataclasses import replace

import pytest

from pharmacy_erp.constants import AVG_PRICE_LAST_COST, AVG_PRICE_WEIGHTED
from pharmacy_erp.modules.documents.model import LineItem
from pharmacy_erp.modules.purchase.formula import commit_item, edit_item, recalc_item, select_product
from pharmacy_erp.utils.numeric import money


@pytest.fixture()
def line(paracetamol) -> LineItem:
    return select_product(LineItem(), paracetamol, policy=AVG_PRICE_WEIGHTED)


def test_select_product_seeds_master_prices(line):
    assert line.product_name == "Paracetamol 500mg"
    assert line.pack_size == "10"
    assert line.unit_purchase_price == "10"  # derived from the pack price
    assert line.unit_sale_price == "15"
    assert line.stock_avg_price == "10"
    assert line.current_quantity == "50"
    assert line.quantity == ""
    assert line.sub_total == "0"


def test_packs_and_units_are_linked(line):
    """pack_size 10 x 3 packs -> 30 units."""
    by_packs = edit_item(line, "pack_quantity", "3")
    assert by_packs.unit_quantity == "30"
    assert by_packs.quantity == "30"

    by_units = edit_item(line, "unit_quantity", "30")
    assert by_units.pack_quantity == "3"
    assert by_units.loose_units == "0"

    assert by_packs.sub_total == by_units.sub_total == "300"


def test_units_split_into_packs_and_loose(line):
    item = edit_item(line, "unit_quantity", "25")
    assert (item.pack_quantity, item.loose_units) == ("2", "5")
    item = edit_item(item, "loose_units", "7")
    assert item.unit_quantity == "27"


def test_part_packs_convert_to_units(line):
    item = edit_item(line, "pack_quantity", "1.5")
    assert item.pack_quantity == "1.5"
    assert item.unit_quantity == "15"
    assert item.quantity == "15"
    assert item.sub_total == "150"

    item = edit_item(item, "pack_bonus", "0.5")
    assert item.pack_bonus == "0.5"
    assert item.quantity == "20"

    # single units stay whole
    item = edit_item(item, "unit_quantity", "15.5")
    assert item.unit_quantity == "15"
    assert (item.pack_quantity, item.loose_units) == ("1", "5")
    assert edit_item(item, "unit_bonus", "2.5").unit_bonus == "2"


def test_without_pack_size_units_are_the_only_source():
    item = LineItem(product_id=9, unit_purchase_price="4")
    item = edit_item(item, "pack_quantity", "3")
    assert item.unit_quantity == ""
    item = edit_item(item, "unit_quantity", "6")
    assert item.pack_quantity == "3"  # untouched, never divided by an empty pack size
    assert item.sub_total == "24"


def test_price_edit_regenerates_counterpart(line):
    item = edit_item(line, "pack_purchase_price", "120")
    assert item.unit_purchase_price == "12"
    item = edit_item(item, "unit_sale_price", "16")
    assert item.pack_sale_price == "160"
    item = edit_item(item, "whole_sale_pack_price", "140")
    assert item.whole_sale_unit_price == "14"


def test_edited_field_keeps_raw_text(line):
    item = edit_item(line, "pack_purchase_price", "12.")
    assert item.pack_purchase_price == "12."
    assert item.unit_purchase_price == "1.2"


def test_bonus_counts_as_incoming_but_is_free(line):
    item = edit_item(line, "pack_quantity", "3")
    item = edit_item(item, "pack_bonus", "1")
    item = edit_item(item, "unit_bonus", "2")
    assert item.quantity == "42"
    assert item.sub_total == "300"


def test_weighted_average_cost_and_margin(line):
    item = edit_item(line, "pack_purchase_price", "120")
    item = edit_item(item, "pack_quantity", "3", policy=AVG_PRICE_WEIGHTED)
    # (10 x 50 on hand + 360 incoming) / 80 units
    assert item.avg_price == "10.75"
    assert money(item.margin) == "28.33"


def test_last_cost_policy(line):
    item = edit_item(line, "pack_purchase_price", "120", policy=AVG_PRICE_LAST_COST)
    item = edit_item(item, "pack_quantity", "3", policy=AVG_PRICE_LAST_COST)
    assert item.avg_price == "12"
    assert item.margin == "20"


def test_bonus_lowers_average_cost(line):
    item = edit_item(line, "pack_purchase_price", "120", policy=AVG_PRICE_LAST_COST)
    item = edit_item(item, "pack_quantity", "3", policy=AVG_PRICE_LAST_COST)
    item = edit_item(item, "pack_bonus", "1", policy=AVG_PRICE_LAST_COST)
    assert item.avg_price == "9"


def test_editing_margin_reprices_sale(line):
    item = edit_item(line, "pack_purchase_price", "120", policy=AVG_PRICE_LAST_COST)
    item = edit_item(item, "pack_quantity", "3", policy=AVG_PRICE_LAST_COST)
    item = edit_item(item, "margin", "25", policy=AVG_PRICE_LAST_COST)
    assert item.margin == "25"
    assert item.unit_sale_price == "16"
    assert item.pack_sale_price == "160"


def test_wholesale_margin(line):
    item = edit_item(line, "pack_purchase_price", "120", policy=AVG_PRICE_LAST_COST)
    item = edit_item(item, "pack_quantity", "3", policy=AVG_PRICE_LAST_COST)
    assert money(item.whole_sale_margin) == "7.69"
    item = edit_item(item, "whole_sale_margin", "20", policy=AVG_PRICE_LAST_COST)
    assert item.whole_sale_unit_price == "15"
    assert item.whole_sale_pack_price == "150"


def test_item_discount_is_signed(line):
    item = edit_item(line, "pack_quantity", "3")
    assert edit_item(item, "item_discount_percentage", "10").sub_total == "270"
    assert edit_item(item, "item_discount_percentage", "-10").sub_total == "330"


def test_non_numeric_keystroke_is_dropped(line):
    item = edit_item(line, "pack_quantity", "3x")
    assert item.pack_quantity == "3"


def test_commit_rounds_prices(line):
    item = edit_item(line, "unit_purchase_price", "10.555")
    item = commit_item(item, "unit_purchase_price")
    assert item.unit_purchase_price == "10.56"
    assert item.pack_purchase_price == "105.6"


def test_reselecting_same_product_keeps_batch(line, paracetamol):
    item = replace(line, batch_number="LOT-7", expiry="2028-02-29")
    again = select_product(item, paracetamol)
    assert (again.batch_number, again.expiry) == ("LOT-7", "2028-02-29")

    other = replace(paracetamol, product_id=99, name="Other")
    switched = select_product(item, other)
    assert (switched.batch_number, switched.expiry) == ("", "")


def test_select_product_excludes_own_reservation(paracetamol):
    item = select_product(LineItem(), paracetamol, reserved="30")
    assert item.current_quantity == "20"


@pytest.mark.parametrize("field, value", [
    ("pack_quantity", "3"),
    ("unit_quantity", "27"),
    ("loose_units", "4"),
    ("pack_bonus", "1"),
    ("pack_purchase_price", "120"),
    ("unit_sale_price", "17"),
    ("margin", "30"),
    ("whole_sale_margin", "12"),
    ("item_discount_percentage", "-5"),
])
def test_recalc_is_idempotent(line, field, value):
    base = edit_item(edit_item(line, "unit_quantity", "23"), field, value)
    assert recalc_item(base, field) == base
