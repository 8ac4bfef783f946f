from dataclasses import replace

from pharmacy_erp.modules.documents.model import CREDIT, PACK, WHOLESALE, LineItem, new_purchase, new_sale
from pharmacy_erp.modules.documents.payload import build_payload
from pharmacy_erp.modules.documents.pipeline import (
    HeaderEdited,
    InvoiceTypeChanged,
    ItemEdited,
    PaymentEdited,
    ProductSelected,
    RowAdded,
    apply_event,
)
from pharmacy_erp.modules.payments.payment_utilities.linkage import validate_payment


def _purchase(paracetamol, *events):
    doc = new_purchase(items=(LineItem(),), supplier_id=4, invoice_number=" INV-9 ")
    for e in (ProductSelected(0, paracetamol), ItemEdited(0, "unit_quantity", "10")) + events:
        doc = apply_event(doc, e)
    return doc


def test_purchase_payload_is_definite(paracetamol):
    doc = _purchase(paracetamol, HeaderEdited("discount_percentage", "10"), HeaderEdited("tax_percentage", "-"), RowAdded())
    p = build_payload(doc)
    assert p["discount_percentage"] == "10.00"
    assert p["discount_amount"] == "10.00"
    assert p["tax_percentage"] == "0.00"
    assert p["total_amount"] == "90.00"
    assert p["total_paid"] == "90.00"
    assert p["payment_status"] == "paid"
    assert p["invoice_number"] == "INV-9"
    assert p["invoice_amount"] == ""
    assert "posted_number" not in p

    [line] = p["items"]
    assert line["unit_quantity"] == "10"
    assert line["pack_quantity"] == "1"
    assert line["pack_bonus"] == "0"
    assert line["pack_purchase_price"] == "100.00"
    assert line["unit_purchase_price"] == "10.00"
    assert line["sub_total"] == "100.00"


def test_stored_gross_is_the_sum_of_stored_lines(paracetamol):
    """Three single units at 10 per pack of 3: 3.33 each, 9.99 in all."""
    doc = new_purchase(items=(LineItem(), LineItem(), LineItem()), supplier_id=4)
    for row in range(3):
        product = replace(paracetamol, product_id=row + 1, pack_size="3", pack_purchase_price="10")
        doc = apply_event(doc, ProductSelected(row, product))
        doc = apply_event(doc, ItemEdited(row, "unit_quantity", "1"))
    assert doc.total_paid == "9.99"
    assert validate_payment(doc) == []

    p = build_payload(doc)
    assert [line["sub_total"] for line in p["items"]] == ["3.33"] * 3
    assert p["gross_amount"] == "9.99"
    assert p["total_amount"] == "9.99"
    assert p["total_paid"] == "9.99"
    assert p["payment_status"] == "paid"

    over = apply_event(doc, PaymentEdited("10.00"))
    assert [i.field for i in validate_payment(over)] == ["total_paid"]


def test_credit_purchase_records_nothing_paid(paracetamol):
    doc = _purchase(paracetamol, InvoiceTypeChanged(CREDIT), HeaderEdited("invoice_amount", "100"))
    p = build_payload(doc)
    assert p["total_paid"] == "0.00"
    assert p["payment_status"] == "unpaid"
    assert p["invoice_amount"] == "100.00"


def test_posted_number_is_only_echoed(paracetamol):
    doc = replace(_purchase(paracetamol), posted_number="PRINV-0007", document_id=7)
    p = build_payload(doc)
    assert p["posted_number"] == "PRINV-0007"
    assert p["document_id"] == 7


def test_pack_sale_sends_single_units(paracetamol):
    doc = new_sale(items=(LineItem(),), sale_type=WHOLESALE, wholesale_type=PACK, customer_id=2)
    doc = apply_event(doc, ProductSelected(0, paracetamol))
    doc = apply_event(doc, ItemEdited(0, "quantity", "2"))
    p = build_payload(doc)
    [line] = p["items"]
    assert line["unit"] == PACK
    assert line["quantity"] == "20"
    assert line["price"] == "130.00"
    assert line["sub_total"] == "260.00"
    assert p["total_receive"] == "260.00"
    assert "total_paid" not in p
