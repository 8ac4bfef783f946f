from pharmacy_erp.modules.documents.footer import recalc_footer, settled_totals
from pharmacy_erp.modules.documents.model import Document, LineItem


def _doc(*sub_totals, **kw) -> Document:
    items = tuple(LineItem(product_id=i + 1, sub_total=s) for i, s in enumerate(sub_totals))
    return Document(items=items, **kw)


def test_gross_is_sum_of_sub_totals():
    doc = recalc_footer(_doc("40", "60.5"))
    assert doc.gross_amount == "100.5"
    assert doc.total_amount == "100.5"


def test_discount_percentage_drives_amount():
    """gross 100, 10 % discount -> discount 10, total 90."""
    doc = recalc_footer(_doc("100", discount_percentage="10"), "discount_percentage")
    assert doc.discount_amount == "10"
    assert doc.total_amount == "90"
    assert doc.discount_percentage == "10"


def test_discount_amount_drives_percentage():
    doc = recalc_footer(_doc("200", discount_amount="50"), "discount_amount")
    assert doc.discount_percentage == "25"
    assert doc.discount_amount == "50"
    assert doc.total_amount == "150"


def test_tax_is_added():
    doc = recalc_footer(_doc("100", tax_percentage="5", discount_percentage="10"), "items")
    assert doc.tax_amount == "5"
    assert doc.discount_amount == "10"
    assert doc.total_amount == "95"


def test_items_change_recomputes_amounts_from_percentages():
    doc = recalc_footer(_doc("100", discount_percentage="10", discount_amount="10"), "items")
    grown = recalc_footer(_doc("100", "100", discount_percentage="10", discount_amount=doc.discount_amount))
    assert grown.discount_amount == "20"
    assert grown.total_amount == "180"


def test_source_field_is_never_rewritten():
    doc = recalc_footer(_doc("100", discount_percentage="10."), "discount_percentage")
    assert doc.discount_percentage == "10."
    assert doc.discount_amount == "10"


def test_amount_with_zero_gross_keeps_percentage():
    doc = recalc_footer(_doc(discount_amount="5", discount_percentage="2"), "discount_amount")
    assert doc.discount_percentage == "2"
    assert doc.total_amount == "-5"


def test_signed_percentage_is_a_surcharge():
    doc = recalc_footer(_doc("100", discount_percentage="-10"), "discount_percentage")
    assert doc.discount_amount == "-10"
    assert doc.total_amount == "110"


def test_footer_is_idempotent():
    for source in ("items", "init", "tax_percentage", "tax_amount", "discount_percentage", "discount_amount"):
        doc = _doc("33.33", "66.67", tax_percentage="17", tax_amount="3", discount_percentage="7.5",
                   discount_amount="9")
        once = recalc_footer(doc, source)
        assert recalc_footer(once, source) == once


def test_settled_totals_are_built_from_rounded_lines():
    doc = recalc_footer(_doc("3.333", "3.333", "3.333", discount_percentage="10"), "items")
    assert doc.discount_amount == "0.9999"
    settled = settled_totals(doc)
    assert settled == {
        "gross_amount": "9.99",
        "discount_amount": "1.00",
        "tax_amount": "0.00",
        "total_amount": "8.99",
    }
