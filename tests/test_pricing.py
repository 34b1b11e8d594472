"""Tests for cart money math."""

from decimal import Decimal

from lastpiece.cart.pricing import compute_totals, price_items, resolve_coupon, to_money


def test_to_money_rounds_half_up():
    assert to_money(1.005) == Decimal("1.01")
    assert to_money(None) == Decimal("0.00")


def test_totals_for_two_units():
    totals = compute_totals(Decimal("300"))
    assert totals == {"subtotal": 300.0, "tax": 30.0, "shipping": 0.0, "discount": 0.0, "total": 330.0}


def test_total_identity_holds():
    totals = compute_totals(Decimal("19.99"), shipping=5, discount_percent=10)
    assert totals["tax"] == 2.0
    assert totals["discount"] == 2.0
    assert totals["total"] == round(
        totals["subtotal"] + totals["tax"] + totals["shipping"] - totals["discount"], 2
    )


def test_coupon_discount_is_ten_percent_of_subtotal():
    totals = compute_totals(Decimal("300"), discount_percent=resolve_coupon("XYZ"))
    assert totals["discount"] == 30.0
    assert totals["total"] == 300.0


def test_empty_code_grants_nothing():
    assert resolve_coupon("") == 0.0


def test_price_items_uses_live_prices_and_drops_missing_products():
    items = [
        {"product_id": "a", "quantity": 2, "price": 100.0},
        {"product_id": "gone", "quantity": 1, "price": 50.0},
    ]
    priced, subtotal = price_items(items, {"a": {"price": 150}})
    assert priced == [{"product_id": "a", "quantity": 2, "price": 150.0}]
    assert subtotal == Decimal("300.00")


def test_explicit_tax_rate():
    assert compute_totals(Decimal("100"), tax_rate=0.2)["tax"] == 20.0
