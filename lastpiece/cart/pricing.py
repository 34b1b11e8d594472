"""Cart money math.

Amounts are computed in Decimal and rounded half-up to cents, then stored
as floats like every other price in the database.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from lastpiece.shared.utils import settings

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_coupon(code: str) -> float:
    """Discount percent granted by a coupon code.

    Every non-empty code currently earns the flat configured percent; this
    is the single place a real coupon lookup plugs in.
    """
    return settings.COUPON_DISCOUNT_PERCENT if code else 0.0


def price_items(items: Iterable[dict], products: Dict[str, dict]) -> Tuple[List[dict], Decimal]:
    """Reprice line items from live product prices.

    Returns the surviving items (each carrying the live price) and the
    subtotal. Items whose product no longer exists are dropped.
    """
    priced = []
    subtotal = Decimal("0")
    for item in items:
        product = products.get(item["product_id"])
        if product is None:
            continue
        price = to_money(product["price"])
        subtotal += price * item["quantity"]
        priced.append({**item, "price": float(price)})
    return priced, to_money(subtotal)


def compute_totals(
    subtotal: Decimal,
    shipping=0,
    discount_percent: Optional[float] = 0,
    tax_rate: Optional[float] = None,
) -> dict:
    """subtotal, tax, shipping, discount and total with
    total == subtotal + tax + shipping - discount."""
    rate = Decimal(str(settings.TAX_RATE if tax_rate is None else tax_rate))
    subtotal = to_money(subtotal)
    tax = to_money(subtotal * rate)
    shipping = to_money(shipping)
    discount = to_money(subtotal * Decimal(str(discount_percent or 0)) / 100)
    total = subtotal + tax + shipping - discount
    return {
        "subtotal": float(subtotal),
        "tax": float(tax),
        "shipping": float(shipping),
        "discount": float(discount),
        "total": float(total),
    }
