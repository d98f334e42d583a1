"""Order pricing from item snapshots.

Delivery is free once the subtotal goes above the threshold; tax is a flat
rate on the subtotal. Amounts are rounded to two decimals.
"""

from marketplace import policy


def _money(amount: float) -> float:
    return round(amount + 0.0, 2)


def delivery_fee_for(subtotal: float) -> float:
    return 0.0 if subtotal > policy.FREE_DELIVERY_THRESHOLD else policy.DELIVERY_FEE


def summarize(items_data: list[dict], discount: float = 0.0) -> dict:
    """Build the order summary dict from item snapshots carrying ``line_total``."""
    subtotal = _money(sum(item["line_total"] for item in items_data))
    delivery_fee = _money(delivery_fee_for(subtotal))
    tax = _money(subtotal * policy.TAX_RATE)
    discount = _money(discount)
    return {
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "tax": tax,
        "discount": discount,
        "total": _money(subtotal + delivery_fee + tax - discount),
    }
