"""Shared BDD fixtures and step definitions for the order lifecycle."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

from marketplace.order.events import (
    CodVendorApproved,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentCompleted,
)
from marketplace.order.order import Order, OrderStatus
from marketplace.order.pricing import summarize

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderCancelled": OrderCancelled,
    "CodVendorApproved": CodVendorApproved,
    "PaymentCompleted": PaymentCompleted,
}

_ITEMS = [
    {
        "product_id": "prod-mango",
        "name": "Mangoes",
        "quantity": 3,
        "unit": "kg",
        "unit_price": 200.0,
        "line_total": 600.0,
        "seller_id": "farmer-001",
        "seller_type": "farmer",
    }
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an order paid by "{payment_method}"'), target_fixture="order")
def order_paid_by(payment_method):
    order = Order.place(
        order_number="KB100200MANGO1",
        buyer_id="buyer-001",
        items_data=_ITEMS,
        delivery_address={
            "full_name": "Rahim Uddin",
            "phone": "+8801700000000",
            "address": "12 Lake Road",
            "city": "Dhaka",
        },
        payment_method=payment_method,
        summary=summarize(_ITEMS),
    )
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# When steps (shared)
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the order moves to "{status}"'))
def order_moves_to(order, error, status):
    try:
        order.transition_to(OrderStatus(status), actor_id="admin-001")
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the action fails with "{message}"'))
def action_fails_with(error, message):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)
    assert any(message in text for texts in error["exc"].messages.values() for text in texts)


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(order, status):
    assert order.payment_status == status


@then(parsers.cfparse("a {event_type} event is raised"))
def generic_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"


@then(parsers.cfparse("an {event_type} event is raised"))
def generic_event_raised_an(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"
