"""Shared BDD fixtures and step definitions for the stock ledger."""

from datetime import UTC, datetime

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from marketplace.stock.events import (
    LowInventoryDetected,
    ProductBackInStock,
    ReservationReleased,
    StockDeducted,
    StockReserved,
    StockRestored,
)
from marketplace.stock.stock import ProductStock

# Map event name strings to classes for dynamic lookup
_EVENT_CLASSES = {
    "StockReserved": StockReserved,
    "ReservationReleased": ReservationReleased,
    "StockDeducted": StockDeducted,
    "StockRestored": StockRestored,
    "LowInventoryDetected": LowInventoryDetected,
    "ProductBackInStock": ProductBackInStock,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def clock():
    """The scenario's notion of now; steps move it forward."""
    return {"now": datetime(2026, 3, 1, 9, 0, tzinfo=UTC)}


def hold_id(buyer: str) -> str:
    return f"res-{buyer}"


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a product with {quantity:d} units in stock"), target_fixture="product")
def product_in_stock(quantity):
    product = ProductStock.register(
        product_id="prod-mango",
        name="Mangoes",
        price=200.0,
        seller_id="farmer-001",
        quantity=quantity,
    )
    product._events.clear()
    return product


@given(parsers.cfparse('buyer "{buyer}" has reserved {quantity:d} units'))
def buyer_has_reserved(product, clock, buyer, quantity):
    product.reserve(hold_id(buyer), buyer, quantity, as_of=clock["now"])
    product._events.clear()


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then("the action fails with a validation error")
def action_fails_with_validation_error(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("{quantity:d} units are available"))
def units_available(product, clock, quantity):
    assert product.available_stock(clock["now"]) == quantity


@then(parsers.cfparse("the total quantity is {quantity:d}"))
def total_quantity_is(product, quantity):
    assert product.total_quantity == quantity


@then(parsers.cfparse('the stock status is "{status}"'))
def stock_status_is(product, status):
    assert product.stock_status == status


@then(parsers.cfparse("a {event_type} event is raised"))
def generic_event_raised(product, event_type):
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in product._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in product._events]}"
