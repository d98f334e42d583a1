"""BDD tests for holding, lapsing and releasing stock."""

from datetime import timedelta

from pytest_bdd import given, parsers, scenarios, then, when

from marketplace.errors import InsufficientStock

scenarios("features/stock_reservation.feature")


def hold_id(buyer):
    return f"res-{buyer}"


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('buyer "{buyer}" reserved {quantity:d} units {minutes:d} minutes ago'))
def buyer_reserved_earlier(product, clock, buyer, quantity, minutes):
    product.reserve(hold_id(buyer), buyer, quantity, as_of=clock["now"] - timedelta(minutes=minutes))
    product._events.clear()


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('buyer "{buyer}" reserves {quantity:d} units'))
def buyer_reserves(product, clock, error, buyer, quantity):
    try:
        product.reserve(hold_id(buyer), buyer, quantity, as_of=clock["now"])
    except InsufficientStock as exc:
        error["exc"] = exc


@when(parsers.cfparse("{minutes:d} minutes pass"))
def time_passes(clock, minutes):
    clock["now"] = clock["now"] + timedelta(minutes=minutes)


@when("expired reservations are swept", target_fixture="swept")
def sweep(product, clock):
    return product.sweep_expired(clock["now"])


@when(parsers.cfparse('the hold of buyer "{buyer}" is released'))
def release_hold(product, clock, buyer):
    product.release_reservation(hold_id(buyer), clock["now"])


@when(parsers.cfparse('the hold of buyer "{buyer}" is confirmed'), target_fixture="confirmation")
def confirm_hold(product, clock, buyer):
    return product.confirm_reservation(hold_id(buyer), clock["now"])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the reservation is rejected for insufficient stock")
def rejected_for_insufficient_stock(error):
    assert isinstance(error["exc"], InsufficientStock)


@then(parsers.cfparse("{count:d} reservation entry is removed"))
def entries_removed(swept, count):
    assert swept == count


@then(parsers.cfparse("{quantity:d} units were confirmed"))
def units_confirmed(confirmation, quantity):
    confirmed, expired = confirmation
    assert confirmed == quantity
    assert expired == 0


@then("the product has no reservations")
def no_reservations(product):
    assert product.reservations == []
