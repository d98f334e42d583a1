"""BDD tests for the order status state machine."""

from pytest_bdd import parsers, scenarios, then, when

from marketplace.order.order import OrderStatus

scenarios("features/order_lifecycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the order moves through "{statuses}"'))
def order_moves_through(order, statuses):
    for status in statuses.split(","):
        order.transition_to(OrderStatus(status.strip()), actor_id="admin-001")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order has {count:d} history entry"))
@then(parsers.cfparse("the order has {count:d} history entries"))
def history_entries(order, count):
    assert len(order.history) == count


@then("the actual delivery time is recorded")
def actual_delivery_recorded(order):
    assert order.actual_delivery is not None
