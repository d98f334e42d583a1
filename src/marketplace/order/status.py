"""Order status changes — commands and handler.

Every accepted change appends one history entry. Moving to CANCELLED puts the
order's units back on the ledger in the same unit of work.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.identity import Caller
from marketplace.order.authorization import authorize_transition
from marketplace.order.inventory import restore_order_stock
from marketplace.order.order import Order, OrderStatus, parse_status
from marketplace.order.outcomes import TransitionOutcome
from marketplace.order.queries import get_order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    """Move an order to the next lifecycle state."""

    order_ref = String(required=True, max_length=100)  # order number or id
    status = String(required=True, max_length=50)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    note = String(max_length=500)


@marketplace.command(part_of="Order")
class CancelOrder:
    """Cancel an order, by its buyer or by staff."""

    order_ref = String(required=True, max_length=100)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    reason = String(max_length=500)


def _apply_transition(order: Order, caller: Caller, target: OrderStatus, note: str | None) -> TransitionOutcome:
    authorize_transition(caller, order, target)
    previous = order.transition_to(target, actor_id=caller.id, note=note)

    back_in_stock = []
    if target == OrderStatus.CANCELLED:
        _, back_in_stock = restore_order_stock(order)

    current_domain.repository_for(Order).add(order)
    logger.info(
        "Order status changed",
        order_number=order.order_number,
        previous_status=previous.value,
        new_status=target.value,
        actor_id=str(caller.id),
        actor_role=caller.role.value,
    )
    return TransitionOutcome(order=order, previous_status=previous.value, back_in_stock=back_in_stock)


@marketplace.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        caller = Caller(id=command.actor_id, role=command.actor_role)
        order = get_order(command.order_ref)
        return _apply_transition(order, caller, parse_status(command.status), command.note)

    @handle(CancelOrder)
    def cancel_order(self, command):
        caller = Caller(id=command.actor_id, role=command.actor_role)
        order = get_order(command.order_ref)
        note = f"Order cancelled: {command.reason}" if command.reason else "Order cancelled"
        if str(order.buyer_id) == str(caller.id):
            note = f"Order cancelled by customer: {command.reason or 'no reason given'}"
        return _apply_transition(order, caller, OrderStatus.CANCELLED, note)
