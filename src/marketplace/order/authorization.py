"""Who may do what to an order."""

from marketplace.errors import Unauthorized
from marketplace.identity import Caller, Role
from marketplace.order.order import BUYER_CANCELLABLE_STATUSES, OrderStatus


def authorize_transition(caller: Caller, order, target: OrderStatus) -> None:
    """Raise ``Unauthorized`` unless ``caller`` may move ``order`` to ``target``.

    Admins may drive any order. Farmers and vendors only orders containing
    something they sell. Buyers only cancel their own order, and only
    before preparation starts.
    """
    if caller.is_admin:
        return

    if caller.is_seller:
        if not order.is_sold_by(caller.id):
            raise Unauthorized(f"Order {order.order_number} has no items sold by {caller.id}")
        return

    if caller.role == Role.CONSUMER:
        if str(order.buyer_id) != str(caller.id):
            raise Unauthorized(f"Order {order.order_number} does not belong to {caller.id}")
        if target != OrderStatus.CANCELLED:
            raise Unauthorized("Customers can only cancel orders")
        if OrderStatus(order.status) not in BUYER_CANCELLABLE_STATUSES:
            raise Unauthorized(f"Order cannot be cancelled once it is {order.status}")
        return

    raise Unauthorized(f"Role {caller.role.value} may not change order status")


def authorize_view(caller: Caller, order) -> None:
    if caller.is_admin:
        return
    if caller.is_seller and order.is_sold_by(caller.id):
        return
    if str(order.buyer_id) == str(caller.id):
        return
    raise Unauthorized(f"Not allowed to view order {order.order_number}")
