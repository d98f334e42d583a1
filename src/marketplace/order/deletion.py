"""Order deletion — command and handler (admin only).

Only orders that never started fulfillment (PENDING) or were already
CANCELLED can be removed. A PENDING order still holds its stock deduction,
so that stock is restored before the order disappears.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import Unauthorized
from marketplace.identity import Caller
from marketplace.order.inventory import restore_order_stock
from marketplace.order.order import DELETABLE_STATUSES, Order, OrderStatus
from marketplace.order.outcomes import DeletionOutcome
from marketplace.order.queries import get_order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class DeleteOrder:
    order_ref = String(required=True, max_length=100)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@marketplace.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        caller = Caller(id=command.actor_id, role=command.actor_role)
        if not caller.is_admin:
            raise Unauthorized("Only admins can delete orders")

        order = get_order(command.order_ref)
        status = OrderStatus(order.status)
        if status not in DELETABLE_STATUSES:
            raise ValidationError({"status": [f"Cannot delete an order that is {status.value}"]})

        restored: dict[str, int] = {}
        back_in_stock = []
        if status == OrderStatus.PENDING:
            restored, back_in_stock = restore_order_stock(order)

        current_domain.repository_for(Order)._dao.delete(order)
        logger.info(
            "Order deleted",
            order_number=order.order_number,
            actor_id=str(caller.id),
            restored=restored,
        )
        return DeletionOutcome(
            order_number=order.order_number,
            buyer_id=str(order.buyer_id),
            restored=restored,
            back_in_stock=back_in_stock,
        )
