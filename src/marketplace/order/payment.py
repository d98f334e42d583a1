"""Order payment — COD dual approval and online payment bookkeeping.

No money moves here; the marketplace only records who vouched for the payment.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import Unauthorized
from marketplace.identity import Caller
from marketplace.order.order import Order, PaymentStatus
from marketplace.order.outcomes import CodApprovalOutcome
from marketplace.order.queries import get_order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class ApproveCodPayment:
    """Record a seller's or an admin's approval of cash collected on delivery."""

    order_ref = String(required=True, max_length=100)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@marketplace.command(part_of="Order")
class RecordOnlinePayment:
    """Mark a mobile banking or card payment as settled."""

    order_ref = String(required=True, max_length=100)
    transaction_id = String(max_length=100)


@marketplace.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(ApproveCodPayment)
    def approve_cod_payment(self, command):
        caller = Caller(id=command.actor_id, role=command.actor_role)
        order = get_order(command.order_ref)

        if caller.is_admin:
            order.approve_cod_as_admin(caller.id)
            stage = "admin"
        elif caller.is_seller:
            if not order.is_sold_by(caller.id):
                raise Unauthorized(f"Order {order.order_number} has no items sold by {caller.id}")
            order.approve_cod_as_vendor(caller.id)
            stage = "vendor"
        else:
            raise Unauthorized("Only sellers and admins approve cash on delivery payments")

        current_domain.repository_for(Order).add(order)
        logger.info(
            "COD payment approved",
            order_number=order.order_number,
            stage=stage,
            actor_id=str(caller.id),
            payment_status=order.payment_status,
        )
        return CodApprovalOutcome(
            order=order,
            stage=stage,
            payment_completed=order.payment_status == PaymentStatus.COMPLETED.value,
        )

    @handle(RecordOnlinePayment)
    def record_online_payment(self, command):
        order = get_order(command.order_ref)
        order.record_payment(command.transaction_id)
        current_domain.repository_for(Order).add(order)
        logger.info("Online payment recorded", order_number=order.order_number)
        return order
