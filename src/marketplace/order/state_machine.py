"""OrderStateMachine — entry point for every change to an existing order.

Status transitions, cancellations, cash-on-delivery approvals, online payment
bookkeeping and admin deletion all go through here. Each call dispatches one
command (one unit of work), retries lost version races and then notifies the
affected parties on a best-effort basis.
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.identity import Caller
from marketplace.notification.builders import (
    back_in_stock_events,
    payment_received_events,
    status_events,
)
from marketplace.notification.dispatch import dispatch
from marketplace.notification.port import NotificationPort
from marketplace.order.deletion import DeleteOrder
from marketplace.order.order import OrderStatus
from marketplace.order.outcomes import CodApprovalOutcome, DeletionOutcome, TransitionOutcome
from marketplace.order.payment import ApproveCodPayment, RecordOnlinePayment
from marketplace.order.queries import get_order
from marketplace.order.status import CancelOrder, UpdateOrderStatus
from marketplace.utils.retry import run_with_retry

logger = structlog.get_logger(__name__)


class OrderStateMachine:
    def __init__(self, notifier: NotificationPort | None = None):
        self.notifier = notifier

    def _process(self, operation: str, command):
        return run_with_retry(operation, lambda: current_domain.process(command, asynchronous=False))

    def allowed_transitions(self, order_ref: str) -> set[OrderStatus]:
        return get_order(order_ref).next_statuses()

    def transition(self, caller: Caller, order_ref: str, status: str, note: str | None = None) -> TransitionOutcome:
        outcome = self._process(
            "transition",
            UpdateOrderStatus(
                order_ref=order_ref,
                status=status.value if isinstance(status, OrderStatus) else status,
                actor_id=caller.id,
                actor_role=caller.role.value,
                note=note,
            ),
        )
        self._notify_transition(outcome)
        return outcome

    def cancel(self, caller: Caller, order_ref: str, reason: str | None = None) -> TransitionOutcome:
        outcome = self._process(
            "cancel",
            CancelOrder(
                order_ref=order_ref,
                actor_id=caller.id,
                actor_role=caller.role.value,
                reason=reason,
            ),
        )
        self._notify_transition(outcome)
        return outcome

    def approve_cod(self, caller: Caller, order_ref: str) -> CodApprovalOutcome:
        """Seller approval first, then admin approval completes the payment."""
        outcome = self._process(
            "approve_cod",
            ApproveCodPayment(order_ref=order_ref, actor_id=caller.id, actor_role=caller.role.value),
        )
        if outcome.payment_completed:
            dispatch(self.notifier, payment_received_events(outcome.order))
        return outcome

    def record_payment(self, order_ref: str, transaction_id: str | None = None):
        order = self._process(
            "record_payment",
            RecordOnlinePayment(order_ref=order_ref, transaction_id=transaction_id),
        )
        dispatch(self.notifier, payment_received_events(order))
        return order

    def delete(self, caller: Caller, order_ref: str) -> DeletionOutcome:
        outcome = self._process(
            "delete",
            DeleteOrder(order_ref=order_ref, actor_id=caller.id, actor_role=caller.role.value),
        )
        dispatch(self.notifier, back_in_stock_events(outcome.back_in_stock))
        return outcome

    def _notify_transition(self, outcome: TransitionOutcome) -> None:
        events = status_events(outcome.order) + back_in_stock_events(outcome.back_in_stock)
        dispatch(self.notifier, events)
