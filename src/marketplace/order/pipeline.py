"""OrderFulfillmentPipeline — turns a buyer's cart into a persisted order."""

import json
from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from marketplace.identity import Caller
from marketplace.notification.builders import low_inventory_events, order_event
from marketplace.notification.dispatch import dispatch
from marketplace.notification.port import NotificationPort, NotificationType
from marketplace.order.outcomes import PlacementOutcome
from marketplace.order.placement import PlaceOrder
from marketplace.order.queries import cod_pending_approval, find_order, order_stats, orders_for_buyer
from marketplace.utils.retry import run_with_retry

logger = structlog.get_logger(__name__)


class OrderFulfillmentPipeline:
    def __init__(self, notifier: NotificationPort | None = None):
        self.notifier = notifier

    def create_order(
        self,
        buyer: Caller,
        items: list[dict],
        delivery_address: dict,
        payment_method: str,
        reservation_id: str | None = None,
        payment_details: dict | None = None,
        notes: str | None = None,
        as_of: datetime | None = None,
    ) -> PlacementOutcome:
        """Validate, price and persist an order, committing its stock.

        A shortage or missing product comes back as an unsuccessful outcome
        listing every requested item; nothing is written in that case.
        """
        command = PlaceOrder(
            buyer_id=buyer.id,
            items=json.dumps(items),
            delivery_address=json.dumps(delivery_address),
            payment_method=payment_method,
            payment_details=json.dumps(payment_details) if payment_details else None,
            reservation_id=reservation_id,
            notes=notes,
            as_of=as_of,
        )
        outcome = run_with_retry(
            "create_order",
            lambda: current_domain.process(command, asynchronous=False),
        )
        if not outcome.success:
            return outcome

        events = [order_event(NotificationType.ORDER_CONFIRMED, outcome.order)]
        events += low_inventory_events(outcome.stock_alerts)
        dispatch(self.notifier, events)
        return outcome

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def my_orders(self, buyer: Caller, page: int = 1, limit: int = 10) -> dict:
        return orders_for_buyer(buyer.id, page, limit)

    def find_order(self, caller: Caller, order_ref: str) -> dict:
        return find_order(caller, order_ref)

    def cod_pending_approval(self, caller: Caller) -> list[dict]:
        return cod_pending_approval(caller)

    def order_stats(self, caller: Caller) -> dict:
        return order_stats(caller)
