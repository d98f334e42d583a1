"""Wiring for a running marketplace.

``build_marketplace`` is the only place collaborators are created. The
notifier (and the connection registry behind the realtime notifier) is passed
explicitly into each component instead of living in module state.
"""

from dataclasses import dataclass

from marketplace.domain import marketplace
from marketplace.notification.port import NotificationPort
from marketplace.notification.realtime import ConnectionRegistry, RealtimeNotifier
from marketplace.order.pipeline import OrderFulfillmentPipeline
from marketplace.order.state_machine import OrderStateMachine
from marketplace.stock.manager import ReservationManager
from marketplace.utils.logging import configure_logging


@dataclass
class Marketplace:
    reservations: ReservationManager
    orders: OrderFulfillmentPipeline
    lifecycle: OrderStateMachine
    notifier: NotificationPort
    connections: ConnectionRegistry | None = None


def build_marketplace(notifier: NotificationPort | None = None) -> Marketplace:
    """Assemble the marketplace components around one notifier.

    Without an explicit notifier a realtime notifier is built on a fresh
    connection registry.
    """
    connections = None
    if notifier is None:
        connections = ConnectionRegistry()
        notifier = RealtimeNotifier(connections)

    return Marketplace(
        reservations=ReservationManager(notifier),
        orders=OrderFulfillmentPipeline(notifier),
        lifecycle=OrderStateMachine(notifier),
        notifier=notifier,
        connections=connections,
    )


def initialize() -> None:
    """Configure logging and initialize the domain for a long-running process."""
    configure_logging()
    marketplace.init()
