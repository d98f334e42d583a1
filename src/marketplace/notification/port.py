"""Notification port — abstract interface for fire-and-forget notifications.

The marketplace core only describes what happened and who should hear about
it. Adapters decide how (socket push, email, nothing at all in tests).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class NotificationType(Enum):
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT_RECEIVED = "payment_received"
    PRODUCT_BACK_IN_STOCK = "product_back_in_stock"
    LOW_INVENTORY_WARNING = "low_inventory_warning"


def role_audience(role: str) -> str:
    """Recipient id addressing every connected user with ``role``."""
    return f"role:{role}"


@dataclass(frozen=True)
class NotificationEvent:
    type: NotificationType
    recipient_id: str
    order_id: str | None = None
    product_id: str | None = None
    metadata: dict = field(default_factory=dict)


class NotificationPort(ABC):
    """Abstract interface for notification dispatch adapters."""

    @abstractmethod
    def publish(self, event: NotificationEvent) -> dict:
        """Deliver one notification.

        Returns:
            dict with keys: notification_id, status ("sent", "queued" or "failed"), error (optional)
        """
        ...
