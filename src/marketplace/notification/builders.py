"""Turn committed outcomes into notification events."""

from marketplace.identity import Role
from marketplace.notification.port import NotificationEvent, NotificationType, role_audience

# Status changes the buyer hears about
STATUS_NOTIFICATIONS = {
    "confirmed": NotificationType.ORDER_CONFIRMED,
    "out_for_delivery": NotificationType.ORDER_SHIPPED,
    "delivered": NotificationType.ORDER_DELIVERED,
    "cancelled": NotificationType.ORDER_CANCELLED,
}


def order_event(notification_type: NotificationType, order) -> NotificationEvent:
    return NotificationEvent(
        type=notification_type,
        recipient_id=str(order.buyer_id),
        order_id=str(order.id),
        metadata={
            "order_number": order.order_number,
            "status": order.status,
            "total": order.summary.total if order.summary else None,
        },
    )


def status_events(order) -> list[NotificationEvent]:
    notification_type = STATUS_NOTIFICATIONS.get(order.status)
    return [order_event(notification_type, order)] if notification_type else []


def payment_received_events(order) -> list[NotificationEvent]:
    """One ``payment_received`` per seller with items in the order."""
    return [
        NotificationEvent(
            type=NotificationType.PAYMENT_RECEIVED,
            recipient_id=seller_id,
            order_id=str(order.id),
            metadata={
                "order_number": order.order_number,
                "payment_method": order.payment_method,
            },
        )
        for seller_id in sorted(order.seller_ids)
    ]


def back_in_stock_events(recoveries) -> list[NotificationEvent]:
    return [
        NotificationEvent(
            type=NotificationType.PRODUCT_BACK_IN_STOCK,
            recipient_id=role_audience(Role.CONSUMER.value),
            product_id=recovered.product_id,
            metadata={
                "product_name": recovered.product_name,
                "available_quantity": recovered.available_quantity,
            },
        )
        for recovered in recoveries
    ]


def low_inventory_events(alerts) -> list[NotificationEvent]:
    return [
        NotificationEvent(
            type=NotificationType.LOW_INVENTORY_WARNING,
            recipient_id=alert.seller_id,
            product_id=alert.product_id,
            metadata={
                "product_name": alert.product_name,
                "stock_status": alert.stock_status,
                "total_quantity": alert.total_quantity,
            },
        )
        for alert in alerts
    ]
