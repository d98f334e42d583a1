"""Notification templates — title and message per notification type."""

from marketplace.notification.port import NotificationEvent, NotificationType


def _order_confirmed(meta: dict) -> dict:
    return {
        "title": "Order Confirmed",
        "message": f"Your order #{meta.get('order_number', 'N/A')} has been confirmed and is being processed.",
    }


def _order_shipped(meta: dict) -> dict:
    return {
        "title": "Order Shipped",
        "message": f"Great news! Your order #{meta.get('order_number', 'N/A')} has been shipped and is on its way.",
    }


def _order_delivered(meta: dict) -> dict:
    return {
        "title": "Order Delivered",
        "message": (
            f"Your order #{meta.get('order_number', 'N/A')} has been delivered successfully. "
            "Enjoy your fresh produce!"
        ),
    }


def _order_cancelled(meta: dict) -> dict:
    return {
        "title": "Order Cancelled",
        "message": (
            f"Your order #{meta.get('order_number', 'N/A')} has been cancelled. "
            "If you have any questions, please contact support."
        ),
    }


def _payment_received(meta: dict) -> dict:
    return {
        "title": "Payment Received",
        "message": f"Payment for order #{meta.get('order_number', 'N/A')} has been processed.",
    }


def _back_in_stock(meta: dict) -> dict:
    name = meta.get("product_name", "A product")
    return {
        "title": "Back in Stock!",
        "message": f"Good news! {name} is back in stock. Get it before it runs out again!",
    }


def _low_inventory(meta: dict) -> dict:
    name = meta.get("product_name", "A product")
    return {
        "title": "Low Inventory Alert",
        "message": f"Warning: {name} is running low in stock ({meta.get('total_quantity', 0)} remaining)",
    }


TEMPLATE_REGISTRY = {
    NotificationType.ORDER_CONFIRMED: _order_confirmed,
    NotificationType.ORDER_SHIPPED: _order_shipped,
    NotificationType.ORDER_DELIVERED: _order_delivered,
    NotificationType.ORDER_CANCELLED: _order_cancelled,
    NotificationType.PAYMENT_RECEIVED: _payment_received,
    NotificationType.PRODUCT_BACK_IN_STOCK: _back_in_stock,
    NotificationType.LOW_INVENTORY_WARNING: _low_inventory,
}


def render(event: NotificationEvent) -> dict:
    template = TEMPLATE_REGISTRY.get(event.type)
    if template is None:
        raise ValueError(f"No template registered for notification type: {event.type}")
    return template(event.metadata)
