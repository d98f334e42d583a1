"""Order lookups and read models for buyers, sellers and admins."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.errors import OrderNotFound, Unauthorized
from marketplace.identity import Caller
from marketplace.order.authorization import authorize_view
from marketplace.order.order import Order, OrderStatus, PaymentMethod
from marketplace.utils.query import fetch_all

_RECENT_ORDERS = 10


def get_order(reference: str) -> Order:
    """Load an order by its order number or its internal id."""
    repo = current_domain.repository_for(Order)
    matches = repo._dao.query.filter(order_number=reference).all().items
    if matches:
        return matches[0]
    try:
        return repo.get(reference)
    except ObjectNotFoundError:
        raise OrderNotFound(reference) from None


def order_view(order: Order) -> dict:
    summary = order.summary
    address = order.delivery_address
    approval = order.cod_approval
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "buyer_id": str(order.buyer_id),
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "delivery_status": order.delivery_status().value,
        "items": [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "quantity": item.quantity,
                "unit": item.unit,
                "unit_price": item.unit_price,
                "line_total": item.line_total,
                "seller_id": str(item.seller_id),
                "seller_type": item.seller_type,
            }
            for item in order.lines
        ],
        "summary": {
            "subtotal": summary.subtotal,
            "delivery_fee": summary.delivery_fee,
            "tax": summary.tax,
            "discount": summary.discount,
            "total": summary.total,
        },
        "delivery_address": {
            "full_name": address.full_name,
            "phone": address.phone,
            "address": address.address,
            "city": address.city,
            "postal_code": address.postal_code,
            "instructions": address.instructions,
        },
        "status_history": [
            {
                "status": entry.status,
                "note": entry.note,
                "actor_id": str(entry.actor_id) if entry.actor_id else None,
                "timestamp": entry.recorded_at,
            }
            for entry in order.history
        ],
        "cod_approval": {
            "vendor_approved": bool(approval and approval.vendor_approved),
            "admin_approved": bool(approval and approval.admin_approved),
        },
        "estimated_delivery": order.estimated_delivery,
        "actual_delivery": order.actual_delivery,
        "notes": order.notes,
        "created_at": order.created_at,
    }


def find_order(caller: Caller, reference: str) -> dict:
    order = get_order(reference)
    authorize_view(caller, order)
    return order_view(order)


def _newest_first(orders) -> list[Order]:
    return sorted(orders, key=lambda order: order.created_at, reverse=True)


def orders_for_buyer(buyer_id: str, page: int = 1, limit: int = 10) -> dict:
    page = max(1, page)
    limit = max(1, limit)
    repo = current_domain.repository_for(Order)
    orders = _newest_first(fetch_all(repo._dao.query.filter(buyer_id=buyer_id)))
    start = (page - 1) * limit
    return {
        "orders": [order_view(order) for order in orders[start : start + limit]],
        "pagination": {
            "current_page": page,
            "total_pages": (len(orders) + limit - 1) // limit,
            "total_orders": len(orders),
            "has_next": start + limit < len(orders),
            "has_prev": page > 1,
        },
    }


def cod_pending_approval(caller: Caller) -> list[dict]:
    """Delivered cash-on-delivery orders waiting on the caller's approval step."""
    if not (caller.is_admin or caller.is_seller):
        raise Unauthorized("Only sellers and admins approve cash on delivery payments")

    repo = current_domain.repository_for(Order)
    delivered = fetch_all(
        repo._dao.query.filter(
            payment_method=PaymentMethod.CASH_ON_DELIVERY.value,
            status=OrderStatus.DELIVERED.value,
        )
    )

    pending = []
    for order in delivered:
        approval = order.cod_approval
        vendor_done = bool(approval and approval.vendor_approved)
        admin_done = bool(approval and approval.admin_approved)
        if caller.is_admin and vendor_done and not admin_done:
            pending.append(order)
        elif caller.is_seller and not vendor_done and order.is_sold_by(caller.id):
            pending.append(order)
    return [order_view(order) for order in _newest_first(pending)]


def order_stats(caller: Caller) -> dict:
    if not caller.is_admin:
        raise Unauthorized("Only admins can view order statistics")

    repo = current_domain.repository_for(Order)
    orders = _newest_first(fetch_all(repo._dao.query))
    by_status = {status.value: 0 for status in OrderStatus}
    revenue = 0.0
    for order in orders:
        by_status[order.status] += 1
        if order.status == OrderStatus.DELIVERED.value:
            revenue += order.summary.total

    return {
        "total_orders": len(orders),
        "by_status": by_status,
        "pending_orders": by_status[OrderStatus.PENDING.value],
        "delivered_orders": by_status[OrderStatus.DELIVERED.value],
        "cancelled_orders": by_status[OrderStatus.CANCELLED.value],
        "total_revenue": round(revenue, 2),
        "recent_orders": [order_view(order) for order in orders[:_RECENT_ORDERS]],
    }
