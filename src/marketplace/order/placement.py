"""Order placement — command and handler.

Validation, pricing, stock deduction and the order write all happen in one
handler, hence one unit of work: either the order exists and every product
was decremented, or nothing changed.
"""

import json

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import Unauthorized
from marketplace.order.numbering import unique_order_number
from marketplace.order.order import Order, PaymentMethod
from marketplace.order.outcomes import PlacementOutcome, StockAlert
from marketplace.order.pricing import summarize
from marketplace.stock.availability import assess, load_products, requested_quantities
from marketplace.stock.reservation import products_holding
from marketplace.stock.stock import ProductStock, ReleaseReason, StockStatus
from marketplace.utils.clock import as_utc, utcnow

logger = structlog.get_logger(__name__)

_ALERT_STATUSES = {StockStatus.LOW_STOCK.value, StockStatus.OUT_OF_STOCK.value}


@marketplace.command(part_of="Order")
class PlaceOrder:
    """Place an order for one or more products."""

    buyer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity}
    delivery_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True, choices=PaymentMethod)
    payment_details = Text()  # JSON: {mobile_number, transaction_id, card_last4}
    reservation_id = String(max_length=100)  # Buyer's own hold, consumed by this order
    notes = String(max_length=500)
    as_of = DateTime()


def _load_json(value):
    if value is None or isinstance(value, dict | list):
        return value
    return json.loads(value)


def _snapshot(product: ProductStock, quantity: int) -> dict:
    return {
        "product_id": str(product.product_id),
        "name": product.name,
        "quantity": quantity,
        "unit": product.unit,
        "unit_price": product.price,
        "line_total": round(product.price * quantity, 2),
        "seller_id": str(product.seller_id),
        "seller_type": product.seller_type,
    }


def _assert_holds_belong_to(buyer_id, reservation_id: str, products) -> None:
    for product in products:
        if product is None:
            continue
        for entry in product.reservations_for(reservation_id):
            if str(entry.holder_id) != str(buyer_id):
                raise Unauthorized(f"Reservation {reservation_id} is held by another buyer")


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        as_of = as_utc(command.as_of) or utcnow()
        quantities = requested_quantities(command.items)
        products = load_products(quantities)

        held_elsewhere = []
        if command.reservation_id:
            held_elsewhere = [
                product
                for product in products_holding(command.reservation_id)
                if str(product.product_id) not in quantities
            ]
            _assert_holds_belong_to(command.buyer_id, command.reservation_id, [*products.values(), *held_elsewhere])

        report = assess(quantities, products, as_of, exclude_reservation_id=command.reservation_id)
        if not report.all_available:
            logger.info(
                "Order rejected",
                buyer_id=str(command.buyer_id),
                unavailable=[item.as_dict() for item in report.unavailable],
            )
            return PlacementOutcome(success=False, items=report.items)

        items_data = [_snapshot(products[product_id], quantity) for product_id, quantity in quantities.items()]
        order_number = unique_order_number(as_of)
        order = Order.place(
            order_number=order_number,
            buyer_id=command.buyer_id,
            items_data=items_data,
            delivery_address=_load_json(command.delivery_address),
            payment_method=command.payment_method,
            summary=summarize(items_data),
            payment_details=_load_json(command.payment_details),
            notes=command.notes,
            placed_at=as_of,
        )

        stock_repo = current_domain.repository_for(ProductStock)
        alerts = []
        for product_id, quantity in quantities.items():
            product = products[product_id]
            previous_status = product.stock_status
            if command.reservation_id:
                product.release_reservation(command.reservation_id, as_of, ReleaseReason.CONSUMED.value)
            product.deduct(quantity, order_number)
            if product.stock_status != previous_status and product.stock_status in _ALERT_STATUSES:
                alerts.append(
                    StockAlert(
                        product_id=product_id,
                        product_name=product.name,
                        seller_id=str(product.seller_id),
                        stock_status=product.stock_status,
                        total_quantity=product.total_quantity,
                    )
                )
            stock_repo.add(product)

        # The hold is used up by this order, including lines the buyer dropped
        for product in held_elsewhere:
            product.release_reservation(command.reservation_id, as_of, ReleaseReason.CONSUMED.value)
            stock_repo.add(product)

        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_number=order_number,
            buyer_id=str(command.buyer_id),
            status=order.status,
            total=order.summary.total,
        )
        return PlacementOutcome(success=True, order=order, items=report.items, stock_alerts=alerts)
