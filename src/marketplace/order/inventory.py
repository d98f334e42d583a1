"""Returning an order's units to the stock ledger.

Runs inside the caller's unit of work so the order change and the stock
restoration commit together.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.stock.outcomes import StockRecovery, recovery
from marketplace.stock.stock import ProductStock
from marketplace.utils.clock import utcnow

logger = structlog.get_logger(__name__)


def restore_order_stock(order) -> tuple[dict[str, int], list[StockRecovery]]:
    """Add every item's quantity back to its product.

    Products that no longer exist are skipped. Returns the restored
    quantities per product and the products that came back in stock.
    """
    repo = current_domain.repository_for(ProductStock)
    now = utcnow()
    restored: dict[str, int] = {}
    back_in_stock: list[StockRecovery] = []

    for product_id, quantity in order.quantities_by_product().items():
        try:
            product = repo.get(product_id)
        except ObjectNotFoundError:
            logger.warning(
                "Skipping stock restore for missing product",
                order_number=order.order_number,
                product_id=product_id,
                quantity=quantity,
            )
            continue

        before = product.available_stock(now)
        product.restore(quantity, order.order_number)
        recovered = recovery(product, before, now)
        if recovered:
            back_in_stock.append(recovered)
        repo.add(product)
        restored[product_id] = quantity

    logger.info(
        "Order stock restored",
        order_number=order.order_number,
        restored=restored,
    )
    return restored, back_in_stock
