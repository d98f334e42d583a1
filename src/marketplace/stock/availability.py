"""Availability checks against the stock ledger.

These are pure reads: nothing here mutates a ProductStock. The placement
and reservation handlers reuse them so that the check a buyer sees and the
check that guards a write are computed the same way.
"""

import json
from datetime import datetime

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.stock.outcomes import AvailabilityReport, ItemAvailability, UnavailableReason
from marketplace.stock.stock import ProductStock
from marketplace.utils.clock import as_utc, utcnow


def requested_quantities(items) -> dict[str, int]:
    """Normalize requested items to ``{product_id: quantity}``.

    Accepts a JSON string or a list of dicts with ``product_id`` and
    ``quantity``. Repeated products are summed; insertion order is kept.
    """
    items_data = json.loads(items) if isinstance(items, str) else items
    if not items_data:
        raise ValidationError({"items": ["At least one item is required"]})

    quantities: dict[str, int] = {}
    for item in items_data:
        product_id = item.get("product_id")
        quantity = item.get("quantity")
        if not product_id:
            raise ValidationError({"items": ["Each item needs a product_id"]})
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError({"items": [f"Quantity for product {product_id} must be a positive integer"]})
        quantities[str(product_id)] = quantities.get(str(product_id), 0) + quantity
    return quantities


def load_products(product_ids) -> dict[str, ProductStock | None]:
    """Fetch each product once; missing products map to ``None``."""
    repo = current_domain.repository_for(ProductStock)
    products: dict[str, ProductStock | None] = {}
    for product_id in product_ids:
        try:
            products[product_id] = repo.get(product_id)
        except ObjectNotFoundError:
            products[product_id] = None
    return products


def assess(
    quantities: dict[str, int],
    products: dict[str, ProductStock | None],
    as_of: datetime,
    exclude_reservation_id: str | None = None,
) -> AvailabilityReport:
    lines = []
    for product_id, requested in quantities.items():
        product = products.get(product_id)
        if product is None:
            lines.append(
                ItemAvailability(
                    product_id=product_id,
                    requested=requested,
                    available_quantity=0,
                    reason=UnavailableReason.NOT_FOUND,
                )
            )
            continue

        available = product.available_stock(as_of, exclude_reservation_id)
        lines.append(
            ItemAvailability(
                product_id=product_id,
                product_name=product.name,
                requested=requested,
                available_quantity=available,
                reason=None if requested <= available else UnavailableReason.INSUFFICIENT_STOCK,
            )
        )
    return AvailabilityReport(items=lines)


def check_availability(
    items,
    as_of: datetime | None = None,
    exclude_reservation_id: str | None = None,
) -> AvailabilityReport:
    """Report, per requested item, whether it can be satisfied right now."""
    as_of = as_utc(as_of) or utcnow()
    quantities = requested_quantities(items)
    return assess(quantities, load_products(quantities), as_of, exclude_reservation_id)
