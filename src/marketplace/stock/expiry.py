"""Reservation expiry — commands and handler for reclaiming lapsed holds.

Designed to be triggered periodically by an external scheduler. Each product
is swept in its own command so that a write conflict on one product never
holds up the rest. Sweeping only removes entries: available stock recovers
through the availability formula, ``total_quantity`` is not touched.
"""

import structlog
from protean import handle
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.stock.stock import ProductStock
from marketplace.utils.clock import as_utc, utcnow
from marketplace.utils.query import fetch_all

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="ProductStock")
class ExpireProductReservations:
    """Remove lapsed reservation entries from one product."""

    product_id = Identifier(required=True)
    as_of = DateTime()


@marketplace.command(part_of="ProductStock")
class SweepExpiredReservations:
    """Remove lapsed reservation entries from every product."""

    as_of = DateTime()  # Optional: defaults to now


@marketplace.command_handler(part_of=ProductStock)
class ReservationExpiryHandler:
    @handle(ExpireProductReservations)
    def expire_product_reservations(self, command):
        as_of = as_utc(command.as_of) or utcnow()
        repo = current_domain.repository_for(ProductStock)
        product = repo.get(command.product_id)
        removed = product.sweep_expired(as_of)
        if removed:
            repo.add(product)
        return removed

    @handle(SweepExpiredReservations)
    def sweep_expired_reservations(self, command):
        as_of = as_utc(command.as_of) or utcnow()
        repo = current_domain.repository_for(ProductStock)

        stale = [
            str(product.product_id)
            for product in fetch_all(repo._dao.query, "product_id")
            if any(not entry.is_active(as_of) for entry in product.reservations)
        ]
        if not stale:
            logger.debug("No expired reservations found", as_of=as_of.isoformat())
            return 0

        removed = 0
        for product_id in stale:
            try:
                removed += current_domain.process(
                    ExpireProductReservations(product_id=product_id, as_of=as_of),
                    asynchronous=False,
                )
            except (ValidationError, ObjectNotFoundError, ExpectedVersionError) as exc:
                logger.warning(
                    "Failed to sweep product reservations",
                    product_id=product_id,
                    error=str(exc),
                )

        logger.info("Expired reservation sweep complete", removed=removed, products=len(stale))
        return removed
