"""Stock reservation — commands and handler.

A reserve request is all-or-nothing across every product it names: the
whole request is checked before any product is touched, and all touched
products are written in the same unit of work.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import ReservationNotFound
from marketplace.stock.availability import assess, load_products, requested_quantities
from marketplace.stock.outcomes import (
    ConfirmationOutcome,
    ItemAvailability,
    ReleaseOutcome,
    ReservationOutcome,
    StockRecovery,
    UnavailableReason,
    recovery,
)
from marketplace.stock.stock import ProductStock, ReleaseReason
from marketplace.utils.clock import as_utc, utcnow
from marketplace.utils.query import fetch_all

logger = structlog.get_logger(__name__)


def default_reservation_id(holder_id: str, as_of) -> str:
    return f"{holder_id}_{int(as_of.timestamp() * 1000)}"


def products_holding(reservation_id: str) -> list[ProductStock]:
    """Every product that still carries entries for ``reservation_id``."""
    repo = current_domain.repository_for(ProductStock)
    return [product for product in fetch_all(repo._dao.query, "product_id") if product.reservations_for(reservation_id)]


@marketplace.command(part_of="ProductStock")
class ReserveStock:
    """Hold stock on one or more products for a buyer."""

    holder_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity}
    reservation_id = String(max_length=100)  # Optional; generated when absent
    ttl_minutes = Integer(min_value=1)
    as_of = DateTime()


@marketplace.command(part_of="ProductStock")
class ConfirmReservation:
    """Convert a buyer's hold; the entries disappear, totals stay."""

    reservation_id = String(required=True, max_length=100)
    as_of = DateTime()


@marketplace.command(part_of="ProductStock")
class ReleaseReservation:
    """Explicitly give up a hold."""

    reservation_id = String(required=True, max_length=100)
    reason = String(choices=ReleaseReason, default=ReleaseReason.CANCELLED.value)
    as_of = DateTime()


@marketplace.command_handler(part_of=ProductStock)
class ReservationHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        as_of = as_utc(command.as_of) or utcnow()
        quantities = requested_quantities(command.items)
        products = load_products(quantities)

        report = assess(quantities, products, as_of)
        if not report.all_available:
            logger.info(
                "Reservation rejected",
                holder_id=str(command.holder_id),
                unavailable=[item.product_id for item in report.unavailable],
            )
            return ReservationOutcome(success=False, items=report.items)

        reservation_id = command.reservation_id or default_reservation_id(command.holder_id, as_of)
        repo = current_domain.repository_for(ProductStock)
        expires_at = None
        for product_id, quantity in quantities.items():
            product = products[product_id]
            entry = product.reserve(
                reservation_id=reservation_id,
                holder_id=command.holder_id,
                quantity=quantity,
                as_of=as_of,
                ttl_minutes=command.ttl_minutes,
            )
            expires_at = entry.expires_at
            repo.add(product)

        logger.info(
            "Stock reserved",
            reservation_id=reservation_id,
            holder_id=str(command.holder_id),
            products=list(quantities),
        )
        return ReservationOutcome(
            success=True,
            reservation_id=reservation_id,
            expires_at=expires_at,
            items=report.items,
        )

    @handle(ConfirmReservation)
    def confirm_reservation(self, command):
        as_of = as_utc(command.as_of) or utcnow()
        products = products_holding(command.reservation_id)
        if not products:
            raise ReservationNotFound(command.reservation_id)

        repo = current_domain.repository_for(ProductStock)
        confirmed: dict[str, int] = {}
        failed: list[ItemAvailability] = []
        for product in products:
            confirmed_qty, expired_qty = product.confirm_reservation(command.reservation_id, as_of)
            if confirmed_qty:
                confirmed[str(product.product_id)] = confirmed_qty
            if expired_qty:
                failed.append(
                    ItemAvailability(
                        product_id=str(product.product_id),
                        product_name=product.name,
                        requested=expired_qty,
                        available_quantity=product.available_stock(as_of),
                        reason=UnavailableReason.EXPIRED,
                    )
                )
            repo.add(product)

        logger.info(
            "Reservation confirmed",
            reservation_id=command.reservation_id,
            confirmed=confirmed,
            expired=[item.product_id for item in failed],
        )
        return ConfirmationOutcome(reservation_id=command.reservation_id, confirmed=confirmed, failed=failed)

    @handle(ReleaseReservation)
    def release_reservation(self, command):
        as_of = as_utc(command.as_of) or utcnow()
        products = products_holding(command.reservation_id)
        if not products:
            raise ReservationNotFound(command.reservation_id)

        repo = current_domain.repository_for(ProductStock)
        released: dict[str, int] = {}
        back_in_stock: list[StockRecovery] = []
        for product in products:
            before = product.available_stock(as_of)
            released[str(product.product_id)] = product.release_reservation(
                command.reservation_id, as_of, command.reason
            )
            recovered = recovery(product, before, as_of)
            if recovered:
                back_in_stock.append(recovered)
            repo.add(product)

        logger.info(
            "Reservation released",
            reservation_id=command.reservation_id,
            reason=command.reason,
            released=released,
        )
        return ReleaseOutcome(
            reservation_id=command.reservation_id,
            released=released,
            back_in_stock=back_in_stock,
        )
