"""ReservationManager — the stock ledger's entry point for callers.

Wraps the reservation commands with optimistic-concurrency retries and sends
stock notifications once a change has committed.
"""

import json
from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from marketplace.errors import ReservationExpired
from marketplace.notification.builders import back_in_stock_events
from marketplace.notification.dispatch import dispatch
from marketplace.notification.port import NotificationPort
from marketplace.stock.availability import check_availability
from marketplace.stock.catalogue import RegisterProductStock, RestockProduct
from marketplace.stock.expiry import SweepExpiredReservations
from marketplace.stock.outcomes import (
    AvailabilityReport,
    ConfirmationOutcome,
    ReleaseOutcome,
    ReservationOutcome,
    RestockOutcome,
)
from marketplace.stock.reports import low_stock_report, stock_level
from marketplace.stock.reservation import ConfirmReservation, ReleaseReservation, ReserveStock
from marketplace.utils.retry import run_with_retry

logger = structlog.get_logger(__name__)


class ReservationManager:
    def __init__(self, notifier: NotificationPort | None = None):
        self.notifier = notifier

    def _process(self, operation: str, command):
        return run_with_retry(operation, lambda: current_domain.process(command, asynchronous=False))

    # -------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------
    def register_product(self, **product) -> str:
        return self._process("register_product", RegisterProductStock(**product))

    def restock(self, product_id: str, quantity: int) -> RestockOutcome:
        outcome = self._process("restock", RestockProduct(product_id=product_id, quantity=quantity))
        if outcome.back_in_stock:
            dispatch(self.notifier, back_in_stock_events([outcome.back_in_stock]))
        return outcome

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def check_availability(self, items: list[dict], as_of: datetime | None = None) -> AvailabilityReport:
        return check_availability(items, as_of)

    def stock_level(self, product_id: str) -> dict:
        return stock_level(product_id)

    def low_stock_report(self, seller_id: str | None = None, page: int = 1, limit: int = 20) -> dict:
        return low_stock_report(seller_id, page, limit)

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(
        self,
        holder_id: str,
        items: list[dict],
        reservation_id: str | None = None,
        ttl_minutes: int | None = None,
        as_of: datetime | None = None,
    ) -> ReservationOutcome:
        """Hold every requested item or nothing at all."""
        command = ReserveStock(
            holder_id=holder_id,
            items=json.dumps(items),
            reservation_id=reservation_id,
            ttl_minutes=ttl_minutes,
            as_of=as_of,
        )
        return self._process("reserve", command)

    def confirm(self, reservation_id: str, as_of: datetime | None = None) -> ConfirmationOutcome:
        """Convert a hold.

        Raises ``ReservationNotFound`` when nothing is held under the id and
        ``ReservationExpired`` when every entry had already lapsed. Lapsed
        entries are removed either way.
        """
        outcome = self._process("confirm", ConfirmReservation(reservation_id=reservation_id, as_of=as_of))
        if not outcome.confirmed:
            raise ReservationExpired(reservation_id)
        return outcome

    def release(self, reservation_id: str, as_of: datetime | None = None) -> ReleaseOutcome:
        outcome = self._process("release", ReleaseReservation(reservation_id=reservation_id, as_of=as_of))
        dispatch(self.notifier, back_in_stock_events(outcome.back_in_stock))
        return outcome

    def sweep_expired(self, as_of: datetime | None = None) -> int:
        removed = current_domain.process(SweepExpiredReservations(as_of=as_of), asynchronous=False)
        if removed:
            logger.info("Expired reservations reclaimed", removed=removed)
        return removed
