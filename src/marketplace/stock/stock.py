"""ProductStock aggregate (CQRS) — the stock reservation ledger.

One ProductStock exists per catalogue product. It owns the physical count of
units the seller still has to ship and the set of time-bounded reservations
buyers hold against that count.

Stock Level Model:
    total_quantity:  units owned and not yet committed to an order
    reserved:        sum of unexpired reservations (derived, never stored)
    available:       max(0, total_quantity - reserved)

Reservations only shadow stock. ``total_quantity`` moves when an order is
placed (down) and when an order is cancelled or a pending order is deleted
(up). Confirming, releasing or expiring a reservation never changes it.
"""

from datetime import datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
)

from marketplace import policy
from marketplace.domain import marketplace
from marketplace.errors import InsufficientStock
from marketplace.stock.events import (
    LowInventoryDetected,
    ProductBackInStock,
    ProductStockRegistered,
    ProductStockUpdated,
    ReservationConfirmed,
    ReservationReleased,
    StockDeducted,
    StockReserved,
    StockRestocked,
    StockRestored,
)
from marketplace.utils.clock import as_utc, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class StockStatus(Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class SellerType(Enum):
    FARMER = "farmer"
    VENDOR = "vendor"


class Unit(Enum):
    KG = "kg"
    G = "g"
    LB = "lb"
    OZ = "oz"
    PIECE = "piece"
    DOZEN = "dozen"
    LITER = "liter"
    ML = "ml"


class ReleaseReason(Enum):
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    CONSUMED = "consumed"


_LOW_STATUSES = {StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK}


def stock_status_for(quantity: int, threshold: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def crossed_into_stock(before: int, after: int) -> bool:
    return before == 0 and after > 0


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="ProductStock")
class Reservation:
    """A provisional hold on units for one buyer.

    ``reservation_id`` is shared by every entry created in the same reserve
    call, so a hold spanning several products can be confirmed or released
    as one logical transaction.
    """

    reservation_id = String(required=True, max_length=100)
    holder_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    created_at = DateTime(required=True)
    expires_at = DateTime(required=True)

    def is_active(self, as_of: datetime) -> bool:
        return as_utc(self.expires_at) > as_of


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@marketplace.aggregate
class ProductStock:
    product_id = Identifier(identifier=True)
    name = String(required=True, max_length=200)
    price = Float(required=True, min_value=0.0)
    unit = String(choices=Unit, default=Unit.KG.value)
    category = String(max_length=100)
    seller_id = Identifier(required=True)
    seller_type = String(choices=SellerType, default=SellerType.FARMER.value)
    total_quantity = Integer(default=0, min_value=0)
    low_stock_threshold = Integer(default=policy.DEFAULT_LOW_STOCK_THRESHOLD, min_value=0)
    stock_status = String(choices=StockStatus, default=StockStatus.OUT_OF_STOCK.value)
    reservations = HasMany(Reservation)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        product_id: str,
        name: str,
        price: float,
        seller_id: str,
        quantity: int = 0,
        unit: str = Unit.KG.value,
        seller_type: str = SellerType.FARMER.value,
        category: str | None = None,
        low_stock_threshold: int | None = None,
    ):
        """Start tracking a catalogue product."""
        now = utcnow()
        threshold = policy.DEFAULT_LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
        stock = cls(
            product_id=product_id,
            name=name,
            price=price,
            unit=unit,
            category=category,
            seller_id=seller_id,
            seller_type=seller_type,
            total_quantity=quantity,
            low_stock_threshold=threshold,
            created_at=now,
            updated_at=now,
        )
        stock._refresh_stock_status()
        stock.raise_(
            ProductStockRegistered(
                product_id=str(stock.product_id),
                name=name,
                seller_id=str(seller_id),
                seller_type=stock.seller_type,
                total_quantity=stock.total_quantity,
                registered_at=now,
            )
        )
        return stock

    def update_catalogue(
        self,
        name: str,
        price: float,
        quantity: int,
        unit: str | None = None,
        category: str | None = None,
        low_stock_threshold: int | None = None,
    ) -> None:
        """Overwrite the catalogue snapshot with the seller's latest listing."""
        self.name = name
        self.price = price
        self.total_quantity = quantity
        if unit is not None:
            self.unit = unit
        if category is not None:
            self.category = category
        if low_stock_threshold is not None:
            self.low_stock_threshold = low_stock_threshold
        self._refresh_stock_status()
        self.updated_at = utcnow()
        self.raise_(
            ProductStockUpdated(
                product_id=str(self.product_id),
                total_quantity=self.total_quantity,
                stock_status=self.stock_status,
                updated_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Derived levels
    # -------------------------------------------------------------------
    def reserved_quantity(self, as_of: datetime | None = None, exclude_reservation_id: str | None = None) -> int:
        as_of = as_of or utcnow()
        return sum(
            entry.quantity
            for entry in self.reservations
            if entry.is_active(as_of) and entry.reservation_id != exclude_reservation_id
        )

    def available_stock(self, as_of: datetime | None = None, exclude_reservation_id: str | None = None) -> int:
        """Units a new buyer can still claim at ``as_of``.

        ``exclude_reservation_id`` ignores a hold the caller already owns, so
        the order consuming a reservation is not blocked by it.
        """
        return max(0, self.total_quantity - self.reserved_quantity(as_of, exclude_reservation_id))

    def reservations_for(self, reservation_id: str) -> list:
        return [entry for entry in self.reservations if entry.reservation_id == reservation_id]

    def _refresh_stock_status(self) -> StockStatus:
        status = stock_status_for(self.total_quantity, self.low_stock_threshold)
        self.stock_status = status.value
        return status

    def _note_status_change(self, previous: StockStatus) -> None:
        current = StockStatus(self.stock_status)
        if current != previous and current in _LOW_STATUSES:
            self.raise_(
                LowInventoryDetected(
                    product_id=str(self.product_id),
                    seller_id=str(self.seller_id),
                    stock_status=current.value,
                    total_quantity=self.total_quantity,
                    low_stock_threshold=self.low_stock_threshold,
                    detected_at=utcnow(),
                )
            )

    def _note_availability_change(self, before: int, as_of: datetime) -> None:
        after = self.available_stock(as_of)
        if crossed_into_stock(before, after):
            self.raise_(
                ProductBackInStock(
                    product_id=str(self.product_id),
                    available=after,
                    detected_at=as_of,
                )
            )

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(
        self,
        reservation_id: str,
        holder_id: str,
        quantity: int,
        as_of: datetime | None = None,
        ttl_minutes: int | None = None,
    ) -> Reservation:
        """Hold ``quantity`` units for ``holder_id`` until the TTL lapses."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        as_of = as_of or utcnow()
        available = self.available_stock(as_of)
        if quantity > available:
            raise InsufficientStock(str(self.product_id), quantity, available)

        ttl = policy.RESERVATION_TTL_MINUTES if ttl_minutes is None else ttl_minutes
        entry = Reservation(
            reservation_id=reservation_id,
            holder_id=holder_id,
            quantity=quantity,
            created_at=as_of,
            expires_at=as_of + timedelta(minutes=ttl),
        )
        self.add_reservations(entry)
        self.raise_(
            StockReserved(
                product_id=str(self.product_id),
                reservation_id=reservation_id,
                holder_id=str(holder_id),
                quantity=quantity,
                expires_at=entry.expires_at,
            )
        )
        return entry

    def confirm_reservation(self, reservation_id: str, as_of: datetime | None = None) -> tuple[int, int]:
        """Remove this product's entries for ``reservation_id``.

        Returns ``(confirmed, expired)`` quantities. Entries that had already
        lapsed are garbage-collected and reported as expired rather than
        confirmed.
        """
        as_of = as_of or utcnow()
        confirmed = expired = 0
        for entry in self.reservations_for(reservation_id):
            if entry.is_active(as_of):
                confirmed += entry.quantity
            else:
                expired += entry.quantity
            self.remove_reservations(entry)

        if confirmed:
            self.raise_(
                ReservationConfirmed(
                    product_id=str(self.product_id),
                    reservation_id=reservation_id,
                    quantity=confirmed,
                    confirmed_at=as_of,
                )
            )
        if expired:
            self.raise_(
                ReservationReleased(
                    product_id=str(self.product_id),
                    reservation_id=reservation_id,
                    quantity=expired,
                    reason=ReleaseReason.EXPIRED.value,
                    released_at=as_of,
                )
            )
        return confirmed, expired

    def release_reservation(
        self,
        reservation_id: str,
        as_of: datetime | None = None,
        reason: str = ReleaseReason.CANCELLED.value,
    ) -> int:
        """Drop this product's entries for ``reservation_id``; returns the released quantity."""
        as_of = as_of or utcnow()
        before = self.available_stock(as_of)
        released = 0
        for entry in self.reservations_for(reservation_id):
            released += entry.quantity
            self.remove_reservations(entry)

        if released:
            self.raise_(
                ReservationReleased(
                    product_id=str(self.product_id),
                    reservation_id=reservation_id,
                    quantity=released,
                    reason=reason,
                    released_at=as_of,
                )
            )
            if reason != ReleaseReason.CONSUMED.value:
                self._note_availability_change(before, as_of)
        return released

    def sweep_expired(self, as_of: datetime | None = None) -> int:
        """Garbage-collect lapsed entries; returns how many were removed."""
        as_of = as_of or utcnow()
        removed = 0
        for entry in list(self.reservations):
            if entry.is_active(as_of):
                continue
            self.remove_reservations(entry)
            removed += 1
            self.raise_(
                ReservationReleased(
                    product_id=str(self.product_id),
                    reservation_id=entry.reservation_id,
                    quantity=entry.quantity,
                    reason=ReleaseReason.EXPIRED.value,
                    released_at=as_of,
                )
            )
        return removed

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def restock(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = utcnow()
        before = self.available_stock(now)
        self.total_quantity += quantity
        self._refresh_stock_status()
        self.updated_at = now
        self.raise_(
            StockRestocked(
                product_id=str(self.product_id),
                quantity=quantity,
                new_total=self.total_quantity,
                restocked_at=now,
            )
        )
        self._note_availability_change(before, now)

    def deduct(self, quantity: int, order_number: str) -> None:
        """Commit units to a placed order."""
        if quantity > self.total_quantity:
            raise InsufficientStock(str(self.product_id), quantity, self.total_quantity)

        now = utcnow()
        previous = StockStatus(self.stock_status)
        self.total_quantity -= quantity
        self._refresh_stock_status()
        self.updated_at = now
        self.raise_(
            StockDeducted(
                product_id=str(self.product_id),
                order_number=order_number,
                quantity=quantity,
                new_total=self.total_quantity,
                deducted_at=now,
            )
        )
        self._note_status_change(previous)

    def restore(self, quantity: int, order_number: str) -> None:
        """Return units from a cancelled or deleted order."""
        now = utcnow()
        before = self.available_stock(now)
        self.total_quantity += quantity
        self._refresh_stock_status()
        self.updated_at = now
        self.raise_(
            StockRestored(
                product_id=str(self.product_id),
                order_number=order_number,
                quantity=quantity,
                new_total=self.total_quantity,
                restored_at=now,
            )
        )
        self._note_availability_change(before, now)
