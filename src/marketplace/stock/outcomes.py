"""Result types returned by stock ledger operations.

Expected business outcomes (a product is short, a product is missing) are
reported through these values rather than raised, so callers can show every
failing line at once.
"""

from dataclasses import dataclass, field
from enum import Enum


class UnavailableReason(Enum):
    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ItemAvailability:
    product_id: str
    requested: int
    available_quantity: int
    product_name: str | None = None
    reason: UnavailableReason | None = None

    @property
    def available(self) -> bool:
        return self.reason is None

    def as_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "requested_quantity": self.requested,
            "available_quantity": self.available_quantity,
            "available": self.available,
            "reason": self.reason.value if self.reason else None,
        }


@dataclass(frozen=True)
class AvailabilityReport:
    items: list[ItemAvailability]

    @property
    def all_available(self) -> bool:
        return all(item.available for item in self.items)

    @property
    def unavailable(self) -> list[ItemAvailability]:
        return [item for item in self.items if not item.available]


@dataclass(frozen=True)
class ReservationOutcome:
    success: bool
    reservation_id: str | None = None
    expires_at: object = None
    items: list[ItemAvailability] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmationOutcome:
    reservation_id: str
    confirmed: dict[str, int] = field(default_factory=dict)
    failed: list[ItemAvailability] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed


@dataclass(frozen=True)
class StockRecovery:
    """A product whose available stock went from zero to positive."""

    product_id: str
    product_name: str
    available_quantity: int


@dataclass(frozen=True)
class ReleaseOutcome:
    reservation_id: str
    released: dict[str, int] = field(default_factory=dict)
    back_in_stock: list[StockRecovery] = field(default_factory=list)


@dataclass(frozen=True)
class RestockOutcome:
    product_id: str
    total_quantity: int
    back_in_stock: StockRecovery | None = None


def recovery(product, available_before: int, as_of) -> StockRecovery | None:
    """A ``StockRecovery`` if ``product`` just came back in stock, else ``None``."""
    available = product.available_stock(as_of)
    if available_before == 0 and available > 0:
        return StockRecovery(
            product_id=str(product.product_id),
            product_name=product.name,
            available_quantity=available,
        )
    return None
