"""Result types returned by order operations."""

from dataclasses import dataclass, field

from marketplace.stock.outcomes import ItemAvailability, StockRecovery


@dataclass(frozen=True)
class StockAlert:
    """A product whose stock status dropped to low or out of stock."""

    product_id: str
    product_name: str
    seller_id: str
    stock_status: str
    total_quantity: int


@dataclass(frozen=True)
class PlacementOutcome:
    success: bool
    order: object = None
    items: list[ItemAvailability] = field(default_factory=list)
    stock_alerts: list[StockAlert] = field(default_factory=list)


@dataclass(frozen=True)
class TransitionOutcome:
    order: object
    previous_status: str
    back_in_stock: list[StockRecovery] = field(default_factory=list)


@dataclass(frozen=True)
class CodApprovalOutcome:
    order: object
    stage: str  # "vendor" or "admin"
    payment_completed: bool = False


@dataclass(frozen=True)
class DeletionOutcome:
    order_number: str
    buyer_id: str
    restored: dict[str, int] = field(default_factory=dict)
    back_in_stock: list[StockRecovery] = field(default_factory=list)
