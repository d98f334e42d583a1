"""ProductStock domain events — immutable facts about stock movements.

Quantities are carried as absolute values alongside the delta so that
downstream consumers never have to replay history to learn the current level.
"""

from protean.fields import DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="ProductStock")
class ProductStockRegistered:
    """A catalogue product started being tracked by the stock ledger."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    seller_id = Identifier(required=True)
    seller_type = String(required=True)
    total_quantity = Integer(required=True)
    registered_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class ProductStockUpdated:
    """The catalogue snapshot (name, price, unit, threshold) was refreshed."""

    __version__ = 1

    product_id = Identifier(required=True)
    total_quantity = Integer(required=True)
    stock_status = String(required=True)
    updated_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class StockRestocked:
    """A seller delivered more units."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_total = Integer(required=True)
    restocked_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class StockReserved:
    """Units were provisionally held for a buyer."""

    __version__ = 1

    product_id = Identifier(required=True)
    reservation_id = String(required=True)
    holder_id = Identifier(required=True)
    quantity = Integer(required=True)
    expires_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class ReservationConfirmed:
    """A hold was converted; the entry is gone, total is untouched."""

    __version__ = 1

    product_id = Identifier(required=True)
    reservation_id = String(required=True)
    quantity = Integer(required=True)
    confirmed_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class ReservationReleased:
    """A hold was dropped, either explicitly or because it expired."""

    __version__ = 1

    product_id = Identifier(required=True)
    reservation_id = String(required=True)
    quantity = Integer(required=True)
    reason = String(required=True)
    released_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class StockDeducted:
    """Units left the ledger because an order was placed."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_number = String(required=True)
    quantity = Integer(required=True)
    new_total = Integer(required=True)
    deducted_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class StockRestored:
    """Units came back because an order was cancelled or deleted."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_number = String(required=True)
    quantity = Integer(required=True)
    new_total = Integer(required=True)
    restored_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class LowInventoryDetected:
    """Stock status moved into low_stock or out_of_stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    stock_status = String(required=True)
    total_quantity = Integer(required=True)
    low_stock_threshold = Integer(required=True)
    detected_at = DateTime(required=True)


@marketplace.event(part_of="ProductStock")
class ProductBackInStock:
    """Available stock went from zero to positive."""

    __version__ = 1

    product_id = Identifier(required=True)
    available = Integer(required=True)
    detected_at = DateTime(required=True)
