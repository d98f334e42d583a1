"""Order domain events — immutable facts about order lifecycle changes."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A buyer's order passed stock validation and was persisted."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item snapshots
    item_count = Integer(required=True)
    payment_method = String(required=True)
    status = String(required=True)
    total = Float(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """An order moved to a new lifecycle state."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    actor_id = Identifier()
    note = String()
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    """An order was cancelled; its units go back to the ledger."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    actor_id = Identifier()
    reason = String()
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class CodVendorApproved:
    """A seller confirmed cash was collected for a delivered COD order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    approved_by = Identifier(required=True)
    approved_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class PaymentCompleted:
    """Payment for the order is settled."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    payment_method = String(required=True)
    amount = Float(required=True)
    approved_by = Identifier()
    transaction_id = String()
    completed_at = DateTime(required=True)
