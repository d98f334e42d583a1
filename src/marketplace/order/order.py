"""Order aggregate (CQRS) — the order lifecycle state machine.

An Order snapshots everything it needs at placement time (item prices,
units, seller, delivery address) and from then on only changes through
status transitions and the cash-on-delivery approval protocol.

State Machine:
    PENDING → CONFIRMED → PREPARING → PACKED → OUT_FOR_DELIVERY → DELIVERED → RETURNED
    OUT_FOR_DELIVERY → RETURNED
    {PENDING, CONFIRMED, PREPARING, PACKED} → CANCELLED

Cash on delivery:
    Once DELIVERED, a seller of one of the items approves the cash collection,
    then an admin approves it; only the admin step completes the payment.
"""

import json
from datetime import datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from marketplace import policy
from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition, VendorApprovalRequired
from marketplace.order.events import (
    CodVendorApproved,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentCompleted,
)
from marketplace.stock.stock import SellerType, Unit
from marketplace.utils.clock import as_utc, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    PACKED = "packed"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    MOBILE_BANKING = "mobile_banking"
    CARD = "card"


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class DeliveryStatus(Enum):
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    DELAYED = "delayed"
    ON_TIME = "on_time"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.PACKED, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # terminal
    OrderStatus.RETURNED: set(),  # terminal
}

# Statuses in which the buyer may still cancel on their own
BUYER_CANCELLABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Statuses in which an admin may physically delete the order
DELETABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.CANCELLED}


def allowed_transitions(status: OrderStatus) -> set[OrderStatus]:
    return set(_VALID_TRANSITIONS.get(status, set()))


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class DeliveryAddress:
    """Where the order goes, captured at checkout and never updated."""

    full_name = String(required=True, max_length=100)
    phone = String(required=True, max_length=30)
    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    postal_code = String(max_length=20)
    instructions = String(max_length=500)


@marketplace.value_object(part_of="Order")
class PaymentDetails:
    mobile_number = String(max_length=30)
    transaction_id = String(max_length=100)
    card_last4 = String(max_length=4)


@marketplace.value_object(part_of="Order")
class OrderSummary:
    """Money summary locked at placement: total = subtotal + fee + tax - discount."""

    subtotal = Float(default=0.0)
    delivery_fee = Float(default=0.0)
    tax = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)


@marketplace.value_object(part_of="Order")
class CodApproval:
    vendor_approved = Boolean(default=False)
    vendor_approved_by = Identifier()
    vendor_approved_at = DateTime()
    admin_approved = Boolean(default=False)
    admin_approved_by = Identifier()
    admin_approved_at = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """A line item priced from the product snapshot at placement time."""

    line_number = Integer(required=True, min_value=1)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    quantity = Integer(required=True, min_value=1)
    unit = String(choices=Unit, default=Unit.KG.value)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)
    seller_id = Identifier(required=True)
    seller_type = String(choices=SellerType, default=SellerType.FARMER.value)


@marketplace.entity(part_of="Order")
class StatusEntry:
    """One append-only record in the order's status history."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    note = String(max_length=500)
    actor_id = Identifier()
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    buyer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    delivery_address = ValueObject(DeliveryAddress)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_details = ValueObject(PaymentDetails)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    summary = ValueObject(OrderSummary)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    status_history = HasMany(StatusEntry)
    cod_approval = ValueObject(CodApproval)
    estimated_delivery = DateTime()
    actual_delivery = DateTime()
    notes = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number: str,
        buyer_id: str,
        items_data: list[dict],
        delivery_address: dict,
        payment_method: str,
        summary: dict,
        payment_details: dict | None = None,
        notes: str | None = None,
        placed_at: datetime | None = None,
    ):
        """Create a new order from validated, snapshotted items.

        Cash-on-delivery orders start CONFIRMED since there is nothing to
        wait for; every other method starts PENDING until payment is seen.

        Args:
            items_data: List of dicts with product_id, name, quantity, unit,
                        unit_price, line_total, seller_id, seller_type.
            delivery_address: Dict with full_name, phone, address, city,
                              postal_code, instructions.
            summary: Dict with subtotal, delivery_fee, tax, discount, total.
        """
        now = placed_at or utcnow()
        method = PaymentMethod(payment_method)
        initial = OrderStatus.CONFIRMED if method == PaymentMethod.CASH_ON_DELIVERY else OrderStatus.PENDING

        order = cls(
            order_number=order_number,
            buyer_id=buyer_id,
            delivery_address=DeliveryAddress(**delivery_address),
            payment_method=method.value,
            payment_details=PaymentDetails(**payment_details) if payment_details else None,
            payment_status=PaymentStatus.PENDING.value,
            summary=OrderSummary(**summary),
            status=initial.value,
            cod_approval=CodApproval(),
            estimated_delivery=now + timedelta(days=policy.ESTIMATED_DELIVERY_DAYS),
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        for line_number, item_data in enumerate(items_data, start=1):
            order.add_items(OrderItem(line_number=line_number, **item_data))
        order._append_history(initial, "Order placed successfully", buyer_id, now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                buyer_id=str(buyer_id),
                items=json.dumps(items_data),
                item_count=len(items_data),
                payment_method=method.value,
                status=initial.value,
                total=order.summary.total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list:
        return sorted(self.items, key=lambda item: item.line_number)

    @property
    def history(self) -> list:
        return sorted(self.status_history, key=lambda entry: entry.sequence)

    @property
    def seller_ids(self) -> set[str]:
        return {str(item.seller_id) for item in self.items}

    def is_sold_by(self, seller_id: str) -> bool:
        return str(seller_id) in self.seller_ids

    def quantities_by_product(self) -> dict[str, int]:
        quantities: dict[str, int] = {}
        for item in self.lines:
            quantities[str(item.product_id)] = quantities.get(str(item.product_id), 0) + item.quantity
        return quantities

    def next_statuses(self) -> set[OrderStatus]:
        return allowed_transitions(OrderStatus(self.status))

    def delivery_status(self, as_of: datetime | None = None) -> DeliveryStatus:
        status = OrderStatus(self.status)
        if status == OrderStatus.DELIVERED:
            return DeliveryStatus.DELIVERED
        if status == OrderStatus.CANCELLED:
            return DeliveryStatus.CANCELLED
        as_of = as_of or utcnow()
        if self.estimated_delivery and as_of > as_utc(self.estimated_delivery):
            return DeliveryStatus.DELAYED
        return DeliveryStatus.ON_TIME

    @property
    def is_cash_on_delivery(self) -> bool:
        return self.payment_method == PaymentMethod.CASH_ON_DELIVERY.value

    # -------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------
    def _append_history(self, status: OrderStatus, note: str | None, actor_id, at: datetime) -> None:
        self.add_status_history(
            StatusEntry(
                sequence=len(self.status_history) + 1,
                status=status.value,
                note=note,
                actor_id=actor_id,
                recorded_at=at,
            )
        )

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target_status.value)

    def transition_to(self, target_status: OrderStatus, actor_id=None, note: str | None = None) -> OrderStatus:
        """Move to ``target_status`` and record it; returns the previous status."""
        self._assert_can_transition(target_status)

        now = utcnow()
        previous = OrderStatus(self.status)
        note = note or f"Order status updated to {target_status.value}"
        self.status = target_status.value
        if target_status == OrderStatus.DELIVERED and self.actual_delivery is None:
            self.actual_delivery = now
        self.updated_at = now
        self._append_history(target_status, note, actor_id, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous.value,
                new_status=target_status.value,
                actor_id=actor_id,
                note=note,
                changed_at=now,
            )
        )
        if target_status == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    previous_status=previous.value,
                    actor_id=actor_id,
                    reason=note,
                    cancelled_at=now,
                )
            )
        return previous

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def _assert_cod_delivered(self) -> None:
        if not self.is_cash_on_delivery:
            raise ValidationError({"payment_method": ["Only cash on delivery orders need approval"]})
        if self.status != OrderStatus.DELIVERED.value:
            raise ValidationError({"status": ["Cash on delivery can only be approved after delivery"]})

    def approve_cod_as_vendor(self, actor_id) -> None:
        self._assert_cod_delivered()
        approval = self.cod_approval or CodApproval()
        if approval.vendor_approved:
            raise ValidationError({"cod_approval": ["Vendor approval already recorded"]})

        now = utcnow()
        self.cod_approval = CodApproval(
            vendor_approved=True,
            vendor_approved_by=actor_id,
            vendor_approved_at=now,
            admin_approved=approval.admin_approved,
            admin_approved_by=approval.admin_approved_by,
            admin_approved_at=approval.admin_approved_at,
        )
        self.updated_at = now
        self.raise_(
            CodVendorApproved(
                order_id=str(self.id),
                order_number=self.order_number,
                approved_by=actor_id,
                approved_at=now,
            )
        )

    def approve_cod_as_admin(self, actor_id) -> None:
        """Final COD approval; completes the payment."""
        self._assert_cod_delivered()
        approval = self.cod_approval or CodApproval()
        if not approval.vendor_approved:
            raise VendorApprovalRequired(self.order_number)
        if approval.admin_approved:
            raise ValidationError({"cod_approval": ["Admin approval already recorded"]})

        now = utcnow()
        self.cod_approval = CodApproval(
            vendor_approved=True,
            vendor_approved_by=approval.vendor_approved_by,
            vendor_approved_at=approval.vendor_approved_at,
            admin_approved=True,
            admin_approved_by=actor_id,
            admin_approved_at=now,
        )
        self.payment_status = PaymentStatus.COMPLETED.value
        self.updated_at = now
        self._append_history(
            OrderStatus(self.status),
            "Cash on delivery payment approved by admin",
            actor_id,
            now,
        )
        self.raise_(
            PaymentCompleted(
                order_id=str(self.id),
                order_number=self.order_number,
                payment_method=self.payment_method,
                amount=self.summary.total,
                approved_by=actor_id,
                completed_at=now,
            )
        )

    def record_payment(self, transaction_id: str | None = None) -> None:
        """Mark an online payment as settled."""
        if self.is_cash_on_delivery:
            raise ValidationError({"payment_method": ["Cash on delivery payments are settled by approval"]})
        if self.payment_status == PaymentStatus.COMPLETED.value:
            raise ValidationError({"payment_status": ["Payment already completed"]})
        if self.status == OrderStatus.CANCELLED.value:
            raise ValidationError({"status": ["Cannot record payment for a cancelled order"]})

        now = utcnow()
        self.payment_status = PaymentStatus.COMPLETED.value
        if transaction_id:
            details = self.payment_details or PaymentDetails()
            self.payment_details = PaymentDetails(
                mobile_number=details.mobile_number,
                transaction_id=transaction_id,
                card_last4=details.card_last4,
            )
        self.updated_at = now
        self.raise_(
            PaymentCompleted(
                order_id=str(self.id),
                order_number=self.order_number,
                payment_method=self.payment_method,
                amount=self.summary.total,
                transaction_id=transaction_id,
                completed_at=now,
            )
        )
