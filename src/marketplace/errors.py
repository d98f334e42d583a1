"""Marketplace error taxonomy.

Domain-rule violations are ``ValidationError`` subclasses so they carry the
usual ``{field: [message]}`` payload and roll back the surrounding unit of
work like any other validation failure. ``TransientStoreConflict`` is the
only infrastructure-level error: it is raised once optimistic-concurrency
retries are exhausted.
"""

from protean.exceptions import ValidationError


class InsufficientStock(ValidationError):
    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            {
                "quantity": [
                    f"Insufficient stock for product {product_id}: requested {requested}, available {available}"
                ]
            }
        )


class ProductNotFound(ValidationError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__({"product_id": [f"Product {product_id} not found"]})


class OrderNotFound(ValidationError):
    def __init__(self, reference: str):
        self.reference = reference
        super().__init__({"order": [f"Order {reference} not found"]})


class ReservationNotFound(ValidationError):
    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__({"reservation_id": [f"Reservation {reservation_id} not found"]})


class ReservationExpired(ValidationError):
    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__({"reservation_id": [f"Reservation {reservation_id} has expired"]})


class InvalidTransition(ValidationError):
    """An order status change that the lifecycle table does not allow."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__({"status": [f"Cannot transition from {current} to {requested}"]})


class VendorApprovalRequired(ValidationError):
    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__({"cod_approval": [f"Vendor approval is required before admin approval of {order_number}"]})


class Unauthorized(ValidationError):
    def __init__(self, message: str):
        super().__init__({"caller": [message]})


class TransientStoreConflict(Exception):
    """Concurrent writers kept winning; the operation was not applied."""

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"{operation} gave up after {attempts} conflicting attempts")
