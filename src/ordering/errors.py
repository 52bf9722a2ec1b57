"""Ordering domain exceptions.

Each exception extends the closest Protean exception so that
``protean.integrations.fastapi.register_exception_handlers`` maps it to a
sensible HTTP status without extra wiring. ``ordering.api.errors`` adds
richer response bodies for the stock and transition failures.
"""

from protean.exceptions import (
    ExpectedVersionError,
    InvalidStateError,
    ObjectNotFoundError,
    ProteanException,
)


class InsufficientStock(InvalidStateError):
    """A reservation would drive a variant's stock below zero."""

    def __init__(self, product_id, variant_id, requested, available):
        self.product_id = str(product_id)
        self.variant_id = str(variant_id)
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough stock for variant {self.variant_id} of product {self.product_id}: "
            f"requested {requested}, available {available}"
        )

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "requested": self.requested,
            "available": self.available,
        }


class VariantNotFound(ObjectNotFoundError):
    """No stock record exists for the product variant."""

    def __init__(self, product_id, variant_id):
        self.product_id = str(product_id)
        self.variant_id = str(variant_id)
        super().__init__(f"Variant {self.variant_id} not found for product {self.product_id}")


class OrderNotFound(ObjectNotFoundError):
    def __init__(self, order_id):
        self.order_id = str(order_id)
        super().__init__(f"Order {self.order_id} not found")


class InvalidTransition(InvalidStateError):
    """The requested status is not reachable from the order's current status."""

    def __init__(self, current_status, requested_status):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(f"Cannot transition order from {current_status} to {requested_status}")

    def to_dict(self):
        return {
            "current_status": self.current_status,
            "requested_status": self.requested_status,
        }


class Unauthorized(ProteanException):
    """The acting user does not own the order."""


class ConcurrentConflict(ExpectedVersionError):
    """A stock record kept changing underneath every adjustment attempt."""

    def __init__(self, product_id, variant_id, attempts):
        self.product_id = str(product_id)
        self.variant_id = str(variant_id)
        self.attempts = attempts
        super().__init__(
            f"Stock for variant {self.variant_id} of product {self.product_id} "
            f"could not be adjusted after {attempts} attempts"
        )
