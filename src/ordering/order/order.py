"""Order aggregate (CQRS) — the core of the ordering domain.

An order is created only after stock has been reserved for every item, so
its items record exactly what was taken from the stock ledger. Items never
change afterwards; they are what gets restocked when the order is
cancelled or returned.

State Machine (see ``ordering.order.state_machine``):
    PLACED → PROCESSING → SHIPPED → DELIVERED | RETURNED
    CANCELLED (from PLACED, PROCESSING, SHIPPED)
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
)

from ordering.domain import ordering
from ordering.errors import Unauthorized
from ordering.order.events import (
    OrderCancelled,
    OrderDetailsUpdated,
    OrderPlaced,
    OrderReturned,
    OrderStatusChanged,
    RestockFailed,
)
from ordering.order.state_machine import OrderStatus, is_pre_shipment, validate_transition


class CancellationActor(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


# Timestamp stamped when the order enters each status
_STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.PLACED: "placed_at",
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.RETURNED: "returned_at",
}

_ITEM_FIELDS = ("product_id", "variant_id", "quantity", "unit_price", "name", "variant_name")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A line item: the quantity of one product variant reserved for the order."""

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(default=0.0, min_value=0.0)
    name = String(max_length=255)
    variant_name = String(max_length=255)


@ordering.entity(part_of="Order")
class RestockAttempt:
    """Outcome of giving one item's stock back when the order was cancelled or returned."""

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    status = String(choices=OrderStatus, required=True)
    succeeded = Boolean(default=False)
    error = String(max_length=500)
    attempted_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PLACED.value,
    )
    total_amount = Float(default=0.0)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    address_id = Identifier()
    payment_id = String(max_length=255)
    payment_method = String(max_length=50, default="COD")
    shipping_method = String(max_length=50, default="standard")
    cancellation_reason = String(max_length=500)
    cancelled_by = String(choices=CancellationActor)
    restock_attempts = HasMany(RestockAttempt)
    placed_at = DateTime()
    processing_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    returned_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cancelled_order_must_record_actor(self):
        if self.status == OrderStatus.CANCELLED.value and not self.cancelled_by:
            raise ValidationError({"cancelled_by": ["A cancelled order must record who cancelled it"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        items_data,
        total_amount=None,
        subtotal=None,
        tax=None,
        shipping_fee=None,
        address_id=None,
        payment_id=None,
        payment_method=None,
        shipping_method=None,
    ):
        """Create a placed order for items whose stock is already reserved.

        Args:
            user_id: The customer placing the order.
            items_data: List of dicts with product_id, variant_id, quantity and
                        optionally unit_price, name, variant_name.
            total_amount, subtotal, tax, shipping_fee: Amounts computed upstream.
        """
        if not items_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        now = datetime.now(UTC)
        items = [
            OrderItem(**{key: item[key] for key in _ITEM_FIELDS if item.get(key) is not None}) for item in items_data
        ]

        order = cls(
            user_id=user_id,
            items=items,
            status=OrderStatus.PLACED.value,
            total_amount=total_amount or 0.0,
            subtotal=subtotal or 0.0,
            tax=tax or 0.0,
            shipping_fee=shipping_fee or 0.0,
            address_id=address_id,
            payment_id=payment_id,
            payment_method=payment_method or "COD",
            shipping_method=shipping_method or "standard",
            placed_at=now,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                items=json.dumps([order.item_payload(item) for item in order.items]),
                item_count=len(order.items),
                total_amount=order.total_amount,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    @staticmethod
    def item_payload(item):
        return {
            "product_id": str(item.product_id),
            "variant_id": str(item.variant_id),
            "quantity": item.quantity,
        }

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def transition_to(self, requested_status, changed_by=CancellationActor.ADMIN.value, reason=None):
        """Move the order to ``requested_status``.

        Returns the ``TransitionDecision``; the caller releases stock when
        ``release_required`` is set. Raises ``InvalidTransition`` without
        touching the order when the move is not allowed.
        """
        decision = validate_transition(self.status, requested_status)
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = decision.requested.value
            setattr(self, _STATUS_TIMESTAMP_FIELDS[decision.requested], now)
            self.updated_at = now
            if decision.requested == OrderStatus.CANCELLED:
                self.cancellation_reason = reason
                self.cancelled_by = changed_by

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=decision.current.value,
                new_status=decision.requested.value,
                changed_by=changed_by,
                changed_at=now,
            )
        )
        if decision.requested == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    reason=reason,
                    cancelled_by=changed_by,
                    cancelled_at=now,
                )
            )
        elif decision.requested == OrderStatus.RETURNED:
            self.raise_(OrderReturned(order_id=str(self.id), returned_at=now))

        return decision

    def record_restock(self, report):
        """Log the outcome of releasing this order's stock, one attempt per item."""
        now = datetime.now(UTC)
        for line in report.released:
            self.add_restock_attempts(
                RestockAttempt(
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    quantity=line.quantity,
                    status=self.status,
                    succeeded=True,
                    attempted_at=now,
                )
            )
        for failure in report.failed:
            self.add_restock_attempts(
                RestockAttempt(
                    product_id=failure.item.product_id,
                    variant_id=failure.item.variant_id,
                    quantity=failure.item.quantity,
                    status=self.status,
                    succeeded=False,
                    error=failure.error[:500],
                    attempted_at=now,
                )
            )
        self.updated_at = now

        if report.failed:
            self.raise_(
                RestockFailed(
                    order_id=str(self.id),
                    status=self.status,
                    failed_items=json.dumps(
                        [
                            {
                                "product_id": failure.item.product_id,
                                "variant_id": failure.item.variant_id,
                                "quantity": failure.item.quantity,
                                "error": failure.error,
                            }
                            for failure in report.failed
                        ]
                    ),
                    failed_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Customer-editable details
    # -------------------------------------------------------------------
    def update_details(self, address_id=None, payment_method=None):
        """Change the delivery address or payment method before the order ships."""
        if not is_pre_shipment(self.status):
            raise ValidationError({"status": [f"Order details cannot be changed once the order is {self.status}"]})

        if address_id:
            self.address_id = address_id
        if payment_method:
            self.payment_method = payment_method
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderDetailsUpdated(
                order_id=str(self.id),
                address_id=str(self.address_id) if self.address_id else None,
                payment_method=self.payment_method,
            )
        )

    def assert_owned_by(self, user_id):
        if str(self.user_id) != str(user_id):
            raise Unauthorized(f"Order {self.id} does not belong to user {user_id}")

    @property
    def failed_restocks(self):
        return [attempt for attempt in self.restock_attempts if not attempt.succeeded]
