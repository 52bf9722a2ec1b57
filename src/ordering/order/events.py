"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
They are written to the event store when the order is saved and are
consumed by the notification and reporting layers.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A new order was placed after stock was reserved for every item."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    item_count = Integer(required=True)
    total_amount = Float()
    payment_method = String()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along the status graph."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by the customer or an admin."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderReturned:
    """The shipped order came back."""

    __version__ = 1

    order_id = Identifier(required=True)
    returned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class RestockFailed:
    """Some items of a cancelled or returned order could not be restocked.

    The status change stands; operators reconcile the listed variants.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    status = String(required=True)
    failed_items = Text(required=True)  # JSON: list of {product_id, variant_id, quantity, error}
    failed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDetailsUpdated:
    """The customer changed the delivery address or payment method."""

    __version__ = 1

    order_id = Identifier(required=True)
    address_id = Identifier()
    payment_method = String()
