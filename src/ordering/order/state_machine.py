"""Order status state machine.

    placed → processing → shipped → delivered
                                  → returned
    cancelled is reachable from placed, processing and shipped.
    delivered, cancelled and returned are terminal.

Entering cancelled or returned gives the order's stock back. A terminal
order accepts no further transition, so stock is released at most once.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError

from ordering.errors import InvalidTransition


class OrderStatus(Enum):
    PLACED = "placed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


_VALID_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

# Entering these states restocks every item of the order
_RELEASING_STATES = {OrderStatus.CANCELLED, OrderStatus.RETURNED}

# Customers may cancel or edit an order only before it ships
_PRE_SHIPMENT_STATES = {OrderStatus.PLACED, OrderStatus.PROCESSING}


@dataclass(frozen=True)
class TransitionDecision:
    current: OrderStatus
    requested: OrderStatus
    release_required: bool


def parse_status(value) -> OrderStatus:
    """Return the OrderStatus for ``value``, ignoring case.

    Raises ``ValidationError`` for names outside the status set.
    """
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            {"status": [f"Unknown order status '{value}'. Expected one of: {', '.join(s.value for s in OrderStatus)}"]}
        ) from None


def validate_transition(current, requested) -> TransitionDecision:
    """Check ``current → requested`` against the transition table.

    Returns whether the transition must release the order's stock, or
    raises ``InvalidTransition``.
    """
    current = parse_status(current)
    requested = parse_status(requested)
    if requested not in _VALID_TRANSITIONS[current]:
        raise InvalidTransition(current.value, requested.value)

    return TransitionDecision(
        current=current,
        requested=requested,
        release_required=requested in _RELEASING_STATES,
    )


def allowed_transitions(status) -> list[OrderStatus]:
    return sorted(_VALID_TRANSITIONS[parse_status(status)], key=lambda s: s.value)


def is_terminal(status) -> bool:
    return not _VALID_TRANSITIONS[parse_status(status)]


def is_pre_shipment(status) -> bool:
    return parse_status(status) in _PRE_SHIPMENT_STATES
