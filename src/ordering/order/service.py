"""Order service — places orders and moves them through their lifecycle.

Order changes are Protean commands processed synchronously, each in its own
unit of work with Protean's version retry. The service is not a command
handler itself: stock adjustments commit one by one, outside any enclosing
unit of work, so each version check has run before the service decides what
to do next.

Placing an order:
    1. validate the request (nothing is touched on failure)
    2. reserve stock for every item, all or nothing
    3. persist the order; if that fails, give the stock back

Changing status:
    1. validate the transition against the state machine
    2. commit the new status, guarded by the order's version, so only one
       of two racing requests can move the order into a terminal state
    3. when the order was cancelled or returned, restock every item and
       record the outcome on the order; restock failures are logged and
       never undo the status change
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.order.cancellation import CancelOrder
from ordering.order.modification import UpdateOrderDetails
from ordering.order.order import CancellationActor, Order
from ordering.order.state_machine import allowed_transitions, parse_status
from ordering.order.status import RecordRestock, UpdateOrderStatus
from ordering.stock.ledger import InventoryLedger
from ordering.stock.store import build_stock_store

logger = structlog.get_logger(__name__)


def validate_order_items(items):
    """Check the shape of the requested items before any stock is touched.

    Returns the items as plain dicts.
    """
    if not items:
        raise ValidationError({"items": ["An order must contain at least one item"]})

    errors = []
    cleaned = []
    for index, item in enumerate(items):
        data = dict(item)
        quantity = data.get("quantity")
        if not data.get("product_id") or not data.get("variant_id"):
            errors.append(f"Item {index}: product_id and variant_id are required")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            errors.append(f"Item {index}: quantity must be a positive integer")
        cleaned.append(data)

    if errors:
        raise ValidationError({"items": errors})
    return cleaned


class OrderService:
    def __init__(self, ledger: InventoryLedger, repository=None):
        self.ledger = ledger
        self._repository = repository

    @property
    def orders(self):
        return self._repository or current_domain.repository_for(Order)

    # -------------------------------------------------------------------
    # Placing orders
    # -------------------------------------------------------------------
    def create_order(self, user_id, items, **details) -> Order:
        """Reserve stock for ``items`` and persist a placed order.

        ``details`` carries the optional order attributes accepted by
        ``Order.create`` (amounts, address, payment and shipping method).
        Raises ``ValidationError``, ``VariantNotFound`` or
        ``InsufficientStock``; in every case no stock stays reserved.
        """
        if not user_id:
            raise ValidationError({"user_id": ["is required"]})
        items = validate_order_items(items)

        # Built before reserving so that field validation cannot fail after stock is taken
        order = Order.create(user_id=user_id, items_data=items, **details)

        self.ledger.reserve_all(items)
        try:
            self.orders.add(order)
        except BaseException:
            report = self.ledger.release_all(items)
            logger.error(
                "Could not persist order, released its reserved stock",
                order_id=str(order.id),
                user_id=str(user_id),
                restock_failures=len(report.failed),
            )
            raise

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=str(user_id),
            item_count=len(items),
        )
        return order

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def update_status(self, order_id, requested_status, changed_by=CancellationActor.ADMIN.value, reason=None) -> Order:
        """Move an order to ``requested_status``, restocking on cancel/return.

        Raises ``OrderNotFound``, ``ValidationError`` (unknown status) or
        ``InvalidTransition``.
        """
        requested = parse_status(requested_status)
        command = UpdateOrderStatus(
            order_id=str(order_id),
            status=requested.value,
            changed_by=changed_by,
            reason=reason,
        )
        return self._transition(command, changed_by)

    def cancel_by_user(self, user_id, order_id, reason=None) -> Order:
        """Cancel an order on behalf of its owner, before it ships."""
        command = CancelOrder(order_id=str(order_id), user_id=str(user_id), reason=reason)
        return self._transition(command, CancellationActor.CUSTOMER.value)

    def _transition(self, command, changed_by):
        decision = current_domain.process(command, asynchronous=False)
        logger.info(
            "Order status changed",
            order_id=command.order_id,
            previous_status=decision.current.value,
            new_status=decision.requested.value,
            changed_by=changed_by,
        )

        order = self.get_order(command.order_id)
        if decision.release_required:
            order = self._release_stock(order)
        return order

    def _release_stock(self, order):
        report = self.ledger.release_all(order.items)
        if not report.ok:
            logger.warning(
                "Restock failed for some order items",
                order_id=str(order.id),
                status=order.status,
                failed=[
                    {"product_id": f.item.product_id, "variant_id": f.item.variant_id, "error": f.error}
                    for f in report.failed
                ],
            )

        try:
            return current_domain.process(
                RecordRestock(order_id=str(order.id), report=report.to_json()),
                asynchronous=False,
            )
        except Exception:
            # Stock has moved and the status is committed; only the log entry is lost
            logger.exception("Could not record restock attempts on order", order_id=str(order.id))
            return order

    # -------------------------------------------------------------------
    # Customer edits
    # -------------------------------------------------------------------
    def update_details(self, user_id, order_id, address_id=None, payment_method=None) -> Order:
        """Change the delivery address or payment method of an unshipped order."""
        order = current_domain.process(
            UpdateOrderDetails(
                order_id=str(order_id),
                user_id=str(user_id),
                address_id=address_id,
                payment_method=payment_method,
            ),
            asynchronous=False,
        )
        logger.info("Order details updated", order_id=str(order.id), user_id=str(user_id))
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id) -> Order:
        return self.orders.get_order(order_id)

    def get_order_for_user(self, user_id, order_id) -> Order:
        order = self.get_order(order_id)
        order.assert_owned_by(user_id)
        return order

    def track(self, user_id, order_id) -> dict:
        order = self.get_order_for_user(user_id, order_id)
        return {
            "order_id": str(order.id),
            "status": order.status,
            "allowed_transitions": [status.value for status in allowed_transitions(order.status)],
            "updated_at": order.updated_at,
        }

    def list_for_user(self, user_id) -> list[Order]:
        return self.orders.for_user(str(user_id))

    def list_all(self, limit: int = 100, offset: int = 0) -> list[Order]:
        return self.orders.newest_first(limit=limit, offset=offset)


def build_order_service(repository=None) -> OrderService:
    """Wire an OrderService to the domain's repositories."""
    return OrderService(ledger=InventoryLedger(build_stock_store()), repository=repository)
