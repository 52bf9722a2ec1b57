"""Order status changes — commands and handler.

``UpdateOrderStatus`` moves an order along its lifecycle and returns the
``TransitionDecision``. Stock is released by the caller once the new status
has committed, and the outcome is written back with ``RecordRestock``.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import CancellationActor, Order
from ordering.stock.ledger import ReleaseReport


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    changed_by = String(default=CancellationActor.ADMIN.value, max_length=50)
    reason = String(max_length=500)


@ordering.command(part_of="Order")
class RecordRestock:
    order_id = Identifier(required=True)
    report = Text(required=True)  # ReleaseReport as JSON


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        decision = order.transition_to(command.status, changed_by=command.changed_by, reason=command.reason)
        repo.add(order)
        return decision

    @handle(RecordRestock)
    def record_restock(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.record_restock(ReleaseReport.from_json(command.report))
        repo.add(order)
        return order
