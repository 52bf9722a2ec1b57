"""Customer cancellation — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import InvalidTransition
from ordering.order.order import CancellationActor, Order
from ordering.order.state_machine import OrderStatus, is_pre_shipment


@ordering.command(part_of="Order")
class CancelOrder:
    """Cancel an order on behalf of its owner. Only unshipped orders qualify."""

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.assert_owned_by(command.user_id)
        if not is_pre_shipment(order.status):
            raise InvalidTransition(order.status, OrderStatus.CANCELLED.value)

        decision = order.transition_to(
            OrderStatus.CANCELLED,
            changed_by=CancellationActor.CUSTOMER.value,
            reason=command.reason,
        )
        repo.add(order)
        return decision
