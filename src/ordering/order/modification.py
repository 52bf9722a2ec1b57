"""Customer edits to an unshipped order — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class UpdateOrderDetails:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    address_id = Identifier()
    payment_method = String(max_length=50)


@ordering.command_handler(part_of=Order)
class UpdateOrderDetailsHandler:
    @handle(UpdateOrderDetails)
    def update_order_details(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.assert_owned_by(command.user_id)
        order.update_details(address_id=command.address_id, payment_method=command.payment_method)
        repo.add(order)
        return order
