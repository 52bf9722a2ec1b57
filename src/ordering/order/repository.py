"""Repository for the Order aggregate."""

from ordering.domain import ordering
from ordering.errors import OrderNotFound
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    """Order queries on top of the standard get/add operations."""

    def get_order(self, order_id) -> Order:
        """Load an order, raising ``OrderNotFound`` when there is none."""
        order = self.get_or_none(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def for_user(self, user_id: str) -> list[Order]:
        """All orders placed by a user, newest first."""
        return self._dao.query.filter(user_id=user_id).order_by("-created_at").all().items

    def newest_first(self, limit: int = 100, offset: int = 0) -> list[Order]:
        """A page of all orders, newest first."""
        return self._dao.query.order_by("-created_at").limit(limit).offset(offset).all().items
