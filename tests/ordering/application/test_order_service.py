"""Application tests for OrderService — placing orders, status changes and restocking."""

import pytest
from ordering.errors import (
    InsufficientStock,
    InvalidTransition,
    OrderNotFound,
    Unauthorized,
    VariantNotFound,
)
from ordering.order.order import Order
from ordering.order.service import OrderService, build_order_service, validate_order_items
from ordering.order.state_machine import OrderStatus
from ordering.stock.ledger import InventoryLedger
from ordering.stock.store import VariantStockStore, build_stock_store
from protean import current_domain
from protean.exceptions import ValidationError


class _RefusingRestockStore(VariantStockStore):
    """Persisted stock store that refuses to restock the given variants."""

    def __init__(self, refuse):
        self._store = build_stock_store()
        self.refuse = set(refuse)

    def get_stock(self, product_id, variant_id):
        return self._store.get_stock(product_id, variant_id)

    def atomic_adjust(self, product_id, variant_id, delta):
        if delta > 0 and variant_id in self.refuse:
            raise RuntimeError("stock service unavailable")
        return self._store.atomic_adjust(product_id, variant_id, delta)


def _item(variant_id, quantity, product_id="prod-001", **extra):
    return {"product_id": product_id, "variant_id": variant_id, "quantity": quantity, **extra}


@pytest.fixture()
def service():
    return build_order_service()


@pytest.fixture()
def stocked(register_stock):
    register_stock(variant_id="A", units=5)
    register_stock(variant_id="B", units=3)


def _order_count():
    return len(current_domain.repository_for(Order).newest_first())


class TestValidateOrderItems:
    def test_accepts_positive_quantities(self):
        cleaned = validate_order_items([_item("A", 1)])
        assert cleaned == [_item("A", 1)]

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            validate_order_items([_item("A", quantity)])
        assert "items" in exc_info.value.messages

    def test_rejects_empty_list(self):
        with pytest.raises(ValidationError):
            validate_order_items([])

    def test_requires_variant_reference(self):
        with pytest.raises(ValidationError):
            validate_order_items([{"product_id": "prod-001", "quantity": 1}])


class TestCreateOrder:
    def test_places_order_and_reserves_stock(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2), _item("B", 3)], total_amount=500.0)

        assert order.status == OrderStatus.PLACED.value
        assert len(order.items) == 2
        assert order.total_amount == 500.0
        assert units_of(variant_id="A") == 3
        assert units_of(variant_id="B") == 0

        persisted = service.get_order(order.id)
        assert persisted.user_id == "user-1"

    def test_insufficient_stock_reserves_nothing(self, service, stocked, units_of):
        with pytest.raises(InsufficientStock) as exc_info:
            service.create_order("user-1", [_item("A", 2), _item("B", 4)])

        assert exc_info.value.variant_id == "B"
        assert units_of(variant_id="A") == 5
        assert units_of(variant_id="B") == 3
        assert _order_count() == 0

    def test_unknown_variant_reserves_nothing(self, service, stocked, units_of):
        with pytest.raises(VariantNotFound):
            service.create_order("user-1", [_item("A", 1), _item("Z", 1)])

        assert units_of(variant_id="A") == 5
        assert _order_count() == 0

    def test_invalid_quantity_touches_nothing(self, service, stocked, units_of):
        with pytest.raises(ValidationError):
            service.create_order("user-1", [_item("A", 1), _item("B", 0)])

        assert units_of(variant_id="A") == 5
        assert _order_count() == 0

    def test_requires_user(self, service, stocked):
        with pytest.raises(ValidationError):
            service.create_order("", [_item("A", 1)])

    def test_invalid_details_touch_nothing(self, service, stocked, units_of):
        with pytest.raises(ValidationError):
            service.create_order("user-1", [_item("A", 1, unit_price=-5.0)])

        assert units_of(variant_id="A") == 5

    def test_failed_save_releases_stock(self, stocked, units_of):
        class _BrokenOrders:
            def add(self, order):
                raise RuntimeError("database unavailable")

        service = OrderService(InventoryLedger(build_stock_store()), repository=_BrokenOrders())

        with pytest.raises(RuntimeError):
            service.create_order("user-1", [_item("A", 2)])

        assert units_of(variant_id="A") == 5


class TestUpdateStatus:
    def test_forward_transitions(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])

        for status in ("processing", "shipped", "delivered"):
            order = service.update_status(order.id, status)

        persisted = service.get_order(order.id)
        assert persisted.status == OrderStatus.DELIVERED.value
        assert persisted.delivered_at is not None

    def test_status_names_ignore_case(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])
        order = service.update_status(order.id, "PROCESSING")
        assert order.status == OrderStatus.PROCESSING.value

    def test_cancel_restocks_items(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2), _item("B", 1)])

        order = service.update_status(order.id, "cancelled", reason="Customer called")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == "admin"
        assert units_of(variant_id="A") == 5
        assert units_of(variant_id="B") == 3
        persisted = service.get_order(order.id)
        assert len(persisted.restock_attempts) == 2
        assert all(attempt.succeeded for attempt in persisted.restock_attempts)

    def test_return_restocks_items(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2)])
        for status in ("processing", "shipped", "returned"):
            order = service.update_status(order.id, status)

        assert order.status == OrderStatus.RETURNED.value
        assert units_of(variant_id="A") == 5

    def test_shipped_order_can_be_cancelled_by_admin(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2)])
        service.update_status(order.id, "processing")
        service.update_status(order.id, "shipped")

        order = service.update_status(order.id, "cancelled")

        assert order.status == OrderStatus.CANCELLED.value
        assert units_of(variant_id="A") == 5

    def test_second_cancel_does_not_restock_twice(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2)])
        service.update_status(order.id, "cancelled")

        with pytest.raises(InvalidTransition):
            service.update_status(order.id, "cancelled")

        assert units_of(variant_id="A") == 5

    def test_cancel_then_reorder_round_trip(self, service, stocked, units_of):
        first = service.create_order("user-1", [_item("A", 5)])
        assert units_of(variant_id="A") == 0

        service.update_status(first.id, "cancelled")
        assert units_of(variant_id="A") == 5

        service.create_order("user-2", [_item("A", 5)])
        assert units_of(variant_id="A") == 0

    def test_delivered_order_rejects_cancel(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2)])
        for status in ("processing", "shipped", "delivered"):
            service.update_status(order.id, status)

        with pytest.raises(InvalidTransition) as exc_info:
            service.update_status(order.id, "cancelled")

        assert exc_info.value.current_status == "delivered"
        assert units_of(variant_id="A") == 3

    def test_skipping_a_step_is_rejected(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])
        with pytest.raises(InvalidTransition):
            service.update_status(order.id, "delivered")
        assert service.get_order(order.id).status == OrderStatus.PLACED.value

    def test_unknown_status(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])
        with pytest.raises(ValidationError) as exc_info:
            service.update_status(order.id, "teleported")
        assert "status" in exc_info.value.messages

    def test_unknown_order(self, service):
        with pytest.raises(OrderNotFound):
            service.update_status("missing-order", "processing")

    def test_restock_failure_keeps_cancellation(self, stocked, units_of):
        service = OrderService(InventoryLedger(_RefusingRestockStore(refuse={"B"})))
        order = service.create_order("user-1", [_item("A", 2), _item("B", 1)])

        order = service.update_status(order.id, "cancelled")

        assert order.status == OrderStatus.CANCELLED.value
        assert units_of(variant_id="A") == 5
        assert units_of(variant_id="B") == 2

        persisted = service.get_order(order.id)
        assert persisted.status == OrderStatus.CANCELLED.value
        failed = persisted.failed_restocks
        assert len(failed) == 1
        assert failed[0].variant_id == "B"
        assert "unavailable" in failed[0].error


class TestCancelByUser:
    def test_owner_cancels_placed_order(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2)])

        order = service.cancel_by_user("user-1", order.id, reason="Changed my mind")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_by == "customer"
        assert order.cancellation_reason == "Changed my mind"
        assert units_of(variant_id="A") == 5

    def test_owner_cancels_processing_order(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 2)])
        service.update_status(order.id, "processing")

        order = service.cancel_by_user("user-1", order.id)
        assert order.status == OrderStatus.CANCELLED.value

    def test_other_user_is_refused(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2)])

        with pytest.raises(Unauthorized):
            service.cancel_by_user("user-2", order.id)

        assert service.get_order(order.id).status == OrderStatus.PLACED.value
        assert units_of(variant_id="A") == 3

    def test_shipped_order_cannot_be_cancelled_by_user(self, service, stocked, units_of):
        order = service.create_order("user-1", [_item("A", 2)])
        service.update_status(order.id, "processing")
        service.update_status(order.id, "shipped")

        with pytest.raises(InvalidTransition) as exc_info:
            service.cancel_by_user("user-1", order.id)

        assert exc_info.value.current_status == "shipped"
        assert units_of(variant_id="A") == 3

    def test_already_cancelled(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 2)])
        service.cancel_by_user("user-1", order.id)

        with pytest.raises(InvalidTransition):
            service.cancel_by_user("user-1", order.id)


class TestUpdateDetails:
    def test_owner_changes_address_and_payment(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)], address_id="addr-1")

        order = service.update_details("user-1", order.id, address_id="addr-2", payment_method="UPI")

        persisted = service.get_order(order.id)
        assert persisted.address_id == "addr-2"
        assert persisted.payment_method == "UPI"

    def test_other_user_is_refused(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])
        with pytest.raises(Unauthorized):
            service.update_details("user-2", order.id, payment_method="UPI")

    def test_shipped_order_is_locked(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])
        service.update_status(order.id, "processing")
        service.update_status(order.id, "shipped")

        with pytest.raises(ValidationError):
            service.update_details("user-1", order.id, payment_method="UPI")


class TestQueries:
    def test_get_order_for_user(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])

        assert service.get_order_for_user("user-1", order.id).id == order.id
        with pytest.raises(Unauthorized):
            service.get_order_for_user("user-2", order.id)

    def test_unknown_order(self, service):
        with pytest.raises(OrderNotFound):
            service.get_order("missing-order")

    def test_list_for_user(self, service, stocked):
        first = service.create_order("user-1", [_item("A", 1)])
        second = service.create_order("user-1", [_item("B", 1)])
        service.create_order("user-2", [_item("A", 1)])

        orders = service.list_for_user("user-1")

        assert {order.id for order in orders} == {first.id, second.id}

    def test_list_all(self, service, stocked):
        service.create_order("user-1", [_item("A", 1)])
        service.create_order("user-2", [_item("A", 1)])

        assert len(service.list_all()) == 2
        assert len(service.list_all(limit=1)) == 1

    def test_track(self, service, stocked):
        order = service.create_order("user-1", [_item("A", 1)])
        service.update_status(order.id, "processing")

        tracking = service.track("user-1", order.id)

        assert tracking["status"] == "processing"
        assert tracking["allowed_transitions"] == ["cancelled", "shipped"]
