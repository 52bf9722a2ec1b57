"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.errors import InsufficientStock, InvalidTransition, Unauthorized
from ordering.order.service import build_order_service
from pytest_bdd import given, parsers, then

_ERROR_CLASSES = {
    "insufficient stock": InsufficientStock,
    "an invalid transition": InvalidTransition,
    "unauthorized": Unauthorized,
}


def _parse_items(text):
    """Turn ``"A:2,B:1"`` into order items for variants of prod-001."""
    items = []
    for part in text.split(","):
        variant_id, quantity = part.strip().split(":")
        items.append({"product_id": "prod-001", "variant_id": variant_id, "quantity": int(quantity)})
    return items


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def service():
    return build_order_service()


@pytest.fixture()
def parse_items():
    return _parse_items


@pytest.fixture()
def error():
    """Container for the exception captured by a "tries to" step."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('variant "{variant_id}" has {units:d} units in stock'))
def _(register_stock, variant_id, units):
    register_stock(variant_id=variant_id, units=units)


@given(parsers.cfparse('"{user_id}" has ordered "{items}"'), target_fixture="order")
def _(service, user_id, items):
    return service.create_order(user_id, _parse_items(items))


@given(parsers.cfparse('the order has been moved to "{status}"'), target_fixture="order")
def _(service, order, status):
    return service.update_status(order.id, status)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{status}"'))
def _(service, order, status):
    assert order.status == status
    assert service.get_order(order.id).status == status


@then(parsers.cfparse('variant "{variant_id}" has {units:d} units in stock'))
def _(units_of, variant_id, units):
    assert units_of(variant_id=variant_id) == units


@then(parsers.cfparse("the request is rejected for {reason}"))
def _(error, reason):
    assert isinstance(error["exc"], _ERROR_CLASSES[reason])


@then(parsers.cfparse('the order stays "{status}"'))
def _(service, order, status):
    assert service.get_order(order.id).status == status
