"""FastAPI routes for the Ordering domain — orders, admin order management and stock.

The acting user comes from the ``X-User-Id`` header set by the identity
gateway in front of this service. Handlers are plain functions: FastAPI runs
them in its threadpool, where version-conflict retries may sleep.
"""

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AdjustStockRequest,
    CancelOrderRequest,
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
    RegisterStockRequest,
    StockIdResponse,
    StockResponse,
    TrackingResponse,
    UpdateOrderRequest,
    UpdateStatusRequest,
)
from ordering.order.service import build_order_service
from ordering.stock.ledger import InventoryLedger
from ordering.stock.registration import RegisterVariantStock
from ordering.stock.store import build_stock_store


def current_user_id(x_user_id: str = Header(default="")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing authenticated user")
    return x_user_id


# ---------------------------------------------------------------------------
# Order Router (customer)
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def create_order(body: CreateOrderRequest, user_id: str = Depends(current_user_id)) -> OrderResponse:
    """Place an order, reserving stock for every item."""
    details = body.model_dump(exclude={"items"})
    order = build_order_service().create_order(
        user_id=user_id,
        items=[item.model_dump() for item in body.items],
        **details,
    )
    return OrderResponse.from_order(order)


@order_router.get("", response_model=OrderListResponse)
def list_my_orders(user_id: str = Depends(current_user_id)) -> OrderListResponse:
    orders = build_order_service().list_for_user(user_id)
    return OrderListResponse(orders=[OrderResponse.from_order(order) for order in orders])


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_my_order(order_id: str, user_id: str = Depends(current_user_id)) -> OrderResponse:
    order = build_order_service().get_order_for_user(user_id, order_id)
    return OrderResponse.from_order(order)


@order_router.get("/{order_id}/tracking", response_model=TrackingResponse)
def track_order(order_id: str, user_id: str = Depends(current_user_id)) -> TrackingResponse:
    return TrackingResponse(**build_order_service().track(user_id, order_id))


@order_router.put("/{order_id}", response_model=OrderResponse)
def update_order(
    order_id: str, body: UpdateOrderRequest, user_id: str = Depends(current_user_id)
) -> OrderResponse:
    """Change the delivery address or payment method before the order ships."""
    order = build_order_service().update_details(
        user_id,
        order_id,
        address_id=body.address_id,
        payment_method=body.payment_method,
    )
    return OrderResponse.from_order(order)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: str, body: CancelOrderRequest | None = None, user_id: str = Depends(current_user_id)
) -> OrderResponse:
    """Cancel an order that has not shipped yet and restock its items."""
    reason = body.reason if body else None
    order = build_order_service().cancel_by_user(user_id, order_id, reason=reason)
    return OrderResponse.from_order(order)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("", response_model=OrderListResponse)
def list_all_orders(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> OrderListResponse:
    """All orders, newest first."""
    orders = build_order_service().list_all(limit=limit, offset=offset)
    return OrderListResponse(orders=[OrderResponse.from_order(order) for order in orders])


@admin_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(build_order_service().get_order(order_id))


@admin_router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(order_id: str, body: UpdateStatusRequest) -> OrderResponse:
    """Move an order along its lifecycle; cancelling or returning restocks its items."""
    order = build_order_service().update_status(order_id, body.status, reason=body.reason)
    return OrderResponse.from_order(order)


# ---------------------------------------------------------------------------
# Stock Router
# ---------------------------------------------------------------------------
stock_router = APIRouter(prefix="/variants", tags=["stock"])


@stock_router.post("/stock", status_code=201, response_model=StockIdResponse)
def register_stock(body: RegisterStockRequest) -> StockIdResponse:
    """Create the stock record for a newly catalogued variant."""
    command = RegisterVariantStock(
        product_id=body.product_id,
        variant_id=body.variant_id,
        units_in_stock=body.units_in_stock,
        sku=body.sku,
    )
    stock_id = current_domain.process(command, asynchronous=False)
    return StockIdResponse(stock_id=stock_id)


@stock_router.get("/{product_id}/{variant_id}/stock", response_model=StockResponse)
def get_stock(product_id: str, variant_id: str) -> StockResponse:
    return StockResponse.from_stock(build_stock_store().get_stock(product_id, variant_id))


@stock_router.post("/{product_id}/{variant_id}/stock/adjustments", response_model=StockResponse)
def adjust_stock(product_id: str, variant_id: str, body: AdjustStockRequest) -> StockResponse:
    """Correct a variant's stock by a signed delta (restock or write-off)."""
    stock = InventoryLedger(build_stock_store()).adjust(product_id, variant_id, body.delta)
    return StockResponse.from_stock(stock)
