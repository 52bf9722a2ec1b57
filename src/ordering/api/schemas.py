"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from the
internal Order and VariantStock aggregates. Quantities are accepted as any
integer here; the order service rejects non-positive ones with a 400.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    variant_id: str
    quantity: int
    unit_price: float = Field(ge=0, default=0.0)
    name: str | None = None
    variant_name: str | None = None


class CreateOrderRequest(BaseModel):
    items: list[OrderItemRequest]
    total_amount: float | None = None
    subtotal: float | None = None
    tax: float | None = None
    shipping_fee: float | None = None
    address_id: str | None = None
    payment_id: str | None = None
    payment_method: str = "COD"
    shipping_method: str = "standard"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product_id": "prod-001",
                            "variant_id": "500g",
                            "quantity": 2,
                            "unit_price": 240.0,
                            "name": "Organic Jaggery",
                            "variant_name": "500g",
                        }
                    ],
                    "total_amount": 530.0,
                    "subtotal": 480.0,
                    "tax": 0.0,
                    "shipping_fee": 50.0,
                    "address_id": "addr-001",
                    "payment_method": "COD",
                }
            ]
        }
    }


class UpdateOrderRequest(BaseModel):
    address_id: str | None = None
    payment_method: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class UpdateStatusRequest(BaseModel):
    status: str
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Stock Request Schemas
# ---------------------------------------------------------------------------
class RegisterStockRequest(BaseModel):
    product_id: str
    variant_id: str
    units_in_stock: int = Field(ge=0, default=0)
    sku: str | None = None


class AdjustStockRequest(BaseModel):
    delta: int


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    product_id: str
    variant_id: str
    quantity: int
    unit_price: float | None = None
    name: str | None = None
    variant_name: str | None = None


class RestockAttemptResponse(BaseModel):
    product_id: str
    variant_id: str
    quantity: int
    status: str
    succeeded: bool
    error: str | None = None
    attempted_at: datetime | None = None


class OrderResponse(BaseModel):
    order_id: str
    user_id: str
    status: str
    items: list[OrderItemResponse]
    total_amount: float | None = None
    subtotal: float | None = None
    tax: float | None = None
    shipping_fee: float | None = None
    address_id: str | None = None
    payment_id: str | None = None
    payment_method: str | None = None
    shipping_method: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    restock_attempts: list[RestockAttemptResponse] = []
    placed_at: datetime | None = None
    processing_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    returned_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order):
        return cls(
            order_id=str(order.id),
            user_id=str(order.user_id),
            status=order.status,
            items=[
                OrderItemResponse(
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id),
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    name=item.name,
                    variant_name=item.variant_name,
                )
                for item in order.items
            ],
            total_amount=order.total_amount,
            subtotal=order.subtotal,
            tax=order.tax,
            shipping_fee=order.shipping_fee,
            address_id=str(order.address_id) if order.address_id else None,
            payment_id=order.payment_id,
            payment_method=order.payment_method,
            shipping_method=order.shipping_method,
            cancellation_reason=order.cancellation_reason,
            cancelled_by=order.cancelled_by,
            restock_attempts=[
                RestockAttemptResponse(
                    product_id=str(attempt.product_id),
                    variant_id=str(attempt.variant_id),
                    quantity=attempt.quantity,
                    status=attempt.status,
                    succeeded=attempt.succeeded,
                    error=attempt.error,
                    attempted_at=attempt.attempted_at,
                )
                for attempt in order.restock_attempts
            ],
            placed_at=order.placed_at,
            processing_at=order.processing_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            cancelled_at=order.cancelled_at,
            returned_at=order.returned_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class TrackingResponse(BaseModel):
    order_id: str
    status: str
    allowed_transitions: list[str]
    updated_at: datetime | None = None


class StockResponse(BaseModel):
    product_id: str
    variant_id: str
    units_in_stock: int
    in_stock: bool
    stock_status: str
    updated_at: datetime | None = None

    @classmethod
    def from_stock(cls, stock):
        return cls(
            product_id=str(stock.product_id),
            variant_id=str(stock.variant_id),
            units_in_stock=stock.units_in_stock,
            in_stock=stock.in_stock,
            stock_status=stock.stock_status,
            updated_at=stock.updated_at,
        )


class StockIdResponse(BaseModel):
    stock_id: str
