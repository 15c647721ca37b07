from pydantic import BaseModel, Field
from typing import Any, Optional, List, Mapping
from datetime import datetime

from app.db.models import Order, OrderStatus, PaymentMethod
from app.helpers.urls import absolute_url, order_url

class ApiResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: Any = None

# --- inputs, built from already validated bodies ---

class CreateFromCartData(BaseModel):
    shipping_address_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> "CreateFromCartData":
        return cls(
            shipping_address_id=values.get("direccionEnvioId"),
            payment_method=values.get("metodoPago"),
            payment_reference=values.get("referenciaPago") or None,
            notes=values.get("notas") or None,
        )

class ShippingQuoteRequest(BaseModel):
    subtotal_cents: int = Field(ge=0)

# --- outputs ---

class OrderItemRead(BaseModel):
    product_id: int
    qty: int
    unit_price_cents: int
    subtotal_cents: int
    title: str
    image_url: Optional[str] = None

class OrderSummary(BaseModel):
    id: int
    order_number: str
    status: OrderStatus
    total_cents: int
    currency: str
    payment_method: Optional[PaymentMethod] = None
    items_count: int
    created_at: datetime
    updated_at: datetime
    links: dict[str, str]

class OrderRead(OrderSummary):
    user_email: str
    shipping_address_id: Optional[str] = None
    subtotal_cents: int
    shipping_cents: int
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    items: List[OrderItemRead] = []

class Pagination(BaseModel):
    limit: int
    offset: int
    total: int

class OrderPage(BaseModel):
    orders: List[OrderSummary]
    pagination: Pagination

class OrderStats(BaseModel):
    total_orders: int = 0
    by_status: dict[str, int] = {}
    total_spent_cents: int = 0
    average_order_value_cents: int = 0

class ShippingQuote(BaseModel):
    subtotal_cents: int
    shipping_cents: int
    total_cents: int
    free_shipping: bool
    currency: str

def _summary_fields(order: Order, admin: bool) -> dict:
    return dict(
        id=order.id,
        order_number=order.order_number,
        status=order.status,
        total_cents=order.total_cents,
        currency=order.currency,
        payment_method=order.payment_method,
        items_count=len(order.items),
        created_at=order.created_at,
        updated_at=order.updated_at,
        links={"self": order_url(order.id, admin=admin)},
    )

def order_summary(order: Order, admin: bool = False) -> OrderSummary:
    return OrderSummary(**_summary_fields(order, admin))

def order_read(order: Order, admin: bool = False) -> OrderRead:
    return OrderRead(
        **_summary_fields(order, admin),
        user_email=order.user_email,
        shipping_address_id=order.shipping_address_id,
        subtotal_cents=order.subtotal_cents,
        shipping_cents=order.shipping_cents,
        payment_reference=order.payment_reference,
        notes=order.notes,
        cancellation_reason=order.cancellation_reason,
        items=[
            OrderItemRead(
                product_id=it.product_id,
                qty=it.qty,
                unit_price_cents=it.unit_price_cents,
                subtotal_cents=it.subtotal_cents,
                title=it.title_snapshot,
                image_url=absolute_url(it.image_path),
            )
            for it in order.items
        ],
    )
