from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date

from app.api.deps import get_order_service, json_body
from app.core.auth import get_current_identity, require_admin
from app.core.errors import RequestValidationFailed
from app.db.models import OrderStatus
from app.schemas import (
    ApiResponse, CreateFromCartData, OrderPage, Pagination, ShippingQuoteRequest,
    order_read, order_summary,
)
from app.services.orders import OrderService, shipping_quote
from app.validation.orders import validate_cancel, validate_create_from_cart, validate_update_status

router = APIRouter()

def _checked(result):
    if not result.ok:
        raise RequestValidationFailed(list(result.violations))
    return result.values

def _page(orders, total, limit, offset, admin=False) -> OrderPage:
    return OrderPage(
        orders=[order_summary(o, admin=admin) for o in orders],
        pagination=Pagination(limit=limit, offset=offset, total=total),
    )

# --- customer ---

@router.post("/v1/orders", response_model=ApiResponse, status_code=201)
def create_order_from_cart(
    payload: dict = Depends(json_body),
    identity: dict = Depends(get_current_identity),
    svc: OrderService = Depends(get_order_service),
):
    data = CreateFromCartData.from_values(_checked(validate_create_from_cart(payload)))
    order = svc.create_from_cart(identity["sub"], data)
    return ApiResponse(message="Order created", data=order_read(order))

@router.get("/v1/orders", response_model=ApiResponse)
def list_my_orders(
    estado: Optional[OrderStatus] = Query(default=None),
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    identity: dict = Depends(get_current_identity),
    svc: OrderService = Depends(get_order_service),
):
    orders, total, lim, off = svc.list_for_user(identity["sub"], status=estado, limit=limit, offset=offset)
    return ApiResponse(message="Orders fetched", data=_page(orders, total, lim, off))

@router.get("/v1/orders/stats", response_model=ApiResponse)
def my_order_stats(identity: dict = Depends(get_current_identity), svc: OrderService = Depends(get_order_service)):
    return ApiResponse(message="Stats fetched", data=svc.stats(user_email=identity["sub"]))

@router.post("/v1/orders/shipping-quote", response_model=ApiResponse)
def quote_shipping(payload: ShippingQuoteRequest, identity: dict = Depends(get_current_identity)):
    return ApiResponse(message="Shipping cost calculated", data=shipping_quote(payload.subtotal_cents))

@router.get("/v1/orders/{order_id}", response_model=ApiResponse)
def get_my_order(order_id: int, identity: dict = Depends(get_current_identity), svc: OrderService = Depends(get_order_service)):
    order = svc.get_for_user(order_id, identity["sub"])
    return ApiResponse(message="Order fetched", data=order_read(order))

@router.post("/v1/orders/{order_id}/cancel", response_model=ApiResponse)
def cancel_my_order(
    order_id: int,
    payload: dict = Depends(json_body),
    identity: dict = Depends(get_current_identity),
    svc: OrderService = Depends(get_order_service),
):
    values = _checked(validate_cancel(payload))
    order = svc.cancel(order_id, identity["sub"], reason=values.get("reason"))
    return ApiResponse(message="Order cancelled", data=order_read(order))

# --- admin ---

@router.get("/v1/admin/orders", response_model=ApiResponse)
def list_all_orders(
    estado: Optional[OrderStatus] = Query(default=None),
    user_email: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    order_by: str = "created_at",
    order_dir: str = "DESC",
    _admin=Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    orders, total, lim, off = svc.list_all(
        status=estado, user_email=user_email, date_from=date_from, date_to=date_to,
        limit=limit, offset=offset, order_by=order_by, order_dir=order_dir,
    )
    return ApiResponse(message="Orders fetched", data=_page(orders, total, lim, off, admin=True))

@router.get("/v1/admin/orders/stats", response_model=ApiResponse)
def all_order_stats(_admin=Depends(require_admin), svc: OrderService = Depends(get_order_service)):
    return ApiResponse(message="Stats fetched", data=svc.stats())

@router.get("/v1/admin/orders/{order_id}", response_model=ApiResponse)
def get_any_order(order_id: int, _admin=Depends(require_admin), svc: OrderService = Depends(get_order_service)):
    return ApiResponse(message="Order fetched", data=order_read(svc.get(order_id), admin=True))

@router.patch("/v1/admin/orders/{order_id}/status", response_model=ApiResponse)
def update_order_status(
    order_id: int,
    payload: dict = Depends(json_body),
    _admin=Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    values = _checked(validate_update_status(payload))
    order = svc.update_status(order_id, values["estado"], notes=values.get("notas"))
    return ApiResponse(message="Order status updated", data=order_read(order, admin=True))
