"""Order lifecycle: creation from the cart, cancellation, admin status
changes and payment confirmation.

Request bodies reaching this layer have already passed ``app.validation``.
Whether a transition is allowed is decided here: customers may only cancel
orders that are still ``pendiente``; admins may set any status (no transition
table is enforced on that path).
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from kafka.errors import KafkaError
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import EmptyCart, OrderAccessDenied, OrderNotCancellable, OrderNotFound, OrderServiceError
from app.core.logging import get_logger
from app.db.models import Order, OrderItem, OrderStatus
from app.schemas import CreateFromCartData, OrderStats, ShippingQuote

logger = get_logger(__name__)

USER_PAGE_DEFAULT, USER_PAGE_MAX = 20, 100
ADMIN_PAGE_DEFAULT, ADMIN_PAGE_MAX = 50, 1000
ADMIN_ORDER_BY = {
    "created_at": Order.created_at,
    "total": Order.total_cents,
    "status": Order.status,
    "order_number": Order.order_number,
}
ORDER_NUMBER_ATTEMPTS = 3


class CartStore(Protocol):
    def get_items(self, email: str) -> List[Dict[str, Any]]: ...
    def clear(self, email: str) -> None: ...


class Inventory(Protocol):
    def reserve(self, items: List[Dict]) -> None: ...
    def commit(self, items: List[Dict]) -> None: ...
    def release(self, items: List[Dict]) -> None: ...


class EventPublisher(Protocol):
    def publish(self, event: dict) -> None: ...


def clamp_page(limit: Any, offset: Any, default: int, maximum: int) -> Tuple[int, int]:
    """Coerce paging params the way the API always has: bad input falls back to defaults."""
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = default
    try:
        offset = int(offset)
    except (TypeError, ValueError):
        offset = 0
    if limit <= 0:
        limit = default
    return max(1, min(maximum, limit)), max(0, offset)


def shipping_cost(subtotal_cents: int) -> int:
    if subtotal_cents >= settings.FREE_SHIPPING_THRESHOLD_CENTS:
        return 0
    return settings.SHIPPING_FLAT_CENTS


def shipping_quote(subtotal_cents: int) -> ShippingQuote:
    cost = shipping_cost(subtotal_cents)
    return ShippingQuote(
        subtotal_cents=subtotal_cents,
        shipping_cents=cost,
        total_cents=subtotal_cents + cost,
        free_shipping=cost == 0,
        currency=settings.CURRENCY,
    )


def _cart_line(raw: Dict[str, Any]) -> Dict[str, Any]:
    qty = int(raw["qty"])
    unit = int(raw["unit_price_cents"])
    return {
        "product_id": int(raw["product_id"]),
        "qty": qty,
        "unit_price_cents": unit,
        "subtotal_cents": qty * unit,
        "title": raw.get("title") or "",
        "image_path": raw.get("image") or raw.get("image_url") or None,
    }


def _stock_lines(order: Order) -> List[Dict]:
    return [{"product_id": it.product_id, "qty": it.qty} for it in order.items]


class OrderService:
    def __init__(self, db: Session, cart: CartStore | None = None, inventory: Inventory | None = None,
                 events: EventPublisher | None = None):
        self.db = db
        self.cart = cart
        self.inventory = inventory
        self.events = events

    # --- queries ---

    def get(self, order_id: int) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFound()
        return order

    def get_for_user(self, order_id: int, user_email: str) -> Order:
        order = self.get(order_id)
        if order.user_email != user_email:
            raise OrderAccessDenied()
        return order

    def list_for_user(self, user_email: str, status: Optional[OrderStatus] = None,
                      limit: Any = USER_PAGE_DEFAULT, offset: Any = 0) -> Tuple[List[Order], int, int, int]:
        limit, offset = clamp_page(limit, offset, USER_PAGE_DEFAULT, USER_PAGE_MAX)
        conditions = [Order.user_email == user_email]
        if status is not None:
            conditions.append(Order.status == status)
        return self._page(conditions, Order.created_at.desc(), limit, offset)

    def list_all(self, status: Optional[OrderStatus] = None, user_email: Optional[str] = None,
                 date_from: Optional[date] = None, date_to: Optional[date] = None,
                 limit: Any = ADMIN_PAGE_DEFAULT, offset: Any = 0,
                 order_by: str = "created_at", order_dir: str = "DESC") -> Tuple[List[Order], int, int, int]:
        limit, offset = clamp_page(limit, offset, ADMIN_PAGE_DEFAULT, ADMIN_PAGE_MAX)
        conditions = []
        if status is not None:
            conditions.append(Order.status == status)
        if user_email:
            conditions.append(Order.user_email == user_email)
        if date_from:
            conditions.append(Order.created_at >= datetime.combine(date_from, time.min))
        if date_to:
            conditions.append(Order.created_at < datetime.combine(date_to + timedelta(days=1), time.min))
        column = ADMIN_ORDER_BY.get(order_by, Order.created_at)
        ordering = column.asc() if str(order_dir).upper() == "ASC" else column.desc()
        return self._page(conditions, ordering, limit, offset)

    def _page(self, conditions, ordering, limit: int, offset: int):
        total = self.db.scalar(select(func.count(Order.id)).where(*conditions)) or 0
        rows = self.db.scalars(
            select(Order).where(*conditions).order_by(ordering, Order.id.desc()).limit(limit).offset(offset)
        ).all()
        return list(rows), total, limit, offset

    def stats(self, user_email: Optional[str] = None) -> OrderStats:
        q = select(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_cents), 0))
        if user_email:
            q = q.where(Order.user_email == user_email)
        rows = self.db.execute(q.group_by(Order.status)).all()

        by_status = {s.value: 0 for s in OrderStatus}
        spent, counted = 0, 0
        for status, count, total in rows:
            status = OrderStatus(status)
            by_status[status.value] = count
            if status not in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
                spent += int(total)
                counted += count
        return OrderStats(
            total_orders=sum(by_status.values()),
            by_status=by_status,
            total_spent_cents=spent,
            average_order_value_cents=spent // counted if counted else 0,
        )

    # --- commands ---

    def create_from_cart(self, user_email: str, data: CreateFromCartData) -> Order:
        lines = [_cart_line(it) for it in self.cart.get_items(user_email)]
        lines = [ln for ln in lines if ln["qty"] > 0]
        if not lines:
            raise EmptyCart()

        self.inventory.reserve(lines)

        subtotal = sum(ln["subtotal_cents"] for ln in lines)
        shipping = shipping_cost(subtotal)
        try:
            order = self._insert_order(user_email, data, lines, subtotal, shipping)
        except SQLAlchemyError:
            logger.error("order insert failed, releasing reservation", user=user_email, exc_info=True)
            self.inventory.release(lines)
            raise

        try:
            self.cart.clear(user_email)
        except RedisError:
            logger.error("could not clear cart after order", order_id=order.id, user=user_email, exc_info=True)

        logger.info("order created", order_id=order.id, order_number=order.order_number, total_cents=order.total_cents)
        self._publish({
            "type": "order.created",
            "order_id": order.id,
            "order_number": order.order_number,
            "user_email": user_email,
            "status": order.status.value,
            "amount_cents": order.total_cents,
            "currency": order.currency,
            "items": [
                {"product_id": ln["product_id"], "qty": ln["qty"], "unit_price_cents": ln["unit_price_cents"]}
                for ln in lines
            ],
        })
        return order

    def _insert_order(self, user_email, data: CreateFromCartData, lines, subtotal: int, shipping: int) -> Order:
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            order = Order(
                order_number=self._next_order_number(),
                user_email=user_email,
                shipping_address_id=data.shipping_address_id,
                status=OrderStatus.PENDING,
                subtotal_cents=subtotal,
                shipping_cents=shipping,
                total_cents=subtotal + shipping,
                currency=settings.CURRENCY,
                payment_method=data.payment_method,
                payment_reference=data.payment_reference,
                notes=data.notes,
                items=[
                    OrderItem(
                        product_id=ln["product_id"],
                        qty=ln["qty"],
                        unit_price_cents=ln["unit_price_cents"],
                        subtotal_cents=ln["subtotal_cents"],
                        title_snapshot=ln["title"],
                        image_path=ln["image_path"],
                    )
                    for ln in lines
                ],
            )
            self.db.add(order)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if attempt == ORDER_NUMBER_ATTEMPTS:
                    raise
                logger.warning("order number taken, retrying", attempt=attempt)
                continue
            self.db.refresh(order)
            return order

    def _next_order_number(self) -> str:
        prefix = "ORD-" + datetime.now(timezone.utc).strftime("%Y%m%d") + "-"
        taken = self.db.scalar(select(func.count(Order.id)).where(Order.order_number.like(prefix + "%"))) or 0
        return f"{prefix}{taken + 1:04d}"

    def cancel(self, order_id: int, user_email: str, reason: Optional[str] = None) -> Order:
        order = self.get_for_user(order_id, user_email)
        if order.status != OrderStatus.PENDING:
            raise OrderNotCancellable(order.status.value)

        lines = _stock_lines(order)
        order.status = OrderStatus.CANCELLED
        order.cancellation_reason = reason or None
        # persist first: a failed commit must leave the reservation untouched
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        try:
            self.inventory.release(lines)
        except OrderServiceError:
            logger.error("inventory release failed, reopening order", order_id=order.id, exc_info=True)
            order.status = OrderStatus.PENDING
            order.cancellation_reason = None
            self.db.commit()
            raise
        self.db.refresh(order)

        logger.info("order cancelled", order_id=order.id, by=user_email)
        self._publish({
            "type": "order.cancelled",
            "order_id": order.id,
            "order_number": order.order_number,
            "user_email": order.user_email,
            "reason": order.cancellation_reason,
        })
        return order

    def update_status(self, order_id: int, status: OrderStatus | str, notes: Optional[str] = None) -> Order:
        order = self.get(order_id)
        previous = order.status
        order.status = OrderStatus(status)
        if notes:
            order.notes = notes
        self.db.commit()
        self.db.refresh(order)

        if previous != order.status:
            logger.info("order status changed", order_id=order.id, previous=previous.value, status=order.status.value)
            self._status_changed(order, previous)
        return order

    def confirm_payment(self, order_id: int) -> Optional[Order]:
        order = self.db.get(Order, order_id)
        if order is None:
            logger.warning("payment for unknown order", order_id=order_id)
            return None
        if order.status != OrderStatus.PENDING:
            logger.info("payment for order not pending, ignoring", order_id=order_id, status=order.status.value)
            return order

        lines = _stock_lines(order)
        order.status = OrderStatus.CONFIRMED
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(order)
        self._status_changed(order, OrderStatus.PENDING)
        try:
            self.inventory.commit(lines)
        except OrderServiceError:
            # payment went through, so the order stays confirmed
            logger.error("inventory commit failed for confirmed order", order_id=order.id, exc_info=True)
            raise
        return order

    def _status_changed(self, order: Order, previous: OrderStatus) -> None:
        self._publish({
            "type": "order.status_changed",
            "order_id": order.id,
            "order_number": order.order_number,
            "user_email": order.user_email,
            "previous_status": previous.value,
            "status": order.status.value,
        })

    def _publish(self, event: dict) -> None:
        if self.events is None:
            return
        try:
            self.events.publish(event)
        except KafkaError:
            # order is already committed at this point
            logger.error("failed to publish order event", type=event["type"], order_id=event["order_id"], exc_info=True)
