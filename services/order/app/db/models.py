from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, DateTime, ForeignKey, BigInteger, Enum as SAEnum
from datetime import datetime, timezone
from enum import Enum
from app.db.session import Base

class OrderStatus(str, Enum):
    PENDING = "pendiente"
    CONFIRMED = "confirmada"
    IN_PROCESS = "en_proceso"
    SHIPPED = "enviada"
    DELIVERED = "entregada"
    CANCELLED = "cancelada"
    REFUNDED = "reembolsada"

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})

class PaymentMethod(str, Enum):
    CASH = "efectivo"
    CARD = "tarjeta"
    TRANSFER = "transferencia"
    ELECTRONIC = "pse"

def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def _enum(cls, name: str) -> SAEnum:
    # store the wire values ("pendiente"), not the member names
    return SAEnum(cls, name=name, values_callable=lambda e: [m.value for m in e], validate_strings=True)

class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    user_email: Mapped[str] = mapped_column(String(255), index=True)
    shipping_address_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    status: Mapped[OrderStatus] = mapped_column(_enum(OrderStatus, "order_status"), default=OrderStatus.PENDING, index=True)
    subtotal_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    shipping_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    total_cents: Mapped[int] = mapped_column(BigInteger)
    currency: Mapped[str] = mapped_column(String(3), default="COP")
    payment_method: Mapped[PaymentMethod | None] = mapped_column(_enum(PaymentMethod, "payment_method"), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow, onupdate=_utcnow)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

class OrderItem(Base):
    __tablename__ = "order_items"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    product_id: Mapped[int] = mapped_column(Integer)
    qty: Mapped[int] = mapped_column(Integer)
    unit_price_cents: Mapped[int] = mapped_column(BigInteger)
    subtotal_cents: Mapped[int] = mapped_column(BigInteger)
    title_snapshot: Mapped[str] = mapped_column(String(255))
    image_path: Mapped[str | None] = mapped_column(String(512), nullable=True)

    order = relationship("Order", back_populates="items")
