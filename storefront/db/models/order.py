"""Order and order item models.

Orders snapshot everything needed to render and audit them later: the
product name, image and unit price at purchase time, the shipping
charge, the gift-box fee, the bargain discount, and the customer's
contact details. Later catalogue edits never change an existing order.

``status`` is stored as text. Rows written by older releases may hold
lowercase legacy values (``pending``, ``confirmed``, ...); see
``storefront.services.order_status.normalize_status``.
"""

import enum
import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin, generate_repr

GIFT_BOX_FEE = 20.0
MAX_BARGAIN_RATIO = 0.10


class OrderStatus(str, enum.Enum):
    """Order lifecycle states."""

    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    PLACED = "PLACED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class Order(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A customer order for one product line.

    Attributes:
        session_id: Buy-now session the order was created from
        user_id: Ordering account, null for guest checkout
        status: OrderStatus value (legacy lowercase values tolerated)
        subtotal: unit_price_snapshot * quantity
        total: subtotal - bargain_discount + shipping + gift box + tax
    """

    __tablename__ = "orders"

    session_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("buy_now_sessions.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Product snapshot
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    selected_size: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price_snapshot: Mapped[float] = mapped_column(Float, nullable=False)

    # Shipping and extras
    shipping_type: Mapped[str] = mapped_column(String(50), nullable=False)
    shipping_charge_snapshot: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    shipping_method_label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gift_box: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    gift_box_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    bargain_discount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    bargain_final_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bargain_chat_log: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    tax_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    total: Mapped[float] = mapped_column(Float, nullable=False)

    # Customer snapshot
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_province: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_city: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=OrderStatus.PENDING_CONFIRMATION.value,
    )

    # Lifecycle timestamps
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.product_name_snapshot",
    )

    __table_args__ = (
        Index("idx_orders_user_id", "user_id"),
        Index("idx_orders_product_id", "product_id"),
        Index("idx_orders_session_id", "session_id"),
        Index("idx_orders_status", "status"),
        Index("idx_orders_created_at", "created_at"),
    )

    @property
    def customer_name(self) -> str:
        name = f"{self.customer_first_name or ''} {self.customer_last_name or ''}".strip()
        return name or "Guest"

    def __repr__(self) -> str:
        return generate_repr(self, "id", "status", "total")


class OrderItem(Base, UUIDPrimaryKeyMixin):
    """Line item snapshot written when an order is confirmed."""

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name_snapshot: Mapped[str] = mapped_column(String(255), nullable=False)
    product_image_snapshot: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_snapshot: Mapped[float] = mapped_column(Float, nullable=False)
    line_total_snapshot: Mapped[float] = mapped_column(Float, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (
        Index("idx_order_items_order_id", "order_id"),
        Index("idx_order_items_product_id", "product_id"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "order_id", "quantity")
