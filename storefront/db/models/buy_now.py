"""Buy-now session model.

A buy-now session is a short-lived checkout draft for a single product.
It snapshots the product name, image and unit price at creation time,
carries the shipping options offered for the product, and expires 24
hours after creation. An order can only be created from an active
session; confirming that order completes the session.
"""

import enum
from datetime import datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UTCDateTime, UUIDPrimaryKeyMixin, as_utc, generate_repr, utcnow

SESSION_TTL = timedelta(hours=24)


class BuyNowSessionStatus(str, enum.Enum):
    """Lifecycle of a buy-now session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


def default_expiry() -> datetime:
    return utcnow() + SESSION_TTL


class BuyNowSession(Base, UUIDPrimaryKeyMixin):
    """Checkout draft for one product."""

    __tablename__ = "buy_now_sessions"

    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    selected_size: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    shipping_options: Mapped[List[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BuyNowSessionStatus.ACTIVE.value,
        server_default=BuyNowSessionStatus.ACTIVE.value,
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=default_expiry)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_buy_now_sessions_user_id", "user_id"),
        Index("idx_buy_now_sessions_product_id", "product_id"),
        Index("idx_buy_now_sessions_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == BuyNowSessionStatus.ACTIVE.value

    def is_past_expiry(self, now: Optional[datetime] = None) -> bool:
        return as_utc(self.expires_at) <= (now or utcnow())

    @property
    def subtotal(self) -> float:
        return float(self.unit_price or 0) * int(self.quantity or 1)

    def shipping_option(self, option_id: str) -> Optional[dict[str, Any]]:
        for option in self.shipping_options or []:
            if option.get("id") == option_id:
                return option
        return None

    def __repr__(self) -> str:
        return generate_repr(self, "id", "product_id", "status")
