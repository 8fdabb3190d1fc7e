"""Product comment model."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Index, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, UTCDateTime, generate_repr, utcnow

if TYPE_CHECKING:
    from .product import Product
    from .user import User


class ProductComment(Base, IntegerPrimaryKeyMixin):
    """Free-text comment left on a product by a signed-in user.

    ``user_id`` is nulled when the author account is deleted; such
    comments are shown as written by "Anonymous".
    """

    __tablename__ = "product_comments"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    comment_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    product: Mapped["Product"] = relationship("Product", back_populates="comments")
    user: Mapped[Optional["User"]] = relationship("User", back_populates="comments")

    __table_args__ = (
        Index("ix_product_comments_product_created", "product_id", "created_at"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "product_id", "user_id")
