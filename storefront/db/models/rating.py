"""Product rating model: one rating per user per product."""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, generate_repr

if TYPE_CHECKING:
    from .product import Product
    from .user import User


class ProductRating(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A 1-5 star rating."""

    __tablename__ = "product_ratings"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="ratings")
    user: Mapped["User"] = relationship("User", back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("product_id", "user_id", name="product_ratings_product_id_user_id"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_ratings_range"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "product_id", "user_id", "rating")
