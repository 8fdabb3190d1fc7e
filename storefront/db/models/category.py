"""Product category model."""

from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, generate_repr

if TYPE_CHECKING:
    from .product import Product


class Category(Base, IntegerPrimaryKeyMixin):
    """A storefront category addressed by its URL slug (men, women, kids, ...)."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    products: Mapped[List["Product"]] = relationship(
        "Product",
        back_populates="category",
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "slug")
