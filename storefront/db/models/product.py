"""Product catalogue models.

A Product owns ordered child rows for images, feature bullets and sizes,
plus at most one ShippingRule overriding the default delivery charges.
All children are deleted with their product.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, UTCDateTime, generate_repr

if TYPE_CHECKING:
    from .category import Category
    from .comment import ProductComment
    from .rating import ProductRating


class Product(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A sellable product.

    Attributes:
        name: Display name
        category_id: Owning category
        tag: Merchandising tag (exclusive-offer, best-selling, new-arrival, accessories)
        price: Current unit price
        old_price: Struck-through price, only kept for exclusive offers
        stock: Units on hand (never negative)
        exclusive_offer_end: When an exclusive offer stops being shown
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    tag: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    old_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    description_short: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_long: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    exclusive_offer_end: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    # Relationships
    category: Mapped[Optional["Category"]] = relationship("Category", back_populates="products")
    images: Mapped[List["ProductImage"]] = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.id",
    )
    features: Mapped[List["ProductFeature"]] = relationship(
        "ProductFeature",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductFeature.id",
    )
    sizes: Mapped[List["ProductSize"]] = relationship(
        "ProductSize",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductSize.id",
    )
    shipping_rule: Mapped[Optional["ShippingRule"]] = relationship(
        "ShippingRule",
        back_populates="product",
        cascade="all, delete-orphan",
        uselist=False,
    )
    ratings: Mapped[List["ProductRating"]] = relationship(
        "ProductRating",
        back_populates="product",
        cascade="all, delete-orphan",
    )
    comments: Mapped[List["ProductComment"]] = relationship(
        "ProductComment",
        back_populates="product",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_products_category_id", "category_id"),
        Index("ix_products_tag", "tag"),
    )

    @property
    def main_image(self) -> Optional[str]:
        return self.images[0].image_url if self.images else None

    def __repr__(self) -> str:
        return generate_repr(self, "id", "name", "stock")


class ProductImage(Base, IntegerPrimaryKeyMixin):
    """Image path of a product, stored relative to the upload root."""

    __tablename__ = "product_images"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="images")

    def __repr__(self) -> str:
        return generate_repr(self, "id", "image_url")


class ProductFeature(Base, IntegerPrimaryKeyMixin):
    """One feature bullet of a product."""

    __tablename__ = "product_features"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feature_text: Mapped[str] = mapped_column(Text, nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="features")


class ProductSize(Base, IntegerPrimaryKeyMixin):
    """One selectable size label of a product."""

    __tablename__ = "product_sizes"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    size_text: Mapped[str] = mapped_column(String(100), nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="sizes")


class ShippingRule(Base, IntegerPrimaryKeyMixin):
    """Per-product delivery charges and descriptions."""

    __tablename__ = "shipping_rules"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    courier_charge: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    courier_desc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    home_delivery_charge: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    home_delivery_desc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    outside_valley_charge: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    outside_valley_desc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    product: Mapped["Product"] = relationship("Product", back_populates="shipping_rule")

    def as_dict(self) -> dict:
        return {
            "courier_charge": self.courier_charge,
            "courier_desc": self.courier_desc,
            "home_delivery_charge": self.home_delivery_charge,
            "home_delivery_desc": self.home_delivery_desc,
            "outside_valley_charge": self.outside_valley_charge,
            "outside_valley_desc": self.outside_valley_desc,
        }
