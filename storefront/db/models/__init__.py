"""SQLAlchemy models for Storefront.

This package contains the ORM models for the catalogue, customer
engagement (ratings, comments), checkout sessions and orders.
"""

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin, utcnow
from .buy_now import SESSION_TTL, BuyNowSession, BuyNowSessionStatus
from .category import Category
from .comment import ProductComment
from .order import GIFT_BOX_FEE, MAX_BARGAIN_RATIO, Order, OrderItem, OrderStatus
from .product import Product, ProductFeature, ProductImage, ProductSize, ShippingRule
from .rating import ProductRating
from .user import User, UserRole, UserStatus

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "IntegerPrimaryKeyMixin",
    "UTCDateTime",
    "utcnow",
    # Accounts
    "User",
    "UserRole",
    "UserStatus",
    # Catalogue
    "Category",
    "Product",
    "ProductImage",
    "ProductFeature",
    "ProductSize",
    "ShippingRule",
    # Engagement
    "ProductRating",
    "ProductComment",
    # Checkout
    "BuyNowSession",
    "BuyNowSessionStatus",
    "SESSION_TTL",
    "Order",
    "OrderItem",
    "OrderStatus",
    "GIFT_BOX_FEE",
    "MAX_BARGAIN_RATIO",
]
