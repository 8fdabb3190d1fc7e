"""Database package for Storefront.

Subpackages:
    models: SQLAlchemy ORM models
"""

from .models import (
    Base,
    BuyNowSession,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    User,
)

__all__ = [
    "Base",
    "User",
    "Category",
    "Product",
    "BuyNowSession",
    "Order",
    "OrderItem",
    "OrderStatus",
]
