"""Factory Boy factories for Storefront database models.

Usage:
    from tests.factories import UserFactory, ProductFactory

    # Create without saving to database
    user = UserFactory.build()

For async tests, use the async_create helper:
    product = await ProductFactory.async_create(session, stock=2)
"""

from .base import AsyncSQLAlchemyFactory, generate_uuid
from .catalog import CategoryFactory, ProductFactory
from .checkout import BuyNowSessionFactory, OrderFactory
from .user import DEFAULT_PASSWORD, UserFactory

__all__ = [
    "AsyncSQLAlchemyFactory",
    "generate_uuid",
    "UserFactory",
    "DEFAULT_PASSWORD",
    "CategoryFactory",
    "ProductFactory",
    "BuyNowSessionFactory",
    "OrderFactory",
]
