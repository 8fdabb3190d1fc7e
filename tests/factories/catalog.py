"""Factories for categories and products."""

from datetime import timedelta

import factory

from storefront.db.models import Category, Product, ProductImage, ShippingRule
from storefront.db.models.base import utcnow

from .base import AsyncSQLAlchemyFactory, generate_uuid


class CategoryFactory(AsyncSQLAlchemyFactory):
    class Meta:
        model = Category

    name = factory.Faker("word")
    slug = factory.LazyFunction(lambda: f"cat-{generate_uuid()}")


class ProductFactory(AsyncSQLAlchemyFactory):
    """Factory for creating Product instances.

    Example:
        product = await ProductFactory.async_create(session, stock=3)
        offer = ProductFactory.build(exclusive=True)
    """

    class Meta:
        model = Product

    name = factory.Faker("catch_phrase")
    price = 1000.0
    stock = 10
    tag = None
    description_short = factory.Faker("sentence")
    category = factory.SubFactory(CategoryFactory)
    images = factory.LazyFunction(lambda: [ProductImage(image_url="/uploads/sample.jpg")])

    class Params:
        exclusive = factory.Trait(
            tag="exclusive-offer",
            old_price=1500.0,
            exclusive_offer_end=factory.LazyFunction(lambda: utcnow() + timedelta(days=3)),
        )

        courier_only = factory.Trait(
            shipping_rule=factory.LazyFunction(
                lambda: ShippingRule(courier_charge=80.0, courier_desc="Pathao courier")
            )
        )
