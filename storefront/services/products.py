"""Read-side product queries for the public storefront.

Every listing carries ``avg_rating`` (0 when unrated), ``rating_count``
and ``main_image`` (the first image, normalized for the browser).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Category, Product, ProductRating
from storefront.db.models.base import utcnow
from storefront.exceptions import NotFoundError
from storefront.services.catalog import (
    ACCESSORIES,
    BEST_SELLING,
    EXCLUSIVE_OFFER,
    NEW_ARRIVAL,
    get_category_by_slug,
    normalize_image_path,
)

RECOMMENDATION_LIMIT = 6
SIMPLE_CATEGORIES = ("glasses", "grocery")
FALLBACK_TAGS = (NEW_ARRIVAL, BEST_SELLING, ACCESSORIES)


def _rating_stats():
    return (
        select(
            ProductRating.product_id.label("product_id"),
            func.avg(ProductRating.rating).label("avg_rating"),
            func.count(ProductRating.id).label("rating_count"),
        )
        .group_by(ProductRating.product_id)
        .subquery()
    )


def _listing_query() -> Select:
    stats = _rating_stats()
    query = (
        select(
            Product,
            func.coalesce(stats.c.avg_rating, 0).label("avg_rating"),
            func.coalesce(stats.c.rating_count, 0).label("rating_count"),
        )
        .outerjoin(stats, stats.c.product_id == Product.id)
        .options(selectinload(Product.images))
    )
    return query


def product_card(product: Product, avg_rating: Any = 0, rating_count: Any = 0) -> Dict[str, Any]:
    """Listing shape shared by category pages, offers and recommendations."""
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "old_price": product.old_price,
        "tag": product.tag,
        "stock": product.stock or 0,
        "category_id": product.category_id,
        "description_short": product.description_short,
        "exclusive_offer_end": (
            product.exclusive_offer_end.isoformat() if product.exclusive_offer_end else None
        ),
        "avg_rating": round(float(avg_rating or 0), 2),
        "rating_count": int(rating_count or 0),
        "images": [normalize_image_path(i.image_url) for i in product.images],
        "main_image": normalize_image_path(product.main_image),
    }


async def _cards(session: AsyncSession, query: Select) -> List[Dict[str, Any]]:
    result = await session.execute(query)
    return [product_card(product, avg, count) for product, avg, count in result.all()]


async def _require_category(session: AsyncSession, slug: str) -> Category:
    category = await get_category_by_slug(session, slug)
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def latest_in_category(session: AsyncSession, slug: str, limit: int = 6) -> List[Dict[str, Any]]:
    """Newest products of a category, for the homepage rows."""
    category = await _require_category(session, slug)
    query = _listing_query()
    query = query.where(Product.category_id == category.id).order_by(Product.id.desc()).limit(limit)
    return await _cards(session, query)


async def products_in_category(session: AsyncSession, slug: str) -> List[Dict[str, Any]]:
    category = await _require_category(session, slug)
    query = _listing_query()
    query = query.where(Product.category_id == category.id).order_by(Product.id.desc())
    return await _cards(session, query)


async def category_sections(session: AsyncSession, slug: str) -> Dict[str, Any]:
    """Group a category's products into the category page sections."""
    products = await products_in_category(session, slug)
    return {
        "bestSelling": [p for p in products if p["tag"] == BEST_SELLING],
        "newArrivals": [p for p in products if p["tag"] == NEW_ARRIVAL],
        "accessories": [p for p in products if p["tag"] == ACCESSORIES],
        "exclusiveOffer": next((p for p in products if p["tag"] == EXCLUSIVE_OFFER), None),
        "all": products,
    }


async def product_detail(session: AsyncSession, product_id: int) -> Dict[str, Any]:
    """Full product page payload.

    Raises:
        NotFoundError: If the product does not exist.
    """
    result = await session.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(
            selectinload(Product.images),
            selectinload(Product.features),
            selectinload(Product.sizes),
            selectinload(Product.shipping_rule),
        )
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")

    avg_rating, rating_count = await rating_summary(session, product_id)
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "old_price": product.old_price,
        "stock": product.stock or 0,
        "description_short": product.description_short or "",
        "description_long": product.description_long or "",
        "tag": product.tag,
        "category_id": product.category_id,
        "exclusive_offer_end": (
            product.exclusive_offer_end.isoformat() if product.exclusive_offer_end else None
        ),
        "avg_rating": avg_rating,
        "rating_count": rating_count,
        "images": [normalize_image_path(i.image_url) for i in product.images],
        "features": [f.feature_text for f in product.features],
        "sizes": [s.size_text for s in product.sizes],
        "shipping": product.shipping_rule.as_dict() if product.shipping_rule else None,
    }


async def rating_summary(session: AsyncSession, product_id: int) -> Tuple[float, int]:
    """Return ``(average, count)`` of a product's ratings."""
    row = (
        await session.execute(
            select(
                func.coalesce(func.avg(ProductRating.rating), 0),
                func.count(ProductRating.id),
            ).where(ProductRating.product_id == product_id)
        )
    ).one()
    return float(row[0] or 0), int(row[1] or 0)


async def exclusive_offers(session: AsyncSession) -> List[Dict[str, Any]]:
    """Running exclusive offers, soonest-ending first."""
    query = _listing_query()
    query = (
        query.where(
            Product.tag == EXCLUSIVE_OFFER,
            Product.exclusive_offer_end.is_not(None),
            Product.exclusive_offer_end > utcnow(),
            Product.old_price.is_not(None),
            Product.old_price > Product.price,
        )
        .order_by(Product.exclusive_offer_end.asc())
    )
    return await _cards(session, query)


async def _recommendation_batch(
    session: AsyncSession,
    category_id: Optional[int],
    exclude: Sequence[int],
    limit: int,
    tag: Optional[str] = None,
) -> List[Dict[str, Any]]:
    query = _listing_query()
    query = query.where(Product.category_id == category_id, Product.id.not_in(list(exclude)))
    if tag is not None:
        query = query.where(Product.tag == tag)
    query = query.order_by(Product.id.desc()).limit(limit)
    return await _cards(session, query)


async def recommendations(session: AsyncSession, product_id: int) -> Dict[str, Any]:
    """Pick up to six related products from the same category.

    Glasses and grocery have no meaningful tags, so they get the newest
    products of the category. Elsewhere same-tag products come first,
    then the fallback tags in order, then anything in the category.

    Raises:
        NotFoundError: If the product does not exist.
    """
    result = await session.execute(
        select(Product).where(Product.id == product_id).options(selectinload(Product.category))
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")

    category_slug = product.category.slug if product.category else None
    picked: List[Dict[str, Any]] = []
    seen = [product.id]

    def remaining() -> int:
        return RECOMMENDATION_LIMIT - len(picked)

    async def add(tag: Optional[str] = None) -> None:
        batch = await _recommendation_batch(session, product.category_id, seen, remaining(), tag)
        picked.extend(batch)
        seen.extend(card["id"] for card in batch)

    if category_slug in SIMPLE_CATEGORIES:
        await add()
    else:
        if product.tag:
            await add(product.tag)
        for fallback in FALLBACK_TAGS:
            if remaining() <= 0:
                break
            if fallback == product.tag:
                continue
            await add(fallback)
        if remaining() > 0:
            await add()

    return {"recommendations": picked[:RECOMMENDATION_LIMIT], "categorySlug": category_slug}
