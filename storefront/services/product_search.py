"""Keyword product search and suggestions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Category, Product
from storefront.exceptions import ValidationError
from storefront.services.catalog import normalize_image_path

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 100
QUICK_LIMIT = 6
FULL_LIMIT = 100
SUGGESTION_LIMIT = 4

SEARCH_TYPES = ("quick", "full")


@dataclass
class SearchQuery:
    text: str
    type: str = "quick"

    @property
    def limit(self) -> int:
        return FULL_LIMIT if self.type == "full" else QUICK_LIMIT


def validate_search_query(raw: Optional[str], search_type: Optional[str] = None) -> SearchQuery:
    """Trim, strip angle brackets and bound the length of a search term.

    Raises:
        ValidationError: If the cleaned term is shorter than 2 or longer than 100 characters.
    """
    if raw is None or not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Search query is required")
    text = raw.strip().replace("<", "").replace(">", "").strip()
    if len(text) < MIN_QUERY_LENGTH:
        raise ValidationError(f"Search query must be at least {MIN_QUERY_LENGTH} characters")
    if len(text) > MAX_QUERY_LENGTH:
        raise ValidationError(f"Search query must not exceed {MAX_QUERY_LENGTH} characters")
    kind = (search_type or "quick").strip().lower()
    return SearchQuery(text=text, type=kind if kind in SEARCH_TYPES else "quick")


def search_result(product: Product) -> Dict[str, Any]:
    category = product.category
    return {
        "id": product.id,
        "name": product.name,
        "price": float(product.price or 0),
        "oldPrice": float(product.old_price) if product.old_price is not None else None,
        "image": normalize_image_path(product.main_image),
        "category": category.name if category else "Uncategorized",
        "categorySlug": category.slug if category else None,
        "stock": product.stock or 0,
    }


def rank_key(name: str, term: str):
    """Prefix matches first, then earlier match position, then shorter names."""
    lowered = (name or "").lower()
    position = lowered.find(term)
    return (0 if position == 0 else 1, position if position >= 0 else len(lowered), len(lowered))


def _options():
    return (selectinload(Product.category), selectinload(Product.images))


async def search_products(session: AsyncSession, query: SearchQuery) -> Dict[str, Any]:
    term = query.text.lower()
    pattern = f"%{term}%"

    name_matches = (
        await session.execute(select(Product).where(Product.name.ilike(pattern)).options(*_options()))
    ).scalars().all()
    ranked = sorted(name_matches, key=lambda p: rank_key(p.name, term))

    category_matches = (
        await session.execute(
            select(Product)
            .join(Category, Category.id == Product.category_id)
            .where(Category.name.ilike(pattern))
            .options(*_options())
            .order_by(Product.id.desc())
            .limit(query.limit)
        )
    ).scalars().all()

    seen = set()
    merged: List[Product] = []
    for product in [*ranked, *category_matches]:
        if product.id in seen:
            continue
        seen.add(product.id)
        merged.append(product)

    products = [search_result(p) for p in merged[: query.limit]]
    return {
        "success": True,
        "query": query.text,
        "type": query.type,
        "count": len(products),
        "products": products,
    }


async def suggestions(session: AsyncSession) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Product).options(*_options()).order_by(Product.id.desc()).limit(SUGGESTION_LIMIT)
    )
    return [search_result(p) for p in result.scalars().all()]
