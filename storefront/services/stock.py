"""Stock service.

``Product.stock`` is the single source of truth for availability. Every
write path locks the product row (``SELECT ... FOR UPDATE``) for the rest
of the caller's transaction, so concurrent confirmations cannot oversell.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Category, Product
from storefront.exceptions import NotFoundError, StockError
from storefront.logging_config import get_logger
from storefront.services.catalog import normalize_image_path
from storefront.services.pagination import offset_for, paginate

logger = get_logger(__name__)

LOW_STOCK_THRESHOLD = 5
MAX_ADJUSTMENT = 100

IN_STOCK = "in_stock"
LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"


def stock_status(stock: Optional[int]) -> str:
    """Classify a stock level."""
    level = stock or 0
    if level <= 0:
        return OUT_OF_STOCK
    if level <= LOW_STOCK_THRESHOLD:
        return LOW_STOCK
    return IN_STOCK


@dataclass
class StockChange:
    """Result of a stock write."""

    product_id: int
    previous_stock: int
    new_stock: int

    @property
    def delta(self) -> int:
        return self.new_stock - self.previous_stock

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "previousStock": self.previous_stock,
            "newStock": self.new_stock,
            "stockStatus": stock_status(self.new_stock),
        }


async def _lock_product(session: AsyncSession, product_id: int) -> Product:
    result = await session.execute(
        select(Product).where(Product.id == product_id).with_for_update()
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _insufficient(available: int, requested: int) -> StockError:
    return StockError(
        f"Insufficient stock. Only {available} item(s) available.",
        current_stock=available,
        requested=requested,
    )


async def check_stock(session: AsyncSession, product_id: int, quantity: int) -> int:
    """Return the available stock if it covers ``quantity``.

    Raises:
        NotFoundError: If the product does not exist.
        StockError: If fewer than ``quantity`` items are in stock.
    """
    product = await session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    available = product.stock or 0
    if available < quantity:
        raise _insufficient(available, quantity)
    return available


async def decrease_stock(session: AsyncSession, product_id: int, quantity: int) -> StockChange:
    """Take ``quantity`` items out of stock under a row lock.

    Raises:
        NotFoundError: If the product does not exist.
        StockError: If fewer than ``quantity`` items are in stock.
    """
    product = await _lock_product(session, product_id)
    current = product.stock or 0
    if current < quantity:
        raise _insufficient(current, quantity)

    product.stock = current - quantity
    await session.flush()
    logger.info(
        "Stock decreased",
        extra={"product_id": product_id, "quantity": quantity, "new_stock": product.stock},
    )
    return StockChange(product_id=product_id, previous_stock=current, new_stock=product.stock)


async def restore_stock(session: AsyncSession, product_id: int, quantity: int) -> StockChange:
    """Put ``quantity`` items back, e.g. when a confirmed order is cancelled."""
    product = await _lock_product(session, product_id)
    current = product.stock or 0
    product.stock = current + quantity
    await session.flush()
    logger.info(
        "Stock restored",
        extra={"product_id": product_id, "quantity": quantity, "new_stock": product.stock},
    )
    return StockChange(product_id=product_id, previous_stock=current, new_stock=product.stock)


def validate_delta(delta: Any) -> int:
    """Check an admin stock adjustment.

    Raises:
        StockError: If delta is zero, not an integer, or larger than 100.
    """
    if (
        isinstance(delta, bool)
        or not isinstance(delta, (int, float))
        or (isinstance(delta, float) and not math.isfinite(delta))
        or int(delta) != delta
        or delta == 0
    ):
        raise StockError("Delta must be a non-zero integer")
    delta = int(delta)
    if abs(delta) > MAX_ADJUSTMENT:
        raise StockError(f"Delta cannot exceed {MAX_ADJUSTMENT} per adjustment")
    return delta


async def adjust_stock(session: AsyncSession, product_id: int, delta: Any) -> StockChange:
    """Apply an admin increment or decrement.

    Raises:
        NotFoundError: If the product does not exist.
        StockError: If the delta is invalid or the result would be negative.
    """
    delta = validate_delta(delta)
    product = await _lock_product(session, product_id)
    current = product.stock or 0
    if current + delta < 0:
        raise StockError("Cannot reduce stock below 0", currentStock=current)

    product.stock = current + delta
    await session.flush()
    logger.info(
        "Stock adjusted",
        extra={"product_id": product_id, "delta": delta, "new_stock": product.stock},
    )
    return StockChange(product_id=product_id, previous_stock=current, new_stock=product.stock)


# =============================================================================
# Inventory listing
# =============================================================================


def inventory_row(product: Product) -> Dict[str, Any]:
    images = [normalize_image_path(i.image_url) for i in product.images]
    stock = product.stock or 0
    return {
        "id": product.id,
        "name": product.name,
        "category": (
            {"id": product.category.id, "name": product.category.name, "slug": product.category.slug}
            if product.category
            else None
        ),
        "price": product.price,
        "stock": stock,
        "stockStatus": stock_status(stock),
        "image": images[0] if images else None,
        "images": images,
        "sizes": [{"id": s.id, "sizeText": s.size_text} for s in product.sizes],
    }


async def _resolve_category_filter(session: AsyncSession, category: str) -> Optional[int]:
    conditions = [Category.slug == category]
    if category.isdigit():
        conditions.append(Category.id == int(category))
    result = await session.execute(select(Category.id).where(or_(*conditions)).limit(1))
    return result.scalar_one_or_none()


async def inventory_list(
    session: AsyncSession,
    category: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """Paginated inventory with computed stock status.

    ``category`` is a slug or numeric id; an unknown category is
    ignored. The status filter runs in SQL so pagination counts only
    matching rows.
    """
    conditions = []
    if category:
        category_id = await _resolve_category_filter(session, category.strip())
        if category_id is not None:
            conditions.append(Product.category_id == category_id)
    if search and search.strip():
        conditions.append(Product.name.ilike(f"%{search.strip()}%"))

    status_key = (status or "").strip().lower()
    if status_key == OUT_OF_STOCK:
        conditions.append(func.coalesce(Product.stock, 0) <= 0)
    elif status_key == LOW_STOCK:
        conditions.append(Product.stock.between(1, LOW_STOCK_THRESHOLD))
    elif status_key == IN_STOCK:
        conditions.append(Product.stock > LOW_STOCK_THRESHOLD)

    total = (
        await session.execute(select(func.count(Product.id)).where(*conditions))
    ).scalar_one()

    result = await session.execute(
        select(Product)
        .where(*conditions)
        .options(
            selectinload(Product.images),
            selectinload(Product.sizes),
            selectinload(Product.category),
        )
        .order_by(Product.id.desc())
        .limit(limit)
        .offset(offset_for(page, limit))
    )
    return {
        "products": [inventory_row(p) for p in result.scalars().all()],
        "pagination": paginate(total, page, limit),
    }


async def product_stock(session: AsyncSession, product_id: int) -> Dict[str, Any]:
    """Inventory row for one product.

    Raises:
        NotFoundError: If the product does not exist.
    """
    result = await session.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(
            selectinload(Product.images),
            selectinload(Product.sizes),
            selectinload(Product.category),
        )
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return inventory_row(product)


async def count_low_stock(session: AsyncSession) -> int:
    """Products at or below the low-stock threshold, out-of-stock included."""
    return (
        await session.execute(
            select(func.count(Product.id)).where(func.coalesce(Product.stock, 0) <= LOW_STOCK_THRESHOLD)
        )
    ).scalar_one()


async def category_options(session: AsyncSession) -> List[Dict[str, Any]]:
    result = await session.execute(select(Category).order_by(Category.name.asc()))
    return [{"id": c.id, "name": c.name, "slug": c.slug} for c in result.scalars().all()]
