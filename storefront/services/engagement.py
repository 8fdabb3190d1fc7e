"""Product ratings and comments."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Product, ProductComment, ProductRating
from storefront.db.models.base import utcnow
from storefront.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from storefront.logging_config import get_logger
from storefront.services.products import rating_summary

logger = get_logger(__name__)

MIN_COMMENT_LENGTH = 5


async def _require_product(session: AsyncSession, product_id: Any) -> int:
    try:
        pid = int(product_id)
    except (TypeError, ValueError):
        raise NotFoundError("Product not found") from None
    if await session.get(Product, pid) is None:
        raise NotFoundError("Product not found")
    return pid


# =============================================================================
# Ratings
# =============================================================================


def parse_rating(value: Any) -> int:
    """Accept integers 1..5 (numeric strings included)."""
    try:
        rating = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError("Rating must be between 1 and 5") from None
    if rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


async def rate_product(
    session: AsyncSession, product_id: Any, user_id: int, value: Any
) -> Dict[str, Any]:
    """Insert or replace the user's rating and return the new summary."""
    rating = parse_rating(value)
    pid = await _require_product(session, product_id)

    existing = (
        await session.execute(
            select(ProductRating).where(
                ProductRating.product_id == pid,
                ProductRating.user_id == user_id,
            )
        )
    ).scalar_one_or_none()

    if existing is None:
        session.add(ProductRating(product_id=pid, user_id=user_id, rating=rating))
    else:
        existing.rating = rating
        existing.updated_at = utcnow()
    await session.flush()

    average, total = await rating_summary(session, pid)
    logger.info("Product rated", extra={"product_id": pid, "user_id": user_id, "rating": rating})
    return {
        "success": True,
        "newAverage": f"{average:.1f}",
        "totalRatings": total,
    }


async def rating_overview(
    session: AsyncSession, product_id: int, user_id: Optional[int] = None
) -> Dict[str, Any]:
    average, total = await rating_summary(session, product_id)
    payload: Dict[str, Any] = {"average": round(average, 1), "total": total}
    if user_id is not None:
        payload["userRating"] = (
            await session.execute(
                select(ProductRating.rating).where(
                    ProductRating.product_id == product_id,
                    ProductRating.user_id == user_id,
                )
            )
        ).scalar_one_or_none()
    return payload


# =============================================================================
# Comments
# =============================================================================


def comment_view(comment: ProductComment) -> Dict[str, Any]:
    user = comment.user
    return {
        "id": comment.id,
        "productId": comment.product_id,
        "text": comment.comment_text,
        "createdAt": comment.created_at.isoformat() if comment.created_at else None,
        "user": {
            "id": user.id if user else None,
            "username": user.username if user else "Anonymous",
        },
    }


async def list_comments(session: AsyncSession, product_id: int) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(ProductComment)
        .where(ProductComment.product_id == product_id)
        .options(selectinload(ProductComment.user))
        .order_by(ProductComment.created_at.desc(), ProductComment.id.desc())
    )
    return [comment_view(c) for c in result.scalars().all()]


async def add_comment(
    session: AsyncSession, product_id: Any, user_id: int, text: Any
) -> ProductComment:
    """Post a comment.

    Raises:
        ValidationError: If the product id is missing or the text is too short.
        NotFoundError: If the product does not exist.
    """
    if product_id in (None, ""):
        raise ValidationError("Product ID is required")
    cleaned = str(text or "").strip()
    if len(cleaned) < MIN_COMMENT_LENGTH:
        raise ValidationError(f"Comment must be at least {MIN_COMMENT_LENGTH} characters")
    pid = await _require_product(session, product_id)

    comment = ProductComment(product_id=pid, user_id=user_id, comment_text=cleaned)
    session.add(comment)
    await session.flush()
    await session.refresh(comment, attribute_names=["user"])
    logger.info("Comment posted", extra={"product_id": pid, "comment_id": comment.id})
    return comment


async def delete_comment(
    session: AsyncSession, comment_id: int, user_id: int, is_admin: bool = False
) -> None:
    """Delete a comment as its author or as an admin.

    Raises:
        NotFoundError: If the comment does not exist.
        PermissionDeniedError: If the caller is neither author nor admin.
    """
    comment = await session.get(ProductComment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.user_id != user_id and not is_admin:
        raise PermissionDeniedError("You can only delete your own comments")
    await session.delete(comment)
    await session.flush()
    logger.info("Comment deleted", extra={"comment_id": comment_id, "by_admin": is_admin})
