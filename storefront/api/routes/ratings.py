"""Product star ratings."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse, RatingRequest
from storefront.api.shared.auth import AuthUser, get_current_user, get_optional_user
from storefront.api.shared.helpers import domain_errors
from storefront.db.session import get_db
from storefront.services import engagement

router = APIRouter(prefix="/rating", tags=["ratings"])


@router.post("/add", responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def add_rating(
    body: RatingRequest,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Create or replace the caller's rating for a product."""
    with domain_errors():
        return await engagement.rate_product(session, body.product_id, user.id, body.rating)


@router.get("/{product_id}")
async def get_rating(
    product_id: int,
    user: Optional[AuthUser] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    return await engagement.rating_overview(session, product_id, user.id if user else None)
