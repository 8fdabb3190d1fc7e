"""Buy-now checkout sessions."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import BuyNowSessionCreate, BuyNowSessionUpdate, ErrorResponse
from storefront.api.shared.auth import AuthUser, get_optional_user
from storefront.api.shared.helpers import domain_errors, raise_for_domain_error
from storefront.db.session import get_db
from storefront.exceptions import SessionStateError, StorefrontError
from storefront.services import buy_now

router = APIRouter(prefix="/buy-now", tags=["checkout"])


@router.post(
    "/session",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_session(
    body: BuyNowSessionCreate,
    user: Optional[AuthUser] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Snapshot a product for a 24-hour checkout."""
    with domain_errors():
        checkout = await buy_now.create_session(
            session,
            body.product_id,
            selected_size=body.selected_size,
            quantity=body.quantity,
            user_id=user.id if user else None,
        )
    return {"success": True, "sessionId": str(checkout.id), "session": buy_now.session_view(checkout)}


@router.get(
    "/session/{session_id}",
    responses={404: {"model": ErrorResponse}, 410: {"model": ErrorResponse}},
)
async def get_session(session_id: str, session: AsyncSession = Depends(get_db)) -> dict:
    try:
        checkout = await buy_now.get_usable_session(session, session_id)
    except StorefrontError as e:
        if isinstance(e, SessionStateError) and e.gone:
            # keep the expired status even though the request fails
            await session.commit()
        raise_for_domain_error(e)
    return {"success": True, "session": buy_now.session_view(checkout)}


@router.put(
    "/session/{session_id}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_session(
    session_id: str,
    body: BuyNowSessionUpdate,
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        checkout = await buy_now.update_session(
            session,
            session_id,
            selected_size=body.selected_size,
            quantity=body.quantity,
            size_given="selected_size" in body.model_fields_set,
        )
    return {"success": True, "session": buy_now.session_view(checkout)}
