"""Customer checkout orders."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse, OrderCreate
from storefront.api.shared.auth import AuthUser, enforce_user_status, get_current_user, get_optional_user
from storefront.api.shared.helpers import ErrorCode, domain_errors, raise_api_error
from storefront.config import get_settings
from storefront.db.session import get_db
from storefront.services import orders

router = APIRouter(prefix="/orders", tags=["orders"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def _base_url() -> str:
    return get_settings().uploads.base_url


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    dependencies=[Depends(enforce_user_status)],
)
async def create_order(
    body: OrderCreate,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Create a PENDING_CONFIRMATION order from a buy-now session.

    Stock is untouched until the order is confirmed.
    """
    with domain_errors():
        order = await orders.create_order(session, body.to_mapping(), user.id)
    return {
        "success": True,
        "message": "Order created. Please confirm to place it.",
        "orderId": str(order.id),
        "order": orders.order_detail(order, _base_url()),
    }


@router.post(
    "/{order_id}/confirm",
    responses=_ERRORS,
    dependencies=[Depends(enforce_user_status)],
)
async def confirm_order(
    order_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        order = await orders.confirm_order(session, order_id, user.id)
    return {
        "success": True,
        "message": "Order placed successfully",
        "order": orders.order_detail(order, _base_url()),
    }


@router.get("/my", responses={401: {"model": ErrorResponse}})
async def my_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    result = await orders.list_user_orders(session, user.id, status_filter, page, limit)
    return {"success": True, **result}


@router.get("/my/{order_id}", responses=_ERRORS)
async def my_order(
    order_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        order = await orders.get_order(session, order_id)
    if order.user_id != user.id:
        raise_api_error(ErrorCode.AUTH_FORBIDDEN, detail="Access denied")
    return {"success": True, "order": orders.order_detail(order, _base_url())}


@router.get("/{order_id}", responses=_ERRORS)
async def get_order(
    order_id: str,
    user: Optional[AuthUser] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Guest orders are public by id; owned orders need the owner or an admin."""
    with domain_errors():
        order = await orders.get_order(session, order_id)
    if order.user_id is not None:
        if user is None or (user.id != order.user_id and not user.is_admin):
            raise_api_error(ErrorCode.AUTH_FORBIDDEN, detail="Access denied")
    return {"success": True, "order": orders.order_detail(order, _base_url())}
