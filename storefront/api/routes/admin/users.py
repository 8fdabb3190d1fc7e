"""Back-office customer account moderation."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import BlockUserRequest, ErrorResponse, SuspendUserRequest
from storefront.api.shared.auth import require_admin
from storefront.api.shared.helpers import domain_errors
from storefront.db.session import get_db
from storefront.services import admin_users

router = APIRouter(
    prefix="/admin/users",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


@router.get("")
async def list_users(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        result = await admin_users.list_users(session, search=search, status=status, page=page, limit=limit)
    return {"success": True, **result}


@router.get("/{user_id}")
async def get_user(user_id: int, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        user = await admin_users.user_detail(session, user_id)
    return {"success": True, "user": user}


@router.patch("/{user_id}/block")
async def block_user(
    user_id: int,
    body: Optional[BlockUserRequest] = Body(None),
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        result = await admin_users.block_user(session, user_id, body.reason if body else None)
    return {"success": True, **result}


@router.patch("/{user_id}/unblock")
async def unblock_user(user_id: int, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        result = await admin_users.unblock_user(session, user_id)
    return {"success": True, **result}


@router.patch("/{user_id}/suspend")
async def suspend_user(
    user_id: int,
    body: SuspendUserRequest,
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        result = await admin_users.suspend_user(session, user_id, body.days, body.reason)
    return {"success": True, **result}


@router.patch("/{user_id}/unsuspend")
async def unsuspend_user(user_id: int, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        result = await admin_users.unsuspend_user(session, user_id)
    return {"success": True, **result}
