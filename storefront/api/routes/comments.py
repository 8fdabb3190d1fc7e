"""Product comments."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import CommentCreate, ErrorResponse, MessageResponse
from storefront.api.shared.auth import AuthUser, get_current_user
from storefront.api.shared.helpers import domain_errors
from storefront.db.session import get_db
from storefront.services import engagement

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/product/{product_id}")
async def list_comments(product_id: int, session: AsyncSession = Depends(get_db)) -> list:
    return await engagement.list_comments(session, product_id)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def add_comment(
    body: CommentCreate,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        comment = await engagement.add_comment(session, body.product_id, user.id, body.comment_text)
    return {"success": True, "comment": engagement.comment_view(comment)}


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_comment(
    comment_id: int,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    with domain_errors():
        await engagement.delete_comment(session, comment_id, user.id, user.is_admin)
    return MessageResponse(message="Comment deleted")
