"""Account routes: sign-up, sign-in, password recovery and profile."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SecurityQuestionRequest,
    SignupRequest,
)
from storefront.api.shared.auth import AuthUser, get_current_user
from storefront.api.shared.helpers import domain_errors
from storefront.api.shared.middleware import RATE_LIMITS, limiter
from storefront.db.session import get_db
from storefront.logging_config import get_logger
from storefront.services import accounts

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SENSITIVE_LIMIT = RATE_LIMITS["sensitive"].to_slowapi_format()


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
@limiter.limit(SENSITIVE_LIMIT)
async def signup(
    request: Request,
    body: SignupRequest,
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    with domain_errors():
        await accounts.signup(session, body.to_mapping())
    return MessageResponse(message="Signup successful!")


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
@limiter.limit(SENSITIVE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    session: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Exchange credentials for an access token.

    Blocked accounts get a 403 carrying ``statusCode: BLOCKED``. Suspended
    accounts sign in normally and see ``accountStatus: SUSPENDED``.
    """
    with domain_errors():
        result = await accounts.login(session, body.username, body.password)
    return LoginResponse(**result)


@router.post("/get-question", responses={404: {"model": ErrorResponse}})
@limiter.limit(SENSITIVE_LIMIT)
async def get_question(
    request: Request,
    body: SecurityQuestionRequest,
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        question = await accounts.security_question(session, body.username)
    return {"success": True, "securityQuestion": question}


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(SENSITIVE_LIMIT)
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    with domain_errors():
        await accounts.reset_password(session, body.to_mapping())
    return MessageResponse(message="Password reset successful!")


@router.get("/profile", responses={401: {"model": ErrorResponse}})
async def get_profile(
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        return await accounts.profile(session, user.id)
