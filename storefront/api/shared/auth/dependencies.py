"""FastAPI authentication dependencies."""

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth.tokens import decode_access_token
from storefront.api.shared.helpers.errors import ErrorCode, raise_api_error
from storefront.db.models import User, UserRole, UserStatus
from storefront.db.models.base import as_utc
from storefront.db.models.user import BLOCKED_MESSAGE
from storefront.db.session import get_db
from storefront.logging_config import get_logger, set_context

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthUser:
    """Identity carried by a verified access token."""

    id: int
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def _user_from_token(token: str) -> AuthUser:
    claims = decode_access_token(token)
    return AuthUser(
        id=claims["userId"],
        username=str(claims.get("username") or ""),
        role=str(claims.get("role") or UserRole.USER.value),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    """Require a valid bearer token."""
    if credentials is None or not credentials.credentials:
        raise_api_error(ErrorCode.AUTH_MISSING_TOKEN)

    try:
        user = _user_from_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise_api_error(ErrorCode.AUTH_INVALID_TOKEN, exception=e, log_level="info")

    set_context(user_id=user.id)
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthUser]:
    """Return the caller when a valid token is present, otherwise None."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        user = _user_from_token(credentials.credentials)
    except jwt.InvalidTokenError:
        return None
    set_context(user_id=user.id)
    return user


async def require_admin(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    if not user.is_admin:
        raise_api_error(ErrorCode.AUTH_ADMIN_REQUIRED)
    return user


def raise_for_account_status(account: User) -> None:
    """Reject blocked or suspended accounts with the status payload."""
    current = account.status()
    if current == UserStatus.BLOCKED:
        raise_api_error(
            ErrorCode.AUTH_ACCOUNT_BLOCKED,
            detail=BLOCKED_MESSAGE,
            statusCode=UserStatus.BLOCKED.value,
            reason=account.block_reason,
        )
    if current == UserStatus.SUSPENDED:
        _, message = account.can_purchase()
        raise_api_error(
            ErrorCode.AUTH_ACCOUNT_SUSPENDED,
            detail=message,
            statusCode=UserStatus.SUSPENDED.value,
            reason=account.suspension_reason,
            suspendedUntil=as_utc(account.suspended_until).isoformat(),
        )


async def enforce_user_status(
    user: Optional[AuthUser] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db),
) -> Optional[AuthUser]:
    """Block purchases by blocked or suspended accounts; guests pass."""
    if user is None:
        return None
    account = await session.get(User, user.id)
    if account is None:
        return user
    raise_for_account_status(account)
    return user
