"""Account sign-up, sign-in and password recovery."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth.passwords import hash_password, normalize_security_answer, verify_password
from storefront.api.shared.auth.tokens import create_access_token
from storefront.config import AuthConfig
from storefront.db.models import User, UserRole, UserStatus
from storefront.db.models.base import as_utc
from storefront.db.models.user import BLOCKED_MESSAGE
from storefront.exceptions import AccountBlockedError, NotFoundError, ValidationError
from storefront.logging_config import get_logger

logger = get_logger(__name__)


def _field(data: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = data.get(name)
        if value is not None and str(value).strip():
            return str(value)
    return ""


async def find_by_username(session: AsyncSession, username: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def signup(session: AsyncSession, data: Mapping[str, Any], role: str = UserRole.USER.value) -> User:
    """Create an account.

    Raises:
        ValidationError: If a field is missing or the username is taken.
    """
    username = _field(data, "username").strip()
    password = _field(data, "password")
    question = _field(data, "securityQuestion", "security_question").strip()
    answer = _field(data, "securityAnswer", "security_answer").strip()
    if not (username and password and question and answer):
        raise ValidationError("All fields are required")

    if await find_by_username(session, username) is not None:
        raise ValidationError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        security_question=question,
        security_answer=answer,
        role=role,
    )
    session.add(user)
    await session.flush()
    logger.info("Account created", extra={"user_id": user.id, "role": role})
    return user


def account_status_info(user: User) -> Dict[str, Any]:
    status = user.status()
    info: Dict[str, Any] = {"accountStatus": status.value}
    if status == UserStatus.SUSPENDED:
        _, message = user.can_purchase()
        info["suspension"] = {
            "suspendedUntil": as_utc(user.suspended_until).isoformat(),
            "reason": user.suspension_reason,
            "message": message,
        }
    return info


async def login(
    session: AsyncSession,
    username: Optional[str],
    password: Optional[str],
    config: Optional[AuthConfig] = None,
) -> Dict[str, Any]:
    """Verify credentials and issue an access token.

    Suspended accounts may sign in; the response says so.

    Raises:
        ValidationError: For missing fields, unknown users and wrong passwords.
        AccountBlockedError: If the account is blocked.
    """
    if not username or not password:
        raise ValidationError("Username and password are required")

    user = await find_by_username(session, username.strip())
    if user is None:
        raise ValidationError("User not found")
    if user.is_blocked:
        raise AccountBlockedError(
            BLOCKED_MESSAGE,
            statusCode=UserStatus.BLOCKED.value,
            reason=user.block_reason,
        )
    if not verify_password(password, user.password_hash):
        raise ValidationError("Invalid password")

    await session.execute(
        update(User)
        .where(User.id == user.id)
        .values(login_count=User.login_count + 1)
        .execution_options(synchronize_session=False)
    )

    token = create_access_token(user.id, user.username, user.role, config=config)
    logger.info("User signed in", extra={"user_id": user.id})
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "role": user.role,
        "user": {"id": user.id, "username": user.username, "role": user.role},
        **account_status_info(user),
    }


async def security_question(session: AsyncSession, username: Optional[str]) -> str:
    user = await find_by_username(session, (username or "").strip())
    if user is None:
        raise NotFoundError("User not found")
    return user.security_question


async def reset_password(session: AsyncSession, data: Mapping[str, Any]) -> None:
    """Replace the password after checking the security answer.

    Raises:
        ValidationError: For missing fields or a wrong answer.
        NotFoundError: If the user does not exist.
    """
    username = _field(data, "username").strip()
    answer = _field(data, "securityAnswer", "security_answer")
    new_password = _field(data, "newPassword", "new_password")
    if not (username and answer and new_password):
        raise ValidationError("All fields are required")

    user = await find_by_username(session, username)
    if user is None:
        raise NotFoundError("User not found")
    if normalize_security_answer(user.security_answer) != normalize_security_answer(answer):
        raise ValidationError("Incorrect security answer")

    user.password_hash = hash_password(new_password)
    await session.flush()
    logger.info("Password reset", extra={"user_id": user.id})


async def profile(session: AsyncSession, user_id: int) -> Dict[str, Any]:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return {
        "user": {
            "id": user.id,
            "username": user.username,
            "role": user.role,
            "status": user.status().value,
            "loginCount": user.login_count or 0,
            "createdAt": user.created_at.isoformat() if user.created_at else None,
        }
    }
