"""Admin account management: listing, blocking and suspensions.

Account status is never stored. Every query derives it from
``is_blocked`` and ``suspended_until`` the same way ``User.status()``
does, so list filters and row badges always agree.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Order, OrderStatus, User, UserRole, UserStatus
from storefront.db.models.base import utcnow
from storefront.exceptions import NotFoundError, UserStatusError, ValidationError
from storefront.logging_config import LogContext, get_logger
from storefront.services.order_status import DELIVERED_RAW
from storefront.services.pagination import offset_for, paginate

logger = get_logger(__name__)

MIN_SUSPENSION_DAYS = 1
MAX_SUSPENSION_DAYS = 365
RECENT_ORDERS_LIMIT = 5


def _status_condition(status: UserStatus, now: datetime):
    if status == UserStatus.BLOCKED:
        return User.is_blocked.is_(True)
    if status == UserStatus.SUSPENDED:
        return and_(User.is_blocked.is_(False), User.suspended_until > now)
    return and_(
        User.is_blocked.is_(False),
        or_(User.suspended_until.is_(None), User.suspended_until <= now),
    )


def _parse_status_filter(status: Optional[str]) -> Optional[UserStatus]:
    if not status or status.strip().upper() == "ALL":
        return None
    try:
        return UserStatus(status.strip().upper())
    except ValueError:
        raise ValidationError("Status must be one of: active, suspended, blocked") from None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_row(user: User, total_orders: int = 0, total_spent: float = 0.0) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "status": user.status().value,
        "loginCount": user.login_count or 0,
        "totalOrders": int(total_orders or 0),
        "totalSpent": round(float(total_spent or 0), 2),
        "blockedAt": _iso(user.blocked_at),
        "blockReason": user.block_reason,
        "suspendedUntil": _iso(user.suspended_until),
        "suspensionReason": user.suspension_reason,
        "createdAt": _iso(user.created_at),
    }


def _order_stats_query():
    spent = func.sum(case((Order.status.in_(DELIVERED_RAW), func.coalesce(Order.total, 0)), else_=0))
    return (
        select(
            Order.user_id,
            func.count(Order.id).label("total_orders"),
            func.coalesce(spent, 0).label("total_spent"),
        )
        .where(Order.status != OrderStatus.PENDING_CONFIRMATION.value)
        .group_by(Order.user_id)
    )


async def _user_stats(session: AsyncSession, now: datetime) -> Dict[str, int]:
    row = (
        await session.execute(
            select(
                func.count(User.id),
                func.coalesce(func.sum(User.login_count), 0),
                func.count(case((_status_condition(UserStatus.SUSPENDED, now), 1))),
                func.count(case((_status_condition(UserStatus.BLOCKED, now), 1))),
            ).where(User.role == UserRole.USER.value)
        )
    ).one()
    return {
        "totalUsers": int(row[0] or 0),
        "totalLogins": int(row[1] or 0),
        "suspendedCount": int(row[2] or 0),
        "blockedCount": int(row[3] or 0),
    }


async def list_users(
    session: AsyncSession,
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """Customer accounts with order totals, newest first."""
    now = utcnow()
    wanted = _parse_status_filter(status)

    conditions = [User.role == UserRole.USER.value]
    if search and search.strip():
        conditions.append(User.username.ilike(f"%{search.strip()}%"))
    if wanted is not None:
        conditions.append(_status_condition(wanted, now))

    total = (await session.execute(select(func.count(User.id)).where(*conditions))).scalar_one()

    stats_sub = _order_stats_query().subquery()
    result = await session.execute(
        select(User, stats_sub.c.total_orders, stats_sub.c.total_spent)
        .outerjoin(stats_sub, stats_sub.c.user_id == User.id)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .limit(limit)
        .offset(offset_for(page, limit))
    )
    users = [user_row(user, orders, spent) for user, orders, spent in result.all()]

    return {
        "users": users,
        "stats": await _user_stats(session, now),
        "pagination": paginate(total, page, limit),
    }


async def _get_user(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def user_detail(session: AsyncSession, user_id: int) -> Dict[str, Any]:
    """One account with order totals and its most recent orders."""
    user = await _get_user(session, user_id)
    stats = (
        await session.execute(_order_stats_query().where(Order.user_id == user_id))
    ).first()
    row = user_row(user, stats.total_orders if stats else 0, stats.total_spent if stats else 0)

    recent = await session.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
        .limit(RECENT_ORDERS_LIMIT)
    )
    row["recentOrders"] = [
        {
            "id": str(o.id),
            "productName": o.product_name,
            "total": o.total,
            "status": o.status,
            "createdAt": _iso(o.created_at),
        }
        for o in recent.scalars().all()
    ]
    return row


def _summary(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "status": user.status().value,
        "suspendedUntil": _iso(user.suspended_until),
    }


async def block_user(session: AsyncSession, user_id: int, reason: Optional[str] = None) -> Dict[str, Any]:
    """Block an account; any running suspension is cleared.

    Raises:
        NotFoundError: If the account does not exist.
        UserStatusError: For admins and already blocked accounts.
    """
    user = await _get_user(session, user_id)
    if user.is_admin:
        raise UserStatusError("Cannot block admin users")
    if user.is_blocked:
        raise UserStatusError("User is already blocked")

    with LogContext(operation="block_user", target_user_id=user_id):
        user.is_blocked = True
        user.blocked_at = utcnow()
        user.block_reason = (reason or "").strip() or None
        user.suspended_until = None
        user.suspension_reason = None
        await session.flush()
        logger.info("User blocked")
    return {"message": "User has been blocked", "user": _summary(user)}


async def unblock_user(session: AsyncSession, user_id: int) -> Dict[str, Any]:
    user = await _get_user(session, user_id)
    if not user.is_blocked:
        raise UserStatusError("User is not blocked")

    user.is_blocked = False
    user.blocked_at = None
    user.block_reason = None
    await session.flush()
    logger.info("User unblocked", extra={"target_user_id": user_id})
    return {"message": "User has been unblocked", "user": _summary(user)}


def parse_suspension_days(days: Any) -> int:
    if isinstance(days, bool):
        raise ValidationError("Suspension days must be between 1 and 365")
    try:
        value = int(days)
    except (TypeError, ValueError):
        raise ValidationError("Suspension days must be between 1 and 365") from None
    if value != days and str(value) != str(days).strip():
        raise ValidationError("Suspension days must be between 1 and 365")
    if value < MIN_SUSPENSION_DAYS or value > MAX_SUSPENSION_DAYS:
        raise ValidationError("Suspension days must be between 1 and 365")
    return value


async def suspend_user(
    session: AsyncSession, user_id: int, days: Any, reason: Optional[str] = None
) -> Dict[str, Any]:
    """Suspend an account for ``days`` days from now.

    Raises:
        ValidationError: If days is not an integer in 1..365.
        NotFoundError: If the account does not exist.
        UserStatusError: For admins and blocked accounts.
    """
    count = parse_suspension_days(days)
    user = await _get_user(session, user_id)
    if user.is_admin:
        raise UserStatusError("Cannot suspend admin users")
    if user.is_blocked:
        raise UserStatusError("Cannot suspend a blocked user. Unblock first.")

    user.suspended_until = utcnow() + timedelta(days=count)
    user.suspension_reason = (reason or "").strip() or None
    await session.flush()
    logger.info("User suspended", extra={"target_user_id": user_id, "days": count})
    return {"message": f"User suspended for {count} days", "user": _summary(user)}


async def unsuspend_user(session: AsyncSession, user_id: int) -> Dict[str, Any]:
    user = await _get_user(session, user_id)
    if not user.is_suspended():
        raise UserStatusError("User is not suspended")

    user.suspended_until = None
    user.suspension_reason = None
    await session.flush()
    logger.info("User unsuspended", extra={"target_user_id": user_id})
    return {"message": "User suspension has been lifted", "user": _summary(user)}
