"""User model with credentials, role and account-status flags.

Account status is derived rather than stored: a blocked account is
BLOCKED regardless of any suspension, otherwise an account whose
``suspended_until`` lies in the future is SUSPENDED, otherwise ACTIVE.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple

from sqlalchemy import Boolean, Index, Integer, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, UTCDateTime, as_utc, generate_repr, utcnow

if TYPE_CHECKING:
    from .comment import ProductComment
    from .rating import ProductRating


class UserRole(str, enum.Enum):
    """Account roles."""

    USER = "user"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """Derived account status."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    BLOCKED = "BLOCKED"


BLOCKED_MESSAGE = "Your account has been blocked. Please contact support."


def format_suspension_date(value: datetime) -> str:
    """Render a date the way customer-facing messages show it: ``March 5, 2026``."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


class User(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """Storefront account.

    Attributes:
        id: Integer primary key
        username: Unique login name
        password_hash: bcrypt hash of the password
        security_question: Question shown during password reset
        security_answer: Answer compared case-insensitively on reset
        role: "user" or "admin"
        is_blocked: Whether an admin has blocked the account
        blocked_at: When the block was applied
        block_reason: Optional admin note
        suspended_until: End of a temporary suspension
        suspension_reason: Optional admin note
        login_count: Successful logins
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    security_question: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    security_answer: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
        server_default=UserRole.USER.value,
    )
    is_blocked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    blocked_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )
    block_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    suspended_until: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )
    suspension_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    login_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    # Relationships
    ratings: Mapped[List["ProductRating"]] = relationship(
        "ProductRating",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    comments: Mapped[List["ProductComment"]] = relationship(
        "ProductComment",
        back_populates="user",
    )

    __table_args__ = (
        Index("ix_users_is_blocked", "is_blocked"),
        Index("ix_users_suspended_until", "suspended_until"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def is_suspended(self, now: Optional[datetime] = None) -> bool:
        """True when a suspension end date lies in the future."""
        if self.suspended_until is None:
            return False
        return as_utc(self.suspended_until) > (now or utcnow())

    def status(self, now: Optional[datetime] = None) -> UserStatus:
        if self.is_blocked:
            return UserStatus.BLOCKED
        if self.is_suspended(now):
            return UserStatus.SUSPENDED
        return UserStatus.ACTIVE

    def can_purchase(self, now: Optional[datetime] = None) -> Tuple[bool, Optional[str]]:
        """Return ``(allowed, message)`` for placing or confirming orders."""
        current = self.status(now)
        if current == UserStatus.BLOCKED:
            return False, BLOCKED_MESSAGE
        if current == UserStatus.SUSPENDED:
            until = format_suspension_date(as_utc(self.suspended_until))
            return False, (
                f"Your account is suspended until {until}. Contact support for assistance."
            )
        return True, None

    def __repr__(self) -> str:
        return generate_repr(self, "id", "username", "role")
