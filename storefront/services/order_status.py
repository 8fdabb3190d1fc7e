"""Order status state machine.

Admins move confirmed orders through::

    PLACED -> PROCESSING -> SHIPPED -> DELIVERED
       \\-----------\\-----------\\----> CANCELLED

DELIVERED and CANCELLED are final. PENDING_CONFIRMATION orders belong to
the customer until they confirm; admins cannot move them.

Rows written by older releases carry lowercase statuses (``pending``,
``confirmed``, ``processing``, ...). They are read through
``normalize_status`` and queried through the ``*_RAW`` groups below.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from storefront.db.models import Order, OrderStatus
from storefront.db.models.base import utcnow
from storefront.exceptions import InvalidTransitionError, ValidationError

# Statuses an admin may set
ADMIN_STATUSES: Tuple[OrderStatus, ...] = (
    OrderStatus.PLACED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
)

LEGACY_STATUS_MAP: Dict[str, OrderStatus] = {
    "pending": OrderStatus.PLACED,
    "pending_confirmation": OrderStatus.PLACED,
    "confirmed": OrderStatus.PLACED,
    "placed": OrderStatus.PLACED,
    "processing": OrderStatus.PROCESSING,
    "shipped": OrderStatus.SHIPPED,
    "delivered": OrderStatus.DELIVERED,
    "cancelled": OrderStatus.CANCELLED,
}

VALID_TRANSITIONS: Dict[OrderStatus, Tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING_CONFIRMATION: (),
    OrderStatus.PLACED: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

FINAL_STATUSES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.PROCESSING: "processed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def raw_values(*statuses: OrderStatus) -> List[str]:
    """Stored values (current and legacy) that normalize to ``statuses``."""
    values = [s.value for s in statuses]
    values.extend(raw for raw, target in LEGACY_STATUS_MAP.items() if target in statuses)
    return values


PLACED_RAW = raw_values(OrderStatus.PLACED)
PROCESSING_RAW = raw_values(OrderStatus.PROCESSING)
SHIPPED_RAW = raw_values(OrderStatus.SHIPPED)
DELIVERED_RAW = raw_values(OrderStatus.DELIVERED)
CANCELLED_RAW = raw_values(OrderStatus.CANCELLED)
ACTIVE_RAW = raw_values(OrderStatus.PLACED, OrderStatus.PROCESSING, OrderStatus.SHIPPED)
HISTORY_RAW = raw_values(OrderStatus.DELIVERED, OrderStatus.CANCELLED)

# Stored statuses whose stock was already taken out at confirmation
STOCK_HELD_RAW = frozenset(
    value
    for status in ("placed", "confirmed", "processing", "shipped")
    for value in (status, status.upper())
)

INVALID_STATUS_MESSAGE = (
    "Invalid status. Must be one of: " + ", ".join(s.value for s in ADMIN_STATUSES)
)


def normalize_status(raw: Optional[str]) -> OrderStatus:
    """Map a stored status onto an ``OrderStatus``.

    Upper-case known values map to themselves, legacy lowercase values go
    through ``LEGACY_STATUS_MAP`` and anything else reads as PLACED.
    """
    if not raw:
        return OrderStatus.PLACED
    if raw in LEGACY_STATUS_MAP:
        return LEGACY_STATUS_MAP[raw]
    try:
        return OrderStatus(raw.upper())
    except ValueError:
        return OrderStatus.PLACED


def allowed_transitions(current: OrderStatus) -> Tuple[OrderStatus, ...]:
    return VALID_TRANSITIONS.get(current, ())


def is_valid_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in allowed_transitions(current)


def parse_target_status(raw: Optional[str]) -> OrderStatus:
    """Validate the status an admin asked for.

    Raises:
        ValidationError: If the value is not one of the admin statuses.
    """
    if not raw or not isinstance(raw, str):
        raise ValidationError("Status is required")
    try:
        target = OrderStatus(raw.strip().upper())
    except ValueError:
        raise ValidationError(INVALID_STATUS_MESSAGE) from None
    if target not in ADMIN_STATUSES:
        raise ValidationError(INVALID_STATUS_MESSAGE)
    return target


def _allowed_text(current: OrderStatus) -> str:
    allowed = allowed_transitions(current)
    if allowed:
        return ", ".join(s.value for s in allowed)
    if current == OrderStatus.PENDING_CONFIRMATION:
        return "none (awaiting customer confirmation)"
    return "none (final status)"


@dataclass
class TransitionResult:
    """What changed when a transition was applied."""

    previous_raw: Optional[str]
    previous: OrderStatus
    current: OrderStatus
    restores_stock: bool


def apply_transition(order: Order, target: OrderStatus, now: Optional[datetime] = None) -> TransitionResult:
    """Move ``order`` to ``target`` and stamp the matching timestamp.

    The caller restores stock when ``restores_stock`` is set.

    Raises:
        InvalidTransitionError: If the lifecycle does not allow the move.
    """
    current = normalize_status(order.status)
    if not is_valid_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change status from {current.value} to {target.value}. "
            f"Allowed transitions: {_allowed_text(current)}"
        )

    now = now or utcnow()
    previous_raw = order.status
    order.status = target.value
    order.updated_at = now
    field = TIMESTAMP_FIELDS.get(target)
    if field:
        setattr(order, field, now)

    return TransitionResult(
        previous_raw=previous_raw,
        previous=current,
        current=target,
        restores_stock=target == OrderStatus.CANCELLED and previous_raw in STOCK_HELD_RAW,
    )
