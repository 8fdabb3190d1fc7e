"""Back-office order queries and status changes."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Order, OrderStatus
from storefront.exceptions import NotFoundError
from storefront.logging_config import LogContext, get_logger
from storefront.services.order_status import (
    ACTIVE_RAW,
    ADMIN_STATUSES,
    HISTORY_RAW,
    apply_transition,
    normalize_status,
    parse_target_status,
    raw_values,
)
from storefront.services.orders import admin_order_view, get_order
from storefront.services.pagination import offset_for, paginate
from storefront.services.stock import restore_stock

logger = get_logger(__name__)

ORDER_ID_FRAGMENT = re.compile(r"^[0-9a-fA-F-]{4,}$")

SCOPE_ACTIVE = "active"
SCOPE_HISTORY = "history"


async def order_stats(session: AsyncSession) -> Dict[str, int]:
    """Order counts per normalized status."""
    result = await session.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
    counts = {status: 0 for status in ADMIN_STATUSES}
    for raw, count in result.all():
        if raw == OrderStatus.PENDING_CONFIRMATION.value:
            continue
        counts[normalize_status(raw)] += count

    placed = counts[OrderStatus.PLACED]
    processing = counts[OrderStatus.PROCESSING]
    shipped = counts[OrderStatus.SHIPPED]
    return {
        "placed": placed,
        "processing": processing,
        "shipped": shipped,
        "delivered": counts[OrderStatus.DELIVERED],
        "cancelled": counts[OrderStatus.CANCELLED],
        "activeTotal": placed + processing + shipped,
    }


def _search_condition(term: str):
    pattern = f"%{term}%"
    conditions = [
        Order.customer_email.ilike(pattern),
        Order.customer_phone.ilike(pattern),
        Order.customer_first_name.ilike(pattern),
        Order.customer_last_name.ilike(pattern),
    ]
    if ORDER_ID_FRAGMENT.match(term):
        conditions.append(cast(Order.id, String).ilike(pattern))
    return or_(*conditions)


async def list_admin_orders(
    session: AsyncSession,
    scope: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    base_url: str = "",
) -> Dict[str, Any]:
    """Orders for the back office, newest first.

    ``status`` narrows to one normalized status and wins over ``scope``.
    Without either, every confirmed order is listed.
    """
    conditions = []
    if status:
        normalized = parse_target_status(status)
        conditions.append(Order.status.in_(raw_values(normalized)))
    elif scope == SCOPE_HISTORY:
        conditions.append(Order.status.in_(HISTORY_RAW))
    elif scope == SCOPE_ACTIVE:
        conditions.append(Order.status.in_(ACTIVE_RAW))
    else:
        conditions.append(Order.status != OrderStatus.PENDING_CONFIRMATION.value)

    term = (search or "").strip()
    if term:
        conditions.append(_search_condition(term))

    total = (await session.execute(select(func.count(Order.id)).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Order)
        .where(*conditions)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
        .limit(limit)
        .offset(offset_for(page, limit))
    )
    return {
        "orders": [admin_order_view(o, base_url) for o in result.scalars().all()],
        "pagination": paginate(total, page, limit),
    }


async def update_order_status(
    session: AsyncSession,
    order_id: Any,
    raw_status: Optional[str],
    base_url: str = "",
) -> Dict[str, Any]:
    """Apply an admin status change, restoring stock on cancellation.

    Raises:
        NotFoundError: If the order does not exist.
        ValidationError: If the target status is not an admin status.
        InvalidTransitionError: If the lifecycle forbids the move.
    """
    target = parse_target_status(raw_status)
    order = await get_order(session, order_id)

    with LogContext(operation="update_order_status", order_id=str(order.id)):
        transition = apply_transition(order, target)
        payload: Dict[str, Any] = {
            "message": f"Order status updated to {target.value}",
            "previousStatus": transition.previous.value,
        }
        if transition.restores_stock:
            try:
                change = await restore_stock(session, order.product_id, order.quantity)
            except NotFoundError:
                # product deleted since the order was placed; the cancellation still applies
                logger.warning(
                    "Stock not restored, product no longer exists",
                    extra={"product_id": order.product_id, "quantity": order.quantity},
                )
            else:
                payload["stockRestored"] = {
                    "productId": change.product_id,
                    "restoredBy": change.delta,
                    "newStock": change.new_stock,
                }
        await session.flush()
        logger.info(
            "Order status changed",
            extra={"from": transition.previous.value, "to": target.value},
        )

    payload["order"] = admin_order_view(order, base_url)
    return payload
