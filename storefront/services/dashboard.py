"""Admin dashboard aggregates.

Revenue only ever counts DELIVERED orders. Orders still awaiting the
customer's confirmation are drafts and never show up here. Days are UTC
calendar days.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Order, OrderStatus, Product, User, UserRole
from storefront.db.models.base import as_utc, utcnow
from storefront.logging_config import get_logger, log_operation
from storefront.services.catalog import normalize_image_path
from storefront.services.order_status import (
    ACTIVE_RAW,
    CANCELLED_RAW,
    DELIVERED_RAW,
    normalize_status,
)
from storefront.services.stock import LOW_STOCK_THRESHOLD

logger = get_logger(__name__)

STATUS_COLORS = (
    (OrderStatus.DELIVERED, "Delivered", "#10b981"),
    (OrderStatus.SHIPPED, "Shipped", "#3b82f6"),
    (OrderStatus.PROCESSING, "Processing", "#f59e0b"),
    (OrderStatus.PLACED, "Placed", "#6366f1"),
    (OrderStatus.CANCELLED, "Cancelled", "#ef4444"),
)

SALES_WINDOWS = (7, 30)
MIN_SEARCH_LENGTH = 2
NOTIFICATION_LIMIT = 10

CONFIRMED = Order.status != OrderStatus.PENDING_CONFIRMATION.value


def money(value: Any) -> float:
    return round(float(value or 0), 2)


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min).replace(tzinfo=timezone.utc)


def day_end(day: date) -> datetime:
    return datetime.combine(day, time.max).replace(tzinfo=timezone.utc)


def daily_series(
    rows: Iterable[Tuple[datetime, Any]], start: date, end: date
) -> List[Dict[str, Any]]:
    """Bucket ``(created_at, total)`` rows into one entry per day, gaps as zero."""
    buckets: Dict[date, Dict[str, Any]] = {}
    for created_at, total in rows:
        key = as_utc(created_at).date()
        bucket = buckets.setdefault(key, {"revenue": 0.0, "orders": 0})
        bucket["revenue"] += float(total or 0)
        bucket["orders"] += 1

    series = []
    current = start
    while current <= end:
        bucket = buckets.get(current, {"revenue": 0.0, "orders": 0})
        series.append(
            {"date": current.isoformat(), "revenue": money(bucket["revenue"]), "orders": bucket["orders"]}
        )
        current += timedelta(days=1)
    return series


async def _scalar(session: AsyncSession, query) -> Any:
    return (await session.execute(query)).scalar_one()


# =============================================================================
# KPIs and trends
# =============================================================================


async def kpis(session: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    today = day_start(now.date())
    tomorrow = today + timedelta(days=1)
    delivered = Order.status.in_(DELIVERED_RAW)
    is_today = (Order.created_at >= today) & (Order.created_at < tomorrow)

    total_revenue = await _scalar(session, select(func.coalesce(func.sum(Order.total), 0)).where(delivered))
    delivered_orders = await _scalar(session, select(func.count(Order.id)).where(delivered))
    orders_today = await _scalar(session, select(func.count(Order.id)).where(CONFIRMED, is_today))
    revenue_today = await _scalar(
        session, select(func.coalesce(func.sum(Order.total), 0)).where(delivered, is_today)
    )
    low_stock = await _scalar(
        session,
        select(func.count(Product.id)).where(func.coalesce(Product.stock, 0) <= LOW_STOCK_THRESHOLD),
    )
    total_users = await _scalar(
        session, select(func.count(User.id)).where(User.role == UserRole.USER.value)
    )
    cancelled = await _scalar(session, select(func.count(Order.id)).where(Order.status.in_(CANCELLED_RAW)))
    pending = await _scalar(session, select(func.count(Order.id)).where(Order.status.in_(ACTIVE_RAW)))

    return {
        "totalRevenue": money(total_revenue),
        "deliveredOrders": delivered_orders,
        "ordersToday": orders_today,
        "revenueToday": money(revenue_today),
        "lowStockItems": low_stock,
        "totalUsers": total_users,
        "cancelledOrders": cancelled,
        "avgOrderValue": money(total_revenue / delivered_orders) if delivered_orders else 0.0,
        "pendingOrders": pending,
    }


def parse_sales_days(days: Any) -> int:
    try:
        value = int(days)
    except (TypeError, ValueError):
        return SALES_WINDOWS[0]
    return value if value in SALES_WINDOWS else SALES_WINDOWS[0]


async def sales_overview(
    session: AsyncSession, days: int = 7, now: Optional[datetime] = None
) -> Dict[str, Any]:
    now = now or utcnow()
    end = now.date()
    start = end - timedelta(days=days)
    result = await session.execute(
        select(Order.created_at, Order.total).where(
            Order.status.in_(DELIVERED_RAW),
            Order.created_at >= day_start(start),
            Order.created_at <= day_end(end),
        )
    )
    trend = daily_series(result.all(), start, end)
    return {
        "trend": trend,
        "totalRevenue": money(sum(d["revenue"] for d in trend)),
        "totalOrders": sum(d["orders"] for d in trend),
        "days": days,
    }


async def order_status_breakdown(session: AsyncSession) -> Dict[str, Any]:
    result = await session.execute(
        select(Order.status, func.count(Order.id)).where(CONFIRMED).group_by(Order.status)
    )
    counts: Dict[OrderStatus, int] = {}
    for raw, count in result.all():
        status = normalize_status(raw)
        counts[status] = counts.get(status, 0) + count

    breakdown = [
        {"status": label, "count": counts.get(status, 0), "color": color}
        for status, label, color in STATUS_COLORS
        if counts.get(status, 0) > 0
    ]
    return {"breakdown": breakdown, "total": sum(counts.values())}


# =============================================================================
# Product and order lists
# =============================================================================


def _first_image(product: Product) -> Optional[str]:
    return normalize_image_path(product.main_image)


async def low_stock_products(session: AsyncSession, limit: int = 5) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Product)
        .where(func.coalesce(Product.stock, 0) <= LOW_STOCK_THRESHOLD)
        .options(selectinload(Product.category), selectinload(Product.images))
        .order_by(Product.stock.asc(), Product.id.asc())
        .limit(limit)
    )
    return [
        {
            "id": p.id,
            "name": p.name,
            "stock": p.stock or 0,
            "price": float(p.price or 0),
            "category": p.category.name if p.category else "Uncategorized",
            "image": _first_image(p),
        }
        for p in result.scalars().all()
    ]


async def top_products(session: AsyncSession, limit: int = 5) -> List[Dict[str, Any]]:
    """Best sellers by delivered units."""
    units = func.sum(Order.quantity)
    result = await session.execute(
        select(Order.product_id, units.label("units"), func.sum(Order.total).label("revenue"))
        .where(Order.status.in_(DELIVERED_RAW))
        .group_by(Order.product_id)
        .order_by(units.desc())
        .limit(limit)
    )
    rows = result.all()
    if not rows:
        return []

    products = await session.execute(
        select(Product)
        .where(Product.id.in_([r.product_id for r in rows]))
        .options(selectinload(Product.category), selectinload(Product.images))
    )
    by_id = {p.id: p for p in products.scalars().all()}

    top = []
    for row in rows:
        product = by_id.get(row.product_id)
        top.append(
            {
                "id": row.product_id,
                "name": product.name if product else "Unknown Product",
                "unitsSold": int(row.units or 0),
                "revenue": money(row.revenue),
                "stock": (product.stock or 0) if product else 0,
                "category": product.category.name if product and product.category else "Uncategorized",
                "image": _first_image(product) if product else None,
            }
        )
    return top


def recent_order_row(order: Order) -> Dict[str, Any]:
    return {
        "id": str(order.id),
        "customerName": order.customer_name,
        "customerEmail": order.customer_email,
        "productName": order.product_name or "Unknown",
        "quantity": order.quantity or 1,
        "totalAmount": float(order.total or 0),
        "status": normalize_status(order.status).value,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
    }


async def recent_orders(session: AsyncSession, limit: int = 10) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Order).where(CONFIRMED).order_by(Order.created_at.desc()).limit(limit)
    )
    return [recent_order_row(o) for o in result.scalars().all()]


@log_operation("dashboard")
async def full_dashboard(session: AsyncSession, sales_days: int = 7) -> Dict[str, Any]:
    return {
        "kpis": await kpis(session),
        "salesOverview": await sales_overview(session, sales_days),
        "orderStatus": await order_status_breakdown(session),
        "lowStock": await low_stock_products(session, 5),
        "topProducts": await top_products(session, 5),
        "recentOrders": await recent_orders(session, 10),
        "generatedAt": utcnow().isoformat(),
    }


# =============================================================================
# Notifications and search
# =============================================================================


async def notifications(session: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """New orders, stock alerts and cancellations, newest first."""
    now = now or utcnow()
    day_ago = now - timedelta(hours=24)
    hour_ago = now - timedelta(hours=1)
    items: List[Dict[str, Any]] = []

    new_orders = await session.execute(
        select(Order)
        .where(CONFIRMED, Order.created_at >= day_ago)
        .order_by(Order.created_at.desc())
        .limit(5)
    )
    for order in new_orders.scalars().all():
        created = as_utc(order.created_at)
        items.append(
            {
                "id": f"order-{order.id}",
                "type": "new_order",
                "title": "New Order",
                "message": f"{order.customer_name} placed an order for Rs. {float(order.total or 0):.2f}",
                "time": created,
                "isNew": created >= hour_ago,
                "link": f"/admin/orders?highlight={order.id}",
                "icon": "order",
            }
        )

    low_stock = await session.execute(
        select(Product)
        .where(func.coalesce(Product.stock, 0) <= LOW_STOCK_THRESHOLD)
        .order_by(Product.stock.asc(), Product.id.asc())
        .limit(5)
    )
    for product in low_stock.scalars().all():
        items.append(
            {
                "id": f"stock-{product.id}",
                "type": "low_stock",
                "title": "Low Stock Alert",
                "message": f"{product.name} has only {product.stock or 0} units left",
                "time": now,
                "isNew": (product.stock or 0) == 0,
                "link": "/admin/inventory",
                "icon": "warning",
            }
        )

    cancelled = await session.execute(
        select(Order)
        .where(Order.status.in_(CANCELLED_RAW), Order.created_at >= day_ago)
        .order_by(Order.created_at.desc())
        .limit(3)
    )
    for order in cancelled.scalars().all():
        items.append(
            {
                "id": f"cancel-{order.id}",
                "type": "cancelled",
                "title": "Order Cancelled",
                "message": f"Order #{order.id} by {order.customer_name} was cancelled",
                "time": as_utc(order.created_at),
                "isNew": False,
                "link": f"/admin/orders?highlight={order.id}",
                "icon": "cancel",
            }
        )

    items.sort(key=lambda n: n["time"], reverse=True)
    for item in items:
        item["time"] = item["time"].isoformat()
    return {
        "notifications": items[:NOTIFICATION_LIMIT],
        "unreadCount": sum(1 for n in items if n["isNew"]),
        "total": len(items),
    }


async def global_search(session: AsyncSession, query: Optional[str]) -> Dict[str, List[Dict[str, Any]]]:
    term = (query or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return {"products": [], "orders": [], "users": []}
    pattern = f"%{term}%"

    products = await session.execute(
        select(Product)
        .where(or_(Product.name.ilike(pattern), Product.description_short.ilike(pattern)))
        .options(selectinload(Product.category), selectinload(Product.images))
        .limit(5)
    )
    orders = await session.execute(
        select(Order)
        .where(
            or_(
                Order.customer_first_name.ilike(pattern),
                Order.customer_last_name.ilike(pattern),
                Order.customer_email.ilike(pattern),
                Order.product_name.ilike(pattern),
                cast(Order.id, String).ilike(pattern),
            )
        )
        .order_by(Order.created_at.desc())
        .limit(5)
    )
    users = await session.execute(
        select(User).where(User.username.ilike(pattern), User.role == UserRole.USER.value).limit(5)
    )

    return {
        "products": [
            {
                "id": p.id,
                "name": p.name,
                "price": float(p.price or 0),
                "stock": p.stock or 0,
                "category": p.category.name if p.category else "Uncategorized",
                "categorySlug": p.category.slug if p.category else "",
                "image": _first_image(p),
                "type": "product",
            }
            for p in products.scalars().all()
        ],
        "orders": [
            {
                "id": str(o.id),
                "customerName": o.customer_name,
                "total": float(o.total or 0),
                "status": o.status,
                "createdAt": o.created_at.isoformat() if o.created_at else None,
                "type": "order",
            }
            for o in orders.scalars().all()
        ],
        "users": [
            {"id": u.id, "name": u.username, "type": "user"}
            for u in users.scalars().all()
        ],
    }
