"""Sales analytics for the admin sales report.

Only DELIVERED orders count as sales. Date filters are inclusive: the
``to`` date runs to the end of that UTC day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Order, OrderStatus, Product
from storefront.db.models.base import utcnow
from storefront.exceptions import ValidationError
from storefront.logging_config import get_logger, log_operation
from storefront.services.dashboard import daily_series, day_end, day_start, money
from storefront.services.order_status import ACTIVE_RAW, CANCELLED_RAW, DELIVERED_RAW
from storefront.services.orders import absolute_image_url
from storefront.services.stock import LOW_STOCK_THRESHOLD

logger = get_logger(__name__)

DEFAULT_TREND_DAYS = 30

REPORT_STATUS_COLORS = (
    ("Delivered", DELIVERED_RAW, "#51cf66"),
    ("Processing", ACTIVE_RAW, "#339af0"),
    ("Cancelled", CANCELLED_RAW, "#ff6b6b"),
)


def _parse_date(value: Optional[str], name: str) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid {name}. Use YYYY-MM-DD") from None


@dataclass
class ReportFilters:
    """Query-string filters shared by every report section."""

    from_date: Optional[date] = None
    to_date: Optional[date] = None
    category_id: Optional[int] = None

    @classmethod
    def parse(
        cls,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        category_id: Optional[Any] = None,
    ) -> "ReportFilters":
        category: Optional[int] = None
        if category_id not in (None, "", "all"):
            try:
                category = int(category_id)
            except (TypeError, ValueError):
                raise ValidationError("Invalid categoryId") from None
        return cls(
            from_date=_parse_date(from_date, "fromDate"),
            to_date=_parse_date(to_date, "toDate"),
            category_id=category,
        )

    @property
    def start(self) -> Optional[datetime]:
        return day_start(self.from_date) if self.from_date else None

    @property
    def end(self) -> Optional[datetime]:
        return day_end(self.to_date) if self.to_date else None

    def date_conditions(self) -> list:
        conditions = []
        if self.start is not None:
            conditions.append(Order.created_at >= self.start)
        if self.end is not None:
            conditions.append(Order.created_at <= self.end)
        return conditions

    def as_dict(self) -> Dict[str, Any]:
        return {
            "fromDate": self.from_date.isoformat() if self.from_date else None,
            "toDate": self.to_date.isoformat() if self.to_date else None,
            "categoryId": self.category_id,
        }


def _delivered(filters: ReportFilters) -> list:
    return [Order.status.in_(DELIVERED_RAW), *filters.date_conditions()]


async def report_kpis(session: AsyncSession, filters: ReportFilters) -> Dict[str, Any]:
    delivered_query = select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0)).where(
        *_delivered(filters)
    )
    if filters.category_id is not None:
        delivered_query = delivered_query.join(Product, Product.id == Order.product_id).where(
            Product.category_id == filters.category_id
        )
    delivered_count, total_sales = (await session.execute(delivered_query)).one()

    cancelled = (
        await session.execute(
            select(func.count(Order.id)).where(Order.status.in_(CANCELLED_RAW), *filters.date_conditions())
        )
    ).scalar_one()
    low_stock = (
        await session.execute(
            select(func.count(Product.id)).where(func.coalesce(Product.stock, 0) <= LOW_STOCK_THRESHOLD)
        )
    ).scalar_one()
    total_orders = (
        await session.execute(
            select(func.count(Order.id)).where(
                Order.status != OrderStatus.PENDING_CONFIRMATION.value, *filters.date_conditions()
            )
        )
    ).scalar_one()

    delivered_count = int(delivered_count or 0)
    return {
        "totalSales": money(total_sales),
        "deliveredOrders": delivered_count,
        "avgOrderValue": money(float(total_sales or 0) / delivered_count) if delivered_count else 0.0,
        "cancelledOrders": cancelled,
        "lowStockProducts": low_stock,
        "totalOrders": total_orders,
    }


async def sales_trend(
    session: AsyncSession, filters: ReportFilters, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Daily delivered revenue; defaults to the 30 days before ``to``/today."""
    end = filters.to_date or (now or utcnow()).date()
    start = filters.from_date or (end - timedelta(days=DEFAULT_TREND_DAYS))
    result = await session.execute(
        select(Order.created_at, Order.total).where(
            Order.status.in_(DELIVERED_RAW),
            Order.created_at >= day_start(start),
            Order.created_at <= day_end(end),
        )
    )
    return daily_series(result.all(), start, end)


async def category_breakdown(session: AsyncSession, filters: ReportFilters) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Order.product_id, Order.total, Order.quantity).where(*_delivered(filters))
    )
    rows = result.all()
    if not rows:
        return []

    products = await session.execute(
        select(Product)
        .where(Product.id.in_({r.product_id for r in rows}))
        .options(selectinload(Product.category))
    )
    categories = {p.id: p.category for p in products.scalars().all()}

    stats: Dict[int, Dict[str, Any]] = {}
    for row in rows:
        category = categories.get(row.product_id)
        key = category.id if category else 0
        entry = stats.setdefault(
            key,
            {
                "id": key,
                "name": category.name if category else "Uncategorized",
                "revenue": 0.0,
                "orders": 0,
                "units": 0,
            },
        )
        entry["revenue"] += float(row.total or 0)
        entry["orders"] += 1
        entry["units"] += row.quantity or 1

    ranked = sorted(stats.values(), key=lambda c: c["revenue"], reverse=True)
    for entry in ranked:
        entry["revenue"] = money(entry["revenue"])
    return ranked


async def status_breakdown(session: AsyncSession, filters: ReportFilters) -> List[Dict[str, Any]]:
    breakdown = []
    for label, raw_values, color in REPORT_STATUS_COLORS:
        count = (
            await session.execute(
                select(func.count(Order.id)).where(Order.status.in_(raw_values), *filters.date_conditions())
            )
        ).scalar_one()
        breakdown.append({"status": label, "count": count, "color": color})
    return breakdown


async def _products_by_id(session: AsyncSession, ids) -> Dict[int, Product]:
    if not ids:
        return {}
    result = await session.execute(
        select(Product)
        .where(Product.id.in_(list(ids)))
        .options(selectinload(Product.category), selectinload(Product.images))
    )
    return {p.id: p for p in result.scalars().all()}


async def report_top_products(
    session: AsyncSession, filters: ReportFilters, base_url: str = "", limit: int = 10
) -> List[Dict[str, Any]]:
    revenue = func.sum(Order.total)
    result = await session.execute(
        select(
            Order.product_id,
            func.max(Order.product_name).label("name"),
            func.max(Order.product_image).label("image"),
            func.sum(Order.quantity).label("units"),
            revenue.label("revenue"),
        )
        .where(*_delivered(filters))
        .group_by(Order.product_id)
        .order_by(revenue.desc())
        .limit(limit)
    )
    rows = result.all()
    products = await _products_by_id(session, {r.product_id for r in rows})

    top = []
    for row in rows:
        product = products.get(row.product_id)
        stock = (product.stock or 0) if product else 0
        image = row.image or (product.main_image if product else None)
        top.append(
            {
                "productId": row.product_id,
                "name": row.name,
                "image": absolute_image_url(image, base_url),
                "category": product.category.name if product and product.category else "Uncategorized",
                "unitsSold": int(row.units or 0),
                "revenue": money(row.revenue),
                "stock": stock,
                "isLowStock": stock <= LOW_STOCK_THRESHOLD,
            }
        )
    return top


async def report_low_stock(
    session: AsyncSession, filters: ReportFilters, base_url: str = "", limit: int = 10
) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Product)
        .where(func.coalesce(Product.stock, 0) <= LOW_STOCK_THRESHOLD)
        .options(selectinload(Product.category), selectinload(Product.images))
        .order_by(Product.stock.asc(), Product.id.asc())
        .limit(limit)
    )
    products = result.scalars().all()
    if not products:
        return []

    sold = await session.execute(
        select(Order.product_id, func.sum(Order.quantity))
        .where(Order.product_id.in_([p.id for p in products]), *_delivered(filters))
        .group_by(Order.product_id)
    )
    units = {pid: int(total or 0) for pid, total in sold.all()}

    return [
        {
            "productId": p.id,
            "name": p.name,
            "image": absolute_image_url(p.main_image, base_url),
            "category": p.category.name if p.category else "Uncategorized",
            "stock": p.stock or 0,
            "price": p.price,
            "unitsSold": units.get(p.id, 0),
        }
        for p in products
    ]


async def top_customers(session: AsyncSession, filters: ReportFilters, limit: int = 10) -> List[Dict[str, Any]]:
    spent = func.sum(Order.total)
    result = await session.execute(
        select(
            Order.customer_email,
            Order.customer_first_name,
            Order.customer_last_name,
            Order.user_id,
            func.count(Order.id).label("orders"),
            spent.label("spent"),
        )
        .where(*_delivered(filters))
        .group_by(
            Order.customer_email,
            Order.customer_first_name,
            Order.customer_last_name,
            Order.user_id,
        )
        .order_by(spent.desc())
        .limit(limit)
    )
    return [
        {
            "userId": row.user_id,
            "name": f"{row.customer_first_name or ''} {row.customer_last_name or ''}".strip(),
            "email": row.customer_email,
            "orderCount": int(row.orders or 0),
            "totalSpent": money(row.spent),
        }
        for row in result.all()
    ]


@log_operation("sales_report")
async def full_report(session: AsyncSession, filters: ReportFilters, base_url: str = "") -> Dict[str, Any]:
    return {
        "kpis": await report_kpis(session, filters),
        "salesTrend": await sales_trend(session, filters),
        "categoryBreakdown": await category_breakdown(session, filters),
        "orderStatusBreakdown": await status_breakdown(session, filters),
        "topProducts": await report_top_products(session, filters, base_url),
        "lowStockProducts": await report_low_stock(session, filters, base_url),
        "topCustomers": await top_customers(session, filters),
        "filters": filters.as_dict(),
        "generatedAt": utcnow().isoformat(),
    }
