"""Back-office dashboard widgets."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse
from storefront.api.shared.auth import require_admin
from storefront.db.session import get_db
from storefront.services import dashboard

router = APIRouter(
    prefix="/admin/dashboard",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.get("")
async def get_dashboard(
    days: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db),
) -> dict:
    data = await dashboard.full_dashboard(session, dashboard.parse_sales_days(days))
    return {"success": True, "data": data}


@router.get("/kpis")
async def get_kpis(session: AsyncSession = Depends(get_db)) -> dict:
    return {"success": True, "data": await dashboard.kpis(session)}


@router.get("/sales")
async def get_sales(
    days: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Daily delivered revenue for the last 7 or 30 days."""
    data = await dashboard.sales_overview(session, dashboard.parse_sales_days(days))
    return {"success": True, "data": data}


@router.get("/recent-orders")
async def get_recent_orders(
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = Depends(get_db),
) -> dict:
    return {"success": True, "data": await dashboard.recent_orders(session, limit)}


@router.get("/notifications")
async def get_notifications(session: AsyncSession = Depends(get_db)) -> dict:
    return {"success": True, **(await dashboard.notifications(session))}


@router.get("/search")
async def search(
    q: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db),
) -> dict:
    return {"success": True, "results": await dashboard.global_search(session, q)}
