"""Back-office sales report."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse
from storefront.api.shared.auth import require_admin
from storefront.api.shared.helpers import domain_errors
from storefront.config import get_settings
from storefront.db.session import get_db
from storefront.services import sales_report
from storefront.services.sales_report import ReportFilters
from storefront.services.stock import category_options

router = APIRouter(
    prefix="/admin/sales-report",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


def report_filters(
    fromDate: Optional[str] = Query(None),
    toDate: Optional[str] = Query(None),
    categoryId: Optional[str] = Query(None),
) -> ReportFilters:
    with domain_errors():
        return ReportFilters.parse(fromDate, toDate, categoryId)


@router.get("/categories")
async def report_categories(session: AsyncSession = Depends(get_db)) -> dict:
    return {"success": True, "categories": await category_options(session)}


@router.get("/kpis")
async def report_kpis(
    filters: ReportFilters = Depends(report_filters),
    session: AsyncSession = Depends(get_db),
) -> dict:
    return {"success": True, "data": await sales_report.report_kpis(session, filters)}


@router.get("/trend")
async def report_trend(
    filters: ReportFilters = Depends(report_filters),
    session: AsyncSession = Depends(get_db),
) -> dict:
    return {"success": True, "data": await sales_report.sales_trend(session, filters)}


@router.get("")
async def full_report(
    filters: ReportFilters = Depends(report_filters),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Everything the report page renders, for one filter set."""
    data = await sales_report.full_report(session, filters, get_settings().uploads.base_url)
    return {"success": True, "data": data}
