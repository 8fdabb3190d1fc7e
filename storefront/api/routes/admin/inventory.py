"""Back-office stock levels and manual adjustments."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse, StockAdjustRequest
from storefront.api.shared.auth import AuthUser, require_admin
from storefront.api.shared.helpers import domain_errors
from storefront.db.session import get_db
from storefront.logging_config import get_logger
from storefront.services import stock
from storefront.services.events import publish_product_update

logger = get_logger(__name__)

router = APIRouter(
    prefix="/admin/inventory",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.get("/categories")
async def inventory_categories(session: AsyncSession = Depends(get_db)) -> dict:
    return {"success": True, "categories": await stock.category_options(session)}


@router.get("")
async def list_inventory(
    category: Optional[str] = Query(None),
    stock_status: Optional[str] = Query(None, alias="stockStatus"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
) -> dict:
    result = await stock.inventory_list(
        session, category=category, status=stock_status, search=search, page=page, limit=limit
    )
    return {"success": True, **result}


@router.get("/{product_id}", responses={404: {"model": ErrorResponse}})
async def get_product_stock(product_id: int, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        product = await stock.product_stock(session, product_id)
    return {"success": True, "product": product}


@router.patch(
    "/{product_id}/adjust",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def adjust_stock(
    product_id: int,
    body: StockAdjustRequest,
    admin: AuthUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Add or remove up to 100 units; stock never goes below zero."""
    with domain_errors():
        change = await stock.adjust_stock(session, product_id, body.delta)

    logger.info(
        "Stock adjusted",
        extra={"product_id": product_id, "delta": change.delta, "admin_id": admin.id},
    )
    publish_product_update("stock", product_id, stock=change.new_stock)
    return {"success": True, "message": "Stock updated successfully", **change.to_dict()}
