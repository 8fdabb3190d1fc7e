"""Back-office order management."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse, OrderStatusUpdate
from storefront.api.shared.auth import require_admin
from storefront.api.shared.helpers import domain_errors
from storefront.config import get_settings
from storefront.db.session import get_db
from storefront.services import admin_orders, orders
from storefront.services.events import publish_product_update

router = APIRouter(
    prefix="/admin/orders",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.get("/stats")
async def order_stats(session: AsyncSession = Depends(get_db)) -> dict:
    stats = await admin_orders.order_stats(session)
    return {"success": True, "stats": stats}


@router.get("")
async def list_orders(
    scope: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Active or historical orders, newest first.

    Customer drafts awaiting confirmation are never listed.
    """
    with domain_errors():
        result = await admin_orders.list_admin_orders(
            session,
            scope=scope,
            status=status,
            search=search,
            page=page,
            limit=limit,
            base_url=get_settings().uploads.base_url,
        )
    return {"success": True, **result}


@router.get("/{order_id}", responses={404: {"model": ErrorResponse}})
async def get_order(order_id: str, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        order = await orders.get_order(session, order_id)
    return {"success": True, "order": orders.admin_order_view(order, get_settings().uploads.base_url)}


@router.patch(
    "/{order_id}/status",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_status(
    order_id: str,
    body: OrderStatusUpdate,
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        result = await admin_orders.update_order_status(
            session, order_id, body.status, base_url=get_settings().uploads.base_url
        )
    restored = result.get("stockRestored")
    if restored:
        publish_product_update("stock", restored["productId"], stock=restored["newStock"])
    return {"success": True, **result}
