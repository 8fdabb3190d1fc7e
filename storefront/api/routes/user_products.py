"""Public catalogue endpoints used by the storefront pages."""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse
from storefront.api.shared.helpers import domain_errors
from storefront.db.session import get_db
from storefront.services import products

router = APIRouter(prefix="/user/products", tags=["products"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


def no_cache(response: Response) -> None:
    """Dependency stamping the no-cache headers on every response."""
    response.headers.update(NO_CACHE_HEADERS)


@router.get(
    "/latest/{slug}",
    dependencies=[Depends(no_cache)],
    responses={404: {"model": ErrorResponse}},
)
async def latest_products(
    slug: str,
    limit: int = Query(6, ge=1, le=50),
    session: AsyncSession = Depends(get_db),
) -> list:
    with domain_errors():
        return await products.latest_in_category(session, slug, limit)


@router.get(
    "/category/{slug}",
    dependencies=[Depends(no_cache)],
    responses={404: {"model": ErrorResponse}},
)
async def category_products(slug: str, session: AsyncSession = Depends(get_db)) -> list:
    with domain_errors():
        return await products.products_in_category(session, slug)


@router.get(
    "/category/{slug}/sections",
    dependencies=[Depends(no_cache)],
    responses={404: {"model": ErrorResponse}},
)
async def category_sections(slug: str, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        return await products.category_sections(session, slug)


@router.get("/exclusive-offers", dependencies=[Depends(no_cache)])
async def exclusive_offers(session: AsyncSession = Depends(get_db)) -> list:
    return await products.exclusive_offers(session)


@router.get(
    "/product/{product_id}",
    dependencies=[Depends(no_cache)],
    responses={404: {"model": ErrorResponse}},
)
async def product_detail(product_id: int, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        return await products.product_detail(session, product_id)


@router.get(
    "/product/{product_id}/recommendations",
    dependencies=[Depends(no_cache)],
    responses={404: {"model": ErrorResponse}},
)
async def product_recommendations(product_id: int, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        return await products.recommendations(session, product_id)
