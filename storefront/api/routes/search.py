"""Product search: text, suggestions and search-by-image."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import ErrorResponse
from storefront.api.shared.helpers import ErrorCode, domain_errors, raise_api_error
from storefront.api.shared.middleware import RATE_LIMITS, limiter
from storefront.config import get_settings
from storefront.db.session import get_db
from storefront.exceptions import ValidationError
from storefront.logging_config import get_logger
from storefront.services import image_search, product_search

logger = get_logger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/products", responses={400: {"model": ErrorResponse}})
@limiter.limit(RATE_LIMITS["search"].to_slowapi_format())
async def search_products(
    request: Request,
    q: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Case-insensitive name search, ranked by match position.

    ``type=quick`` returns at most 6 results for the header dropdown,
    ``type=full`` up to 100 for the results page.
    """
    try:
        query = product_search.validate_search_query(q, type)
    except ValidationError as e:
        raise_api_error(ErrorCode.VAL_QUERY_TOO_SHORT, detail=e.message)
    return await product_search.search_products(session, query)


@router.get("/suggestions")
async def search_suggestions(session: AsyncSession = Depends(get_db)) -> dict:
    products = await product_search.suggestions(session)
    return {"success": True, "products": products}


@router.post("/image", responses={400: {"model": ErrorResponse}})
@limiter.limit(RATE_LIMITS["upload"].to_slowapi_format())
async def search_by_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    categoryHint: Optional[str] = Form(None),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Find catalogue products whose images match the uploaded one."""
    if image is None or not image.filename:
        raise_api_error(ErrorCode.VAL_INVALID_FILE, detail="Image file is required")

    try:
        content = await image.read()
        with domain_errors():
            return await image_search.search_by_image(
                session,
                content,
                category_hint=categoryHint or None,
                config=get_settings().uploads,
            )
    finally:
        # the spooled temp file is removed on close
        await image.close()
