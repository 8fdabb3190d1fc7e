"""Public category lookup."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.models import CategoryResponse, ErrorResponse
from storefront.api.shared.helpers import ErrorCode, raise_api_error
from storefront.db.session import get_db
from storefront.services import catalog

router = APIRouter(prefix="/categories", tags=["catalog"])


@router.get("", response_model=List[CategoryResponse])
async def list_categories(session: AsyncSession = Depends(get_db)) -> List[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in await catalog.list_categories(session)]


@router.get("/{slug}", response_model=CategoryResponse, responses={404: {"model": ErrorResponse}})
async def get_category(slug: str, session: AsyncSession = Depends(get_db)) -> CategoryResponse:
    category = await catalog.get_category_by_slug(session, slug)
    if category is None:
        raise_api_error(ErrorCode.RES_NOT_FOUND, detail="Category not found")
    return CategoryResponse.model_validate(category)
