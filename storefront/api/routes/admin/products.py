"""Back-office product management.

Create and update take multipart forms: scalar fields as strings,
``features``, ``sizes``, ``shipping`` and ``existingImages`` as JSON
strings, and up to six ``images`` files.
"""


from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from storefront.api.models import ErrorResponse
from storefront.api.shared.auth import AuthUser, require_admin
from storefront.api.shared.helpers import domain_errors
from storefront.api.shared.middleware import RATE_LIMITS, limiter
from storefront.config import get_settings
from storefront.db.session import get_db
from storefront.logging_config import get_logger
from storefront.services import catalog, uploads
from storefront.services.events import publish_product_update

logger = get_logger(__name__)

router = APIRouter(
    prefix="/admin/products",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)

UPLOAD_LIMIT = RATE_LIMITS["upload"].to_slowapi_format()


async def read_product_form(request: Request) -> Tuple[Dict[str, Any], List[UploadFile]]:
    """Split a multipart body into text fields and image files."""
    form = await request.form()
    fields: Dict[str, Any] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            continue
        fields[key] = value
    images = [f for f in form.getlist("images") if isinstance(f, UploadFile) and f.filename]
    return fields, images[: catalog.MAX_PRODUCT_IMAGES]


async def _save_images(images: List[UploadFile]) -> List[str]:
    with domain_errors():
        return await uploads.save_uploads(images, get_settings().uploads)


def _discard(paths: List[str]) -> None:
    for path in paths:
        uploads.remove_upload(path, get_settings().uploads)


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_LIMIT)
async def add_product(
    request: Request,
    admin: AuthUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> dict:
    fields, images = await read_product_form(request)
    saved = await _save_images(images)
    try:
        with domain_errors():
            product = await catalog.create_product(session, fields, saved)
    except Exception:
        _discard(saved)
        raise

    logger.info("Admin added product", extra={"product_id": product.id, "admin_id": admin.id})
    publish_product_update("created", product.id)
    return {"success": True, "message": "Product added successfully", "productId": product.id}


@router.put("/{product_id}")
@limiter.limit(UPLOAD_LIMIT)
async def update_product(
    request: Request,
    product_id: int,
    admin: AuthUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Partial update; only the fields present in the form change."""
    fields, images = await read_product_form(request)
    saved = await _save_images(images)
    try:
        with domain_errors():
            product = await catalog.update_product(session, product_id, fields, saved)
    except Exception:
        _discard(saved)
        raise

    logger.info("Admin updated product", extra={"product_id": product.id, "admin_id": admin.id})
    publish_product_update("updated", product.id)
    return {"success": True, "message": "Product updated successfully", "productId": product.id}


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    admin: AuthUser = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> dict:
    with domain_errors():
        await catalog.delete_product(session, product_id)

    logger.info("Admin deleted product", extra={"product_id": product_id, "admin_id": admin.id})
    publish_product_update("deleted", product_id)
    return {"success": True, "message": "Product deleted successfully"}


@router.get("/category/{category_id}")
async def products_in_category(category_id: int, session: AsyncSession = Depends(get_db)) -> list:
    return await catalog.list_products_in_category(session, category_id)


@router.get("/{product_id}")
async def get_product(product_id: int, session: AsyncSession = Depends(get_db)) -> dict:
    with domain_errors():
        product = await catalog.get_product(session, product_id)
    return catalog.admin_product_view(product)
