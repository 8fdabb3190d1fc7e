"""Search the catalogue by uploaded photo.

Each catalogue image on disk is compared with the upload twice: an MD5
digest for byte-identical files (score 100) and a perceptual difference
hash for resized or re-encoded copies (score 90 within the distance
threshold).
"""

from __future__ import annotations

import asyncio
import hashlib
import io
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import imagehash
from PIL import Image, UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.config import UploadConfig, get_settings
from storefront.db.models import Category, Product
from storefront.exceptions import ValidationError
from storefront.logging_config import get_logger
from storefront.services.product_search import search_result
from storefront.services.uploads import upload_path

logger = get_logger(__name__)

HASH_DISTANCE_THRESHOLD = 6
EXACT_SCORE = 100
SIMILAR_SCORE = 90
MAX_RESULTS = 12
NO_MATCH_MESSAGE = "No matching product image found."


@dataclass
class ImageFingerprint:
    md5: str
    dhash: Optional[imagehash.ImageHash]


def fingerprint(content: bytes) -> ImageFingerprint:
    """Hash raw image bytes; ``dhash`` is None when Pillow cannot decode them."""
    digest = hashlib.md5(content).hexdigest()
    try:
        with Image.open(io.BytesIO(content)) as image:
            return ImageFingerprint(md5=digest, dhash=imagehash.dhash(image))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.debug(f"Could not compute perceptual hash: {e}")
        return ImageFingerprint(md5=digest, dhash=None)


def fingerprint_upload(content: bytes) -> ImageFingerprint:
    """Fingerprint the uploaded photo.

    Raises:
        ValidationError: If the bytes are empty or not a decodable image.
    """
    if not content:
        raise ValidationError("Image file is required")
    result = fingerprint(content)
    if result.dhash is None:
        raise ValidationError("Uploaded file is not a valid image")
    return result


def compare(upload: ImageFingerprint, candidate: ImageFingerprint) -> Optional[tuple]:
    """Return ``(score, distance)`` for a match, or None."""
    if upload.md5 == candidate.md5:
        return EXACT_SCORE, 0
    if upload.dhash is None or candidate.dhash is None:
        return None
    distance = upload.dhash - candidate.dhash
    if distance <= HASH_DISTANCE_THRESHOLD:
        return SIMILAR_SCORE, distance
    return None


async def _candidates(session: AsyncSession, category_hint: Optional[str]) -> List[Product]:
    query = (
        select(Product)
        .where(Product.images.any())
        .options(selectinload(Product.category), selectinload(Product.images))
        .order_by(Product.id.desc())
    )
    hint = (category_hint or "").strip().lower()
    if hint:
        query = query.join(Category, Category.id == Product.category_id).where(Category.slug == hint)
    return list((await session.execute(query)).scalars().all())


def match_products(
    upload: ImageFingerprint,
    products: List[Product],
    config: Optional[UploadConfig] = None,
) -> List[Dict[str, Any]]:
    """Best match per product, ordered by score then distance."""
    cfg = config or get_settings().uploads
    best: Dict[int, Dict[str, Any]] = {}

    for product in products:
        for image in product.images:
            path = upload_path(image.image_url, cfg)
            if path is None or not path.is_file():
                continue
            try:
                candidate = fingerprint(path.read_bytes())
            except OSError as e:
                logger.warning(f"Could not read product image {path}: {e}")
                continue
            outcome = compare(upload, candidate)
            if outcome is None:
                continue
            score, distance = outcome
            current = best.get(product.id)
            if current is None or (score, -distance) > (current["matchScore"], -current["distance"]):
                best[product.id] = {**search_result(product), "matchScore": score, "distance": distance}

    ranked = sorted(best.values(), key=lambda m: (-m["matchScore"], m["distance"]))
    return ranked[:MAX_RESULTS]


async def search_by_image(
    session: AsyncSession,
    content: bytes,
    category_hint: Optional[str] = None,
    config: Optional[UploadConfig] = None,
) -> Dict[str, Any]:
    upload = fingerprint_upload(content)
    products = await _candidates(session, category_hint)
    # Hashing catalogue files is blocking disk and CPU work
    matches = await asyncio.to_thread(match_products, upload, products, config)

    logger.info(
        "Image search finished",
        extra={"candidates": len(products), "matches": len(matches), "category_hint": category_hint},
    )
    payload: Dict[str, Any] = {
        "success": True,
        "searchType": "image",
        "count": len(matches),
        "products": matches,
    }
    if not matches:
        payload["message"] = NO_MATCH_MESSAGE
    return payload
