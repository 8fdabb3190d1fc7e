"""Catalogue rules and admin product management.

Covers tag normalization, the exclusive-offer rule, image path
normalization and the create/update/delete operations behind the admin
product endpoints. Form values arrive as strings from multipart bodies,
so the parsing helpers here are lenient: unparseable numbers become
``None`` and malformed JSON falls back to a default.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import (
    Category,
    Product,
    ProductFeature,
    ProductImage,
    ProductSize,
    ShippingRule,
)
from storefront.exceptions import NotFoundError, OfferValidationError, ValidationError
from storefront.logging_config import get_logger

logger = get_logger(__name__)

EXCLUSIVE_OFFER = "exclusive-offer"
BEST_SELLING = "best-selling"
NEW_ARRIVAL = "new-arrival"
ACCESSORIES = "accessories"

KNOWN_TAGS = (EXCLUSIVE_OFFER, BEST_SELLING, NEW_ARRIVAL, ACCESSORIES)

MAX_PRODUCT_IMAGES = 6

# (column, camelCase alias) pairs for shipping rule form fields
_SHIPPING_FIELDS = (
    ("courier_charge", "courierCharge"),
    ("courier_desc", "courierDesc"),
    ("home_delivery_charge", "homeDeliveryCharge"),
    ("home_delivery_desc", "homeDeliveryDesc"),
    ("outside_valley_charge", "outsideValleyCharge"),
    ("outside_valley_desc", "outsideValleyDesc"),
)

_SENTINEL = object()


# =============================================================================
# Normalization helpers
# =============================================================================


def normalize_tag(tag: Optional[str]) -> Optional[str]:
    """Map UI labels like ``"Exclusive Offer"`` onto stored tags."""
    if tag is None:
        return None
    value = str(tag).strip().lower()
    if not value:
        return None
    return value.replace(" ", "-").replace("_", "-")


def normalize_image_path(path: Optional[str]) -> Optional[str]:
    """Return a browser-usable image URL for a stored image path."""
    if not path:
        return None
    fixed = str(path).strip().replace("\\", "/")
    if not fixed:
        return None
    if fixed.startswith(("http://", "https://")):
        return fixed
    if fixed.startswith("/uploads/"):
        return fixed
    fixed = fixed.lstrip("/")
    if fixed.startswith("uploads/"):
        return f"/{fixed}"
    return f"/uploads/{fixed}"


def parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_int(value: Any, default: int = 0) -> int:
    number = parse_number(value)
    return int(number) if number is not None else default


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_json_field(value: Any, default: Any) -> Any:
    """Decode a JSON-encoded form field; never raises."""
    if value is None or value == "":
        return default
    if not isinstance(value, (str, bytes)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def clean_text_list(values: Any) -> List[str]:
    """Trim entries and drop empty ones; non-lists yield an empty list."""
    if not isinstance(values, (list, tuple)):
        return []
    cleaned = []
    for item in values:
        text = str(item if item is not None else "").strip()
        if text:
            cleaned.append(text)
    return cleaned


def _first_present(fields: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in fields and fields[name] is not None:
            return fields[name]
    return _SENTINEL


# =============================================================================
# Offer rule
# =============================================================================


@dataclass
class OfferFields:
    """Normalized tag and offer columns ready to store."""

    tag: Optional[str]
    old_price: Optional[float]
    exclusive_offer_end: Optional[datetime]


def validate_offer_fields(
    tag: Optional[str],
    price: Optional[float],
    old_price: Optional[float],
    offer_end: Any,
) -> OfferFields:
    """Apply the exclusive-offer rule.

    An exclusive offer needs an old price above the price and an end date.
    Any other tag drops both old price and end date.

    Raises:
        OfferValidationError: If an exclusive offer is incomplete.
    """
    normalized = normalize_tag(tag)
    end = parse_datetime(offer_end)

    if normalized != EXCLUSIVE_OFFER:
        return OfferFields(tag=normalized, old_price=None, exclusive_offer_end=None)

    if old_price is None:
        raise OfferValidationError("Old price is required when tag is Exclusive Offer.")
    if price is not None and old_price <= price:
        raise OfferValidationError("Old price must be greater than price for Exclusive Offer.")
    if end is None:
        raise OfferValidationError("Exclusive offer end date is required for Exclusive Offer.")

    return OfferFields(tag=normalized, old_price=old_price, exclusive_offer_end=end)


# =============================================================================
# Loading
# =============================================================================


def _product_options() -> list:
    return [
        selectinload(Product.category),
        selectinload(Product.images),
        selectinload(Product.features),
        selectinload(Product.sizes),
        selectinload(Product.shipping_rule),
    ]


async def get_product(session: AsyncSession, product_id: int) -> Product:
    """Load a product with its child collections.

    Raises:
        NotFoundError: If no product has this id.
    """
    result = await session.execute(
        select(Product).where(Product.id == product_id).options(*_product_options())
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return product


async def get_category_by_slug(session: AsyncSession, slug: str) -> Optional[Category]:
    result = await session.execute(select(Category).where(Category.slug == slug))
    return result.scalar_one_or_none()


async def list_categories(session: AsyncSession) -> Sequence[Category]:
    result = await session.execute(select(Category).order_by(Category.name.asc()))
    return result.scalars().all()


async def resolve_category_id(session: AsyncSession, fields: Mapping[str, Any]) -> Optional[int]:
    """Find the category named by ``category_id`` or ``categorySlug``.

    Returns None when neither field is given.

    Raises:
        ValidationError: If a field is given but names no category.
    """
    raw_id = _first_present(fields, "category_id", "categoryId")
    if raw_id is not _SENTINEL and str(raw_id).strip():
        category_id = parse_int(raw_id, default=0)
        if category_id and await session.get(Category, category_id) is not None:
            return category_id
        raise ValidationError("Valid category is required")

    slug = _first_present(fields, "categorySlug", "slug", "category")
    if slug is not _SENTINEL and str(slug).strip():
        category = await get_category_by_slug(session, str(slug).strip())
        if category is None:
            raise ValidationError("Valid category is required")
        return category.id

    return None


# =============================================================================
# Child collections
# =============================================================================


def _shipping_values(shipping: Mapping[str, Any]) -> dict:
    values = {}
    for column, alias in _SHIPPING_FIELDS:
        raw = shipping.get(column, shipping.get(alias))
        if column.endswith("_charge"):
            values[column] = parse_number(raw)
        else:
            values[column] = str(raw) if raw not in (None, "") else None
    return values


def _has_shipping_values(shipping: Any) -> bool:
    if not isinstance(shipping, Mapping):
        return False
    return any(
        shipping.get(column) is not None or shipping.get(alias) is not None
        for column, alias in _SHIPPING_FIELDS
    )


def _optional_text(value: Any) -> Optional[str]:
    if value is _SENTINEL or value is None:
        return None
    text = str(value)
    return text if text.strip() else None


# =============================================================================
# Create / update / delete
# =============================================================================


async def create_product(
    session: AsyncSession,
    fields: Mapping[str, Any],
    image_paths: Sequence[str] = (),
) -> Product:
    """Create a product from admin form fields and already-saved images.

    Raises:
        ValidationError: If name, price or category are missing or invalid.
        OfferValidationError: If the exclusive-offer rule fails.
    """
    name = str(fields.get("name") or "").strip()
    if not name:
        raise ValidationError("Product name is required")

    price = parse_number(fields.get("price"))
    if price is None or price < 0:
        raise ValidationError("Valid price is required")

    category_id = await resolve_category_id(session, fields)
    if category_id is None:
        raise ValidationError("Valid category is required")

    old_price = _first_present(fields, "old_price", "oldPrice")
    offer_end = _first_present(fields, "exclusive_offer_end", "exclusiveOfferEnd", "exclusiveOfferEndsAt")
    offer = validate_offer_fields(
        fields.get("tag"),
        price,
        parse_number(None if old_price is _SENTINEL else old_price),
        None if offer_end is _SENTINEL else offer_end,
    )

    shipping = parse_json_field(fields.get("shipping"), None)

    product = Product(
        name=name,
        price=price,
        category_id=category_id,
        tag=offer.tag,
        old_price=offer.old_price,
        exclusive_offer_end=offer.exclusive_offer_end,
        stock=max(0, parse_int(fields.get("stock"), default=0)),
        description_short=_optional_text(
            _first_present(fields, "description_short", "descriptionShort", "descriptionTitle")
        ),
        description_long=_optional_text(
            _first_present(fields, "description_long", "descriptionLong", "descriptionLongSummary")
        ),
        images=[ProductImage(image_url=path) for path in list(image_paths)[:MAX_PRODUCT_IMAGES]],
        features=[
            ProductFeature(feature_text=text)
            for text in clean_text_list(parse_json_field(fields.get("features"), []))
        ],
        sizes=[
            ProductSize(size_text=text)
            for text in clean_text_list(parse_json_field(fields.get("sizes"), []))
        ],
        shipping_rule=ShippingRule(**_shipping_values(shipping)) if _has_shipping_values(shipping) else None,
    )
    session.add(product)
    await session.flush()

    logger.info(f"Product created: {product.name}", extra={"product_id": product.id})
    return product


async def update_product(
    session: AsyncSession,
    product_id: int,
    fields: Mapping[str, Any],
    new_image_paths: Sequence[str] = (),
) -> Product:
    """Apply a partial update.

    Only fields present in ``fields`` change. Child collections are
    replaced only when their field is present; images are replaced when
    ``existingImages`` is present or new files were uploaded. The offer
    rule is checked against the merged values.

    Raises:
        NotFoundError: If the product does not exist.
        ValidationError: If a supplied field is invalid.
        OfferValidationError: If the merged offer fields break the rule.
    """
    product = await get_product(session, product_id)

    if fields.get("name") is not None:
        name = str(fields["name"]).strip()
        if not name:
            raise ValidationError("Product name cannot be empty")
        product.name = name

    if fields.get("price") is not None:
        price = parse_number(fields["price"])
        if price is None or price < 0:
            raise ValidationError("Price must be a valid number")
        product.price = price

    if fields.get("stock") is not None:
        product.stock = max(0, parse_int(fields["stock"], default=0))

    description_short = _first_present(fields, "description_short", "descriptionShort", "descriptionTitle")
    if description_short is not _SENTINEL:
        product.description_short = _optional_text(description_short)
    description_long = _first_present(fields, "description_long", "descriptionLong", "descriptionLongSummary")
    if description_long is not _SENTINEL:
        product.description_long = _optional_text(description_long)

    category_id = await resolve_category_id(session, fields)
    if category_id is not None:
        product.category_id = category_id

    tag = fields["tag"] if fields.get("tag") is not None else product.tag

    old_price = product.old_price
    raw_old_price = _first_present(fields, "old_price", "oldPrice")
    if raw_old_price is not _SENTINEL and str(raw_old_price).strip():
        old_price = parse_number(raw_old_price)

    offer_end: Any = product.exclusive_offer_end
    raw_offer_end = _first_present(fields, "exclusive_offer_end", "exclusiveOfferEnd", "exclusiveOfferEndsAt")
    if raw_offer_end is not _SENTINEL:
        offer_end = raw_offer_end if str(raw_offer_end).strip() else None

    offer = validate_offer_fields(tag, product.price, old_price, offer_end)
    product.tag = offer.tag
    product.old_price = offer.old_price
    product.exclusive_offer_end = offer.exclusive_offer_end

    existing = fields.get("existingImages")
    if existing is not None or new_image_paths:
        kept = existing if isinstance(existing, list) else parse_json_field(existing, [])
        paths = [p.replace("\\", "/") for p in clean_text_list(kept)] + list(new_image_paths)
        product.images = [ProductImage(image_url=path) for path in paths[:MAX_PRODUCT_IMAGES]]

    if fields.get("features") is not None:
        product.features = [
            ProductFeature(feature_text=text)
            for text in clean_text_list(parse_json_field(fields["features"], []))
        ]

    if fields.get("sizes") is not None:
        product.sizes = [
            ProductSize(size_text=text)
            for text in clean_text_list(parse_json_field(fields["sizes"], []))
        ]

    if fields.get("shipping") is not None:
        shipping = parse_json_field(fields["shipping"], None)
        # one rule per product: remove the old row before inserting its replacement
        product.shipping_rule = None
        await session.flush()
        if isinstance(shipping, Mapping):
            product.shipping_rule = ShippingRule(**_shipping_values(shipping))

    await session.flush()
    logger.info(f"Product updated: {product.name}", extra={"product_id": product.id})
    return product


async def delete_product(session: AsyncSession, product_id: int) -> None:
    """Delete a product; images, features, sizes, shipping, ratings and comments go with it.

    Raises:
        NotFoundError: If the product does not exist.
    """
    product = await session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    await session.delete(product)
    await session.flush()
    logger.info("Product deleted", extra={"product_id": product_id})


# =============================================================================
# Admin views
# =============================================================================


def admin_product_view(product: Product) -> dict:
    """Everything the admin edit form needs."""
    offer_end = product.exclusive_offer_end
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "old_price": product.old_price,
        "stock": product.stock or 0,
        "tag": product.tag,
        "category_id": product.category_id,
        "categorySlug": product.category.slug if product.category else None,
        "description_short": product.description_short,
        "description_long": product.description_long,
        # datetime-local input format
        "exclusive_offer_end": offer_end.strftime("%Y-%m-%dT%H:%M") if offer_end else None,
        "images": [normalize_image_path(i.image_url) for i in product.images],
        "features": [f.feature_text for f in product.features],
        "sizes": [s.size_text for s in product.sizes],
        "shipping": product.shipping_rule.as_dict() if product.shipping_rule else None,
    }


async def list_products_in_category(session: AsyncSession, category_id: int) -> List[dict]:
    """Admin table rows for one category, newest first."""
    result = await session.execute(
        select(Product)
        .where(Product.category_id == category_id)
        .options(selectinload(Product.images))
        .order_by(Product.id.desc())
    )
    return [
        {
            "id": p.id,
            "name": p.name,
            "price": p.price,
            "old_price": p.old_price,
            "tag": p.tag,
            "exclusive_offer_end": p.exclusive_offer_end.isoformat() if p.exclusive_offer_end else None,
            "stock": p.stock or 0,
            "images": [normalize_image_path(i.image_url) for i in p.images],
            "main_image": normalize_image_path(p.images[0].image_url) if p.images else None,
        }
        for p in result.scalars().all()
    ]


# =============================================================================
# Seeding
# =============================================================================

DEFAULT_CATEGORIES = (
    ("Men", "men"),
    ("Women", "women"),
    ("Kids", "kids"),
    ("Electronics", "electronics"),
    ("Glasses", "glasses"),
    ("Grocery", "grocery"),
)


async def seed_categories(session: AsyncSession) -> List[str]:
    """Insert the default categories that are missing; returns the new slugs."""
    existing = set((await session.execute(select(Category.slug))).scalars().all())
    created = []
    for name, slug in DEFAULT_CATEGORIES:
        if slug in existing:
            continue
        session.add(Category(name=name, slug=slug))
        created.append(slug)
    await session.flush()
    return created
