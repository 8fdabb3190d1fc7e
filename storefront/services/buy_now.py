"""Buy-now checkout sessions."""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import BuyNowSession, BuyNowSessionStatus, Product, ShippingRule
from storefront.db.models.base import utcnow
from storefront.db.models.buy_now import default_expiry
from storefront.exceptions import NotFoundError, SessionStateError, StockError, ValidationError
from storefront.logging_config import get_logger
from storefront.services.catalog import normalize_image_path, parse_int

logger = get_logger(__name__)

# (id, label, default description, default charge, rule charge column, rule description column)
_SHIPPING_OPTIONS = (
    ("courier", "Courier Charge", "Standard courier delivery", 100.0,
     "courier_charge", "courier_desc"),
    ("home_valley", "Home Delivery (Inside Valley)", "Door-to-door inside Kathmandu Valley", 150.0,
     "home_delivery_charge", "home_delivery_desc"),
    ("outside_valley", "Outside Valley", "Delivery outside Kathmandu Valley", 250.0,
     "outside_valley_charge", "outside_valley_desc"),
)


def shipping_options(rule: Optional[ShippingRule]) -> List[Dict[str, Any]]:
    """Shipping choices offered at checkout; the product's rule overrides the defaults."""
    options = []
    for option_id, label, description, charge, charge_field, desc_field in _SHIPPING_OPTIONS:
        if rule is not None:
            charge = float(getattr(rule, charge_field) or 0) or charge
            description = getattr(rule, desc_field) or description
        options.append(
            {
                "id": option_id,
                "label": label,
                "description": description,
                "charge": charge,
                "amount": charge,
            }
        )
    return options


def join_sizes(selected_size: Any) -> Optional[str]:
    if isinstance(selected_size, (list, tuple)):
        return ",".join(str(s) for s in selected_size)
    if selected_size in (None, ""):
        return None
    return str(selected_size)


def session_view(session: BuyNowSession) -> Dict[str, Any]:
    return {
        "id": str(session.id),
        "productId": session.product_id,
        "productName": session.product_name,
        "productImage": session.product_image,
        "selectedSize": session.selected_size,
        "quantity": session.quantity,
        "unitPrice": session.unit_price,
        "subtotal": session.subtotal,
        "shippingOptions": session.shipping_options,
        "status": session.status,
        "expiresAt": session.expires_at.isoformat() if session.expires_at else None,
    }


def _parse_quantity(quantity: Any) -> int:
    if quantity is None or quantity == "":
        return 1
    value = parse_int(quantity, default=0)
    if value < 1:
        raise ValidationError("Quantity must be at least 1")
    return value


async def create_session(
    session: AsyncSession,
    product_id: Any,
    selected_size: Any = None,
    quantity: Any = None,
    user_id: Optional[int] = None,
) -> BuyNowSession:
    """Snapshot a product into a new 24-hour checkout session.

    Raises:
        ValidationError: If the product id or quantity is invalid.
        NotFoundError: If the product does not exist.
        StockError: If the quantity exceeds available stock.
    """
    pid = parse_int(product_id, default=0)
    if not pid:
        raise ValidationError("Product ID is required")
    requested = _parse_quantity(quantity)

    result = await session.execute(
        select(Product)
        .where(Product.id == pid)
        .options(selectinload(Product.images), selectinload(Product.shipping_rule))
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")

    available = product.stock or 0
    if available < requested:
        raise StockError(f"Not enough stock. Available: {available}", current_stock=available, requested=requested)

    checkout = BuyNowSession(
        user_id=user_id,
        product_id=product.id,
        product_name=product.name,
        product_image=normalize_image_path(product.main_image),
        selected_size=join_sizes(selected_size),
        quantity=requested,
        unit_price=float(product.price or 0),
        shipping_options=shipping_options(product.shipping_rule),
        status=BuyNowSessionStatus.ACTIVE.value,
        expires_at=default_expiry(),
    )
    session.add(checkout)
    await session.flush()
    logger.info(
        "Buy-now session created",
        extra={"session_id": str(checkout.id), "product_id": product.id, "quantity": requested},
    )
    return checkout


def _parse_session_id(session_id: Any) -> Optional[uuid.UUID]:
    if isinstance(session_id, uuid.UUID):
        return session_id
    try:
        return uuid.UUID(str(session_id))
    except (TypeError, ValueError):
        return None


async def find_session(session: AsyncSession, session_id: Any) -> Optional[BuyNowSession]:
    parsed = _parse_session_id(session_id)
    if parsed is None:
        return None
    return await session.get(BuyNowSession, parsed)


async def get_usable_session(session: AsyncSession, session_id: Any) -> BuyNowSession:
    """Load a session for checkout, expiring it if its time is up.

    Raises:
        NotFoundError: If the session does not exist.
        SessionStateError: (gone) If it expired or was already used.
    """
    checkout = await find_session(session, session_id)
    if checkout is None:
        raise NotFoundError("Session not found")

    if checkout.status == BuyNowSessionStatus.COMPLETED.value:
        raise SessionStateError("Session already used", gone=True)
    if checkout.status == BuyNowSessionStatus.EXPIRED.value:
        raise SessionStateError("Session has expired", gone=True)
    if checkout.is_past_expiry():
        checkout.status = BuyNowSessionStatus.EXPIRED.value
        await session.flush()
        raise SessionStateError("Session has expired", gone=True)
    return checkout


async def update_session(
    session: AsyncSession,
    session_id: Any,
    selected_size: Any = None,
    quantity: Any = None,
    size_given: bool = False,
) -> BuyNowSession:
    """Change size or quantity of an active session.

    Raises:
        NotFoundError: If the session or its product does not exist.
        SessionStateError: If the session is not active.
        StockError: If the new quantity exceeds available stock.
    """
    checkout = await find_session(session, session_id)
    if checkout is None:
        raise NotFoundError("Session not found")
    if not checkout.is_active:
        raise SessionStateError("Session is no longer active")

    if size_given:
        checkout.selected_size = join_sizes(selected_size)

    if quantity is not None:
        requested = _parse_quantity(quantity)
        product = await session.get(Product, checkout.product_id)
        if product is None:
            raise NotFoundError("Product not found")
        available = product.stock or 0
        if available < requested:
            raise StockError(
                f"Not enough stock. Available: {available}",
                current_stock=available,
                requested=requested,
            )
        checkout.quantity = requested

    await session.flush()
    return checkout


async def expire_overdue_sessions(session: AsyncSession) -> int:
    """Mark every active session past its expiry as expired; return how many."""
    result = await session.execute(
        update(BuyNowSession)
        .where(
            BuyNowSession.status == BuyNowSessionStatus.ACTIVE.value,
            BuyNowSession.expires_at <= utcnow(),
        )
        .values(status=BuyNowSessionStatus.EXPIRED.value)
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0
    logger.info(f"Expired {count} buy-now session(s)")
    return count
