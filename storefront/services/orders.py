"""Order creation, confirmation and formatting.

Checkout is two steps. ``create_order`` snapshots the buy-now session
and customer details into a PENDING_CONFIRMATION order without touching
stock. ``confirm_order`` then takes stock under a row lock, writes the
order item snapshot, moves the order to PLACED and completes the session,
all inside the caller's transaction.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import (
    GIFT_BOX_FEE,
    MAX_BARGAIN_RATIO,
    BuyNowSession,
    BuyNowSessionStatus,
    Order,
    OrderItem,
    OrderStatus,
)
from storefront.db.models.base import utcnow
from storefront.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from storefront.logging_config import LogContext, get_logger
from storefront.services.buy_now import find_session
from storefront.services.catalog import normalize_image_path
from storefront.services.order_status import normalize_status
from storefront.services.pagination import offset_for, paginate
from storefront.services.stock import decrease_stock

logger = get_logger(__name__)

CUSTOMER_FIELDS = (
    ("customerEmail", "customer_email"),
    ("customerFirstName", "customer_first_name"),
    ("customerLastName", "customer_last_name"),
    ("customerProvince", "customer_province"),
    ("customerCity", "customer_city"),
    ("customerAddress", "customer_address"),
    ("customerPhone", "customer_phone"),
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_DIGITS = 10


# =============================================================================
# Validation and pricing
# =============================================================================


def validate_customer_form(data: Mapping[str, Any]) -> Dict[str, str]:
    """Check the checkout form and return the trimmed column values.

    Raises:
        ValidationError: Listing missing fields in form order, or naming
            the bad email or phone.
    """
    missing = [
        key for key, _ in CUSTOMER_FIELDS
        if data.get(key) is None or not str(data.get(key)).strip()
    ]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")

    if not EMAIL_RE.match(str(data["customerEmail"])):
        raise ValidationError("Invalid email format")

    digits = re.sub(r"\D", "", str(data["customerPhone"]))
    if len(digits) < MIN_PHONE_DIGITS:
        raise ValidationError(f"Phone number must have at least {MIN_PHONE_DIGITS} digits")

    return {column: str(data[key]).strip() for key, column in CUSTOMER_FIELDS}


def _as_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number == number else 0.0


@dataclass
class OrderTotals:
    """Money breakdown of a single-line order."""

    subtotal: float
    shipping_charge: float
    bargain_discount: float
    gift_box_fee: float
    tax_amount: float

    @property
    def total(self) -> float:
        return (
            self.subtotal
            - self.bargain_discount
            + self.shipping_charge
            + self.gift_box_fee
            + self.tax_amount
        )


def compute_totals(
    unit_price: Any,
    quantity: Any,
    shipping_charge: Any = 0,
    bargain_discount: Any = 0,
    gift_box: bool = False,
) -> OrderTotals:
    """Price an order; the bargain discount is capped at 10% of the subtotal."""
    qty = int(_as_float(quantity)) or 1
    subtotal = _as_float(unit_price) * qty
    discount = max(0.0, min(_as_float(bargain_discount), subtotal * MAX_BARGAIN_RATIO))
    return OrderTotals(
        subtotal=subtotal,
        shipping_charge=max(0.0, _as_float(shipping_charge)),
        bargain_discount=discount,
        gift_box_fee=GIFT_BOX_FEE if gift_box else 0.0,
        tax_amount=0.0,
    )


# =============================================================================
# Create / confirm
# =============================================================================


async def create_order(
    session: AsyncSession,
    data: Mapping[str, Any],
    user_id: Optional[int],
) -> Order:
    """Create a PENDING_CONFIRMATION order from an active session.

    Raises:
        ValidationError: For form errors, a missing shipping type or an
            unusable session.
    """
    customer = validate_customer_form(data)

    shipping_type = str(data.get("shippingType") or "").strip()
    if not shipping_type:
        raise ValidationError("Shipping type is required")

    checkout = await find_session(session, data.get("sessionId"))
    if checkout is None or not checkout.is_active or checkout.is_past_expiry():
        raise ValidationError("Valid session required")

    option = checkout.shipping_option(shipping_type)
    if option is not None:
        shipping_charge = option.get("charge", option.get("amount", 0))
        method_label = option.get("label")
    else:
        shipping_charge = data.get("shippingCharge")
        method_label = None

    gift_box = bool(data.get("giftBox"))
    totals = compute_totals(
        checkout.unit_price,
        checkout.quantity,
        shipping_charge=shipping_charge,
        bargain_discount=data.get("bargainDiscount"),
        gift_box=gift_box,
    )
    bargain_final = data.get("bargainFinalPrice")
    chat_log = data.get("bargainChatLog")

    order = Order(
        session_id=checkout.id,
        user_id=user_id,
        product_id=checkout.product_id,
        product_name=checkout.product_name,
        product_image=checkout.product_image,
        selected_size=checkout.selected_size,
        quantity=checkout.quantity,
        unit_price_snapshot=checkout.unit_price,
        shipping_type=shipping_type,
        shipping_charge_snapshot=totals.shipping_charge,
        shipping_method_label=method_label,
        gift_box=gift_box,
        gift_box_fee=totals.gift_box_fee,
        bargain_discount=totals.bargain_discount,
        bargain_final_price=_as_float(bargain_final) if bargain_final not in (None, "") else None,
        bargain_chat_log=chat_log if isinstance(chat_log, list) else [],
        tax_amount=totals.tax_amount,
        subtotal=totals.subtotal,
        total=totals.total,
        status=OrderStatus.PENDING_CONFIRMATION.value,
        **customer,
    )
    session.add(order)
    await session.flush()
    logger.info(
        "Order created",
        extra={"order_id": str(order.id), "session_id": str(checkout.id), "total": order.total},
    )
    return order


def _parse_order_id(order_id: Any) -> Optional[uuid.UUID]:
    if isinstance(order_id, uuid.UUID):
        return order_id
    try:
        return uuid.UUID(str(order_id))
    except (TypeError, ValueError):
        return None


async def get_order(session: AsyncSession, order_id: Any, with_items: bool = True) -> Order:
    """Load an order by id.

    Raises:
        NotFoundError: If the id is malformed or no order has it.
    """
    parsed = _parse_order_id(order_id)
    if parsed is None:
        raise NotFoundError("Order not found")
    query = select(Order).where(Order.id == parsed)
    if with_items:
        query = query.options(selectinload(Order.items))
    order = (await session.execute(query)).scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


async def confirm_order(session: AsyncSession, order_id: Any, user_id: int) -> Order:
    """Finalize a pending order for its owner.

    Raises:
        NotFoundError: If the order does not exist.
        PermissionDeniedError: If the caller does not own the order.
        ValidationError: If the order is not awaiting confirmation.
        StockError: If stock no longer covers the quantity.
    """
    order = await get_order(session, order_id)
    if order.user_id != user_id:
        raise PermissionDeniedError("Access denied")
    if order.status != OrderStatus.PENDING_CONFIRMATION.value:
        raise ValidationError(f"Order cannot be confirmed. Current status: {order.status}")

    with LogContext(operation="confirm_order", order_id=str(order.id)):
        await decrease_stock(session, order.product_id, order.quantity)

        line_total = float(order.unit_price_snapshot or 0) * int(order.quantity or 1)
        order.items.append(
            OrderItem(
                product_id=order.product_id,
                product_name_snapshot=order.product_name,
                product_image_snapshot=order.product_image,
                size=order.selected_size,
                quantity=order.quantity,
                unit_price_snapshot=order.unit_price_snapshot,
                line_total_snapshot=line_total,
            )
        )

        now = utcnow()
        order.status = OrderStatus.PLACED.value
        order.confirmed_at = now
        order.updated_at = now

        if order.session_id is not None:
            checkout = await session.get(BuyNowSession, order.session_id)
            if checkout is not None:
                checkout.status = BuyNowSessionStatus.COMPLETED.value

        await session.flush()
        logger.info("Order confirmed", extra={"total": order.total})
    return order


# =============================================================================
# Customer order queries
# =============================================================================


async def list_user_orders(
    session: AsyncSession,
    user_id: int,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    conditions = [Order.user_id == user_id]
    if status:
        conditions.append(Order.status == status)

    total = (await session.execute(select(func.count(Order.id)).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .limit(limit)
        .offset(offset_for(page, limit))
    )
    return {
        "orders": [order_summary(o) for o in result.scalars().all()],
        "pagination": paginate(total, page, limit),
    }


# =============================================================================
# Formatting
# =============================================================================


def absolute_image_url(path: Optional[str], base_url: str = "") -> Optional[str]:
    """Image URL usable outside the storefront origin (emails, admin)."""
    fixed = normalize_image_path(path)
    if fixed is None or fixed.startswith(("http://", "https://")):
        return fixed
    return f"{base_url.rstrip('/')}{fixed}"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def customer_view(order: Order) -> Dict[str, Any]:
    return {
        "fullName": f"{order.customer_first_name or ''} {order.customer_last_name or ''}".strip(),
        "firstName": order.customer_first_name or "",
        "lastName": order.customer_last_name or "",
        "email": order.customer_email or "",
        "phone": order.customer_phone or "",
        "province": order.customer_province or "",
        "city": order.customer_city or "",
        "address": order.customer_address or "",
    }


def order_items_view(order: Order, base_url: str = "") -> List[Dict[str, Any]]:
    """Line items, or one item synthesized from the order snapshot."""
    items = list(order.items) if "items" in order.__dict__ else []
    if items:
        return [
            {
                "id": str(item.id),
                "productId": item.product_id,
                "productName": item.product_name_snapshot,
                "productImage": absolute_image_url(item.product_image_snapshot, base_url),
                "size": item.size,
                "quantity": item.quantity,
                "unitPrice": item.unit_price_snapshot,
                "lineTotal": item.line_total_snapshot,
            }
            for item in items
        ]
    quantity = int(order.quantity or 1)
    unit_price = float(order.unit_price_snapshot or 0)
    return [
        {
            "id": None,
            "productId": order.product_id,
            "productName": order.product_name or "Unknown Product",
            "productImage": absolute_image_url(order.product_image, base_url),
            "size": order.selected_size,
            "quantity": quantity,
            "unitPrice": unit_price,
            "lineTotal": unit_price * quantity,
        }
    ]


def order_summary(order: Order, base_url: str = "") -> Dict[str, Any]:
    """Row in the customer's order history."""
    return {
        "id": str(order.id),
        "productId": order.product_id,
        "productName": order.product_name,
        "productImage": absolute_image_url(order.product_image, base_url),
        "selectedSize": order.selected_size,
        "quantity": order.quantity,
        "unitPrice": order.unit_price_snapshot,
        "shippingType": order.shipping_type,
        "shippingCharge": order.shipping_charge_snapshot,
        "giftBox": order.gift_box,
        "giftBoxFee": order.gift_box_fee,
        "bargainDiscount": order.bargain_discount,
        "subtotal": order.subtotal,
        "total": order.total,
        "status": order.status,
        "createdAt": _iso(order.created_at),
    }


def order_detail(order: Order, base_url: str = "") -> Dict[str, Any]:
    """Customer-facing order page payload."""
    return {
        "id": str(order.id),
        "sessionId": str(order.session_id) if order.session_id else None,
        "userId": order.user_id,
        "items": order_items_view(order, base_url),
        "shippingType": order.shipping_type or "Standard",
        "shippingCharge": order.shipping_charge_snapshot or 0,
        "shippingMethodLabel": order.shipping_method_label,
        "giftBox": bool(order.gift_box),
        "giftBoxFee": order.gift_box_fee or 0,
        "bargainApplied": (order.bargain_discount or 0) > 0,
        "bargainDiscount": order.bargain_discount or 0,
        "bargainFinalPrice": order.bargain_final_price,
        "subtotal": order.subtotal or 0,
        "taxAmount": order.tax_amount or 0,
        "total": order.total or 0,
        "customer": customer_view(order),
        "status": order.status,
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
        "confirmedAt": _iso(order.confirmed_at),
    }


def admin_order_view(order: Order, base_url: str = "") -> Dict[str, Any]:
    """Back-office order payload with normalized status and timeline."""
    items = order_items_view(order, base_url)
    label = order.shipping_method_label or f"{order.shipping_type} - Rs {order.shipping_charge_snapshot}"
    return {
        "id": str(order.id),
        "userId": order.user_id,
        "status": normalize_status(order.status).value,
        "rawStatus": order.status,
        "customer": customer_view(order),
        "subtotal": order.subtotal,
        "shippingCharge": order.shipping_charge_snapshot,
        "shippingType": order.shipping_type,
        "shippingMethodLabel": label,
        "giftBox": order.gift_box,
        "giftBoxFee": order.gift_box_fee,
        "bargainDiscount": order.bargain_discount,
        "taxAmount": order.tax_amount,
        "total": order.total,
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
        "confirmedAt": _iso(order.confirmed_at),
        "processedAt": _iso(order.processed_at),
        "shippedAt": _iso(order.shipped_at),
        "deliveredAt": _iso(order.delivered_at),
        "cancelledAt": _iso(order.cancelled_at),
        "items": items,
        "itemsCount": len(items),
    }
