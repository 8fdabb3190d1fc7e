"""Error handling utilities for API responses.

Every error body has the shape::

    {"success": false, "message": "...", "error_code": "ERR_XXX_NNN", ...extra}

The ``message`` strings used by the storefront client are part of the
contract, so routes usually pass an explicit ``detail`` to
``raise_api_error``; the registry message is the fallback.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, NoReturn, Optional

from fastapi import HTTPException, status

from storefront.exceptions import (
    AccountBlockedError,
    InvalidTransitionError,
    NotFoundError,
    OfferValidationError,
    PermissionDeniedError,
    SessionStateError,
    StockError,
    StorefrontError,
    UserStatusError,
    ValidationError,
)
from storefront.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Codes - Machine-readable codes for client handling and support
# =============================================================================


class ErrorCode(str, Enum):
    """Standardized error codes for API responses.

    Format: ERR_{CATEGORY}_{NUMBER}
    Categories:
    - AUTH: Authentication and authorization
    - VAL: Validation
    - RES: Resource (not found, conflict)
    - STOCK: Inventory
    - ORDER: Order lifecycle
    - SESSION: Buy-now sessions
    - LIMIT: Rate limiting
    - SYS: System/server errors
    """

    # Authentication errors
    AUTH_MISSING_TOKEN = "ERR_AUTH_001"
    AUTH_INVALID_TOKEN = "ERR_AUTH_002"
    AUTH_ADMIN_REQUIRED = "ERR_AUTH_003"
    AUTH_FORBIDDEN = "ERR_AUTH_004"
    AUTH_INVALID_CREDENTIALS = "ERR_AUTH_005"
    AUTH_ACCOUNT_BLOCKED = "ERR_AUTH_006"
    AUTH_ACCOUNT_SUSPENDED = "ERR_AUTH_007"

    # Validation errors
    VAL_REQUIRED_FIELD = "ERR_VAL_001"
    VAL_INVALID_FORMAT = "ERR_VAL_002"
    VAL_OUT_OF_RANGE = "ERR_VAL_003"
    VAL_QUERY_TOO_SHORT = "ERR_VAL_004"
    VAL_INVALID_OFFER = "ERR_VAL_005"
    VAL_INVALID_FILE = "ERR_VAL_006"

    # Resource errors
    RES_NOT_FOUND = "ERR_RES_001"
    RES_ALREADY_EXISTS = "ERR_RES_002"
    RES_CONFLICT = "ERR_RES_003"

    # Stock errors
    STOCK_INSUFFICIENT = "ERR_STOCK_001"
    STOCK_INVALID_ADJUSTMENT = "ERR_STOCK_002"

    # Order errors
    ORDER_INVALID_STATUS = "ERR_ORDER_001"
    ORDER_INVALID_TRANSITION = "ERR_ORDER_002"
    ORDER_NOT_CONFIRMABLE = "ERR_ORDER_003"

    # Buy-now session errors
    SESSION_EXPIRED = "ERR_SESSION_001"
    SESSION_USED = "ERR_SESSION_002"
    SESSION_INACTIVE = "ERR_SESSION_003"

    # Rate limiting errors
    LIMIT_RATE_EXCEEDED = "ERR_LIMIT_001"

    # System errors
    UNKNOWN = "ERR_SYS_001"
    SYS_DATABASE_ERROR = "ERR_SYS_002"
    SYS_STORAGE_ERROR = "ERR_SYS_003"


# =============================================================================
# Error Information Dataclass
# =============================================================================


@dataclass
class ErrorInfo:
    """Complete error information for API responses."""

    code: ErrorCode
    message: str
    action: str
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


def _info(code: ErrorCode, message: str, action: str, status_code: int) -> ErrorInfo:
    return ErrorInfo(code=code, message=message, action=action, status_code=status_code)


ERROR_REGISTRY: Dict[ErrorCode, ErrorInfo] = {
    # Authentication errors
    ErrorCode.AUTH_MISSING_TOKEN: _info(
        ErrorCode.AUTH_MISSING_TOKEN,
        "Access denied. No token provided.",
        "Please log in to continue.",
        status.HTTP_401_UNAUTHORIZED,
    ),
    ErrorCode.AUTH_INVALID_TOKEN: _info(
        ErrorCode.AUTH_INVALID_TOKEN,
        "Invalid or expired token.",
        "Please log in again.",
        status.HTTP_401_UNAUTHORIZED,
    ),
    ErrorCode.AUTH_ADMIN_REQUIRED: _info(
        ErrorCode.AUTH_ADMIN_REQUIRED,
        "Access denied. Admins only.",
        "Sign in with an administrator account.",
        status.HTTP_403_FORBIDDEN,
    ),
    ErrorCode.AUTH_FORBIDDEN: _info(
        ErrorCode.AUTH_FORBIDDEN,
        "Access denied",
        "You do not have access to this resource.",
        status.HTTP_403_FORBIDDEN,
    ),
    ErrorCode.AUTH_INVALID_CREDENTIALS: _info(
        ErrorCode.AUTH_INVALID_CREDENTIALS,
        "Invalid password",
        "Check your username and password.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.AUTH_ACCOUNT_BLOCKED: _info(
        ErrorCode.AUTH_ACCOUNT_BLOCKED,
        "Your account has been blocked. Please contact support.",
        "Contact support.",
        status.HTTP_403_FORBIDDEN,
    ),
    ErrorCode.AUTH_ACCOUNT_SUSPENDED: _info(
        ErrorCode.AUTH_ACCOUNT_SUSPENDED,
        "Your account is suspended.",
        "Contact support for assistance.",
        status.HTTP_403_FORBIDDEN,
    ),
    # Validation errors
    ErrorCode.VAL_REQUIRED_FIELD: _info(
        ErrorCode.VAL_REQUIRED_FIELD,
        "A required field is missing.",
        "Fill in every required field.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.VAL_INVALID_FORMAT: _info(
        ErrorCode.VAL_INVALID_FORMAT,
        "Invalid input format.",
        "Check the value and try again.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.VAL_OUT_OF_RANGE: _info(
        ErrorCode.VAL_OUT_OF_RANGE,
        "Value out of allowed range.",
        "Use a value within the allowed range.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.VAL_QUERY_TOO_SHORT: _info(
        ErrorCode.VAL_QUERY_TOO_SHORT,
        "Search query must be at least 2 characters",
        "Type a longer search term.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.VAL_INVALID_OFFER: _info(
        ErrorCode.VAL_INVALID_OFFER,
        "Invalid exclusive offer fields.",
        "Set an old price above the price and an offer end date.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.VAL_INVALID_FILE: _info(
        ErrorCode.VAL_INVALID_FILE,
        "Invalid file upload.",
        "Upload a JPEG, PNG, WebP or AVIF image.",
        status.HTTP_400_BAD_REQUEST,
    ),
    # Resource errors
    ErrorCode.RES_NOT_FOUND: _info(
        ErrorCode.RES_NOT_FOUND,
        "The requested resource was not found.",
        "Check the identifier and try again.",
        status.HTTP_404_NOT_FOUND,
    ),
    ErrorCode.RES_ALREADY_EXISTS: _info(
        ErrorCode.RES_ALREADY_EXISTS,
        "A resource with this identifier already exists.",
        "Use a different identifier.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.RES_CONFLICT: _info(
        ErrorCode.RES_CONFLICT,
        "The request conflicts with the current state of the resource.",
        "Refresh and try again.",
        status.HTTP_400_BAD_REQUEST,
    ),
    # Stock errors
    ErrorCode.STOCK_INSUFFICIENT: _info(
        ErrorCode.STOCK_INSUFFICIENT,
        "Not enough stock.",
        "Reduce the quantity and try again.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.STOCK_INVALID_ADJUSTMENT: _info(
        ErrorCode.STOCK_INVALID_ADJUSTMENT,
        "Invalid stock adjustment.",
        "Use a non-zero delta of at most 100.",
        status.HTTP_400_BAD_REQUEST,
    ),
    # Order errors
    ErrorCode.ORDER_INVALID_STATUS: _info(
        ErrorCode.ORDER_INVALID_STATUS,
        "Invalid status. Must be one of: PLACED, PROCESSING, SHIPPED, DELIVERED, CANCELLED",
        "Choose a valid order status.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.ORDER_INVALID_TRANSITION: _info(
        ErrorCode.ORDER_INVALID_TRANSITION,
        "This status change is not allowed.",
        "Follow the order lifecycle.",
        status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.ORDER_NOT_CONFIRMABLE: _info(
        ErrorCode.ORDER_NOT_CONFIRMABLE,
        "Order cannot be confirmed.",
        "Only orders awaiting confirmation can be confirmed.",
        status.HTTP_400_BAD_REQUEST,
    ),
    # Buy-now session errors
    ErrorCode.SESSION_EXPIRED: _info(
        ErrorCode.SESSION_EXPIRED,
        "Session has expired",
        "Start checkout again from the product page.",
        status.HTTP_410_GONE,
    ),
    ErrorCode.SESSION_USED: _info(
        ErrorCode.SESSION_USED,
        "Session already used",
        "Start checkout again from the product page.",
        status.HTTP_410_GONE,
    ),
    ErrorCode.SESSION_INACTIVE: _info(
        ErrorCode.SESSION_INACTIVE,
        "Session is no longer active",
        "Start checkout again from the product page.",
        status.HTTP_400_BAD_REQUEST,
    ),
    # Rate limiting errors
    ErrorCode.LIMIT_RATE_EXCEEDED: _info(
        ErrorCode.LIMIT_RATE_EXCEEDED,
        "Too many requests. Please slow down.",
        "Wait a moment before trying again.",
        status.HTTP_429_TOO_MANY_REQUESTS,
    ),
    # System errors
    ErrorCode.UNKNOWN: _info(
        ErrorCode.UNKNOWN,
        "An unexpected error occurred.",
        "Please try again. If the problem persists, contact support.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    ),
    ErrorCode.SYS_DATABASE_ERROR: _info(
        ErrorCode.SYS_DATABASE_ERROR,
        "A database error occurred.",
        "Please try again later.",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    ),
    ErrorCode.SYS_STORAGE_ERROR: _info(
        ErrorCode.SYS_STORAGE_ERROR,
        "Failed to store the uploaded file.",
        "Please try again later.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    ),
}


# =============================================================================
# Error Code Based API
# =============================================================================


class APIError(HTTPException):
    """HTTPException carrying a storefront error code.

    The detail is a dict that the application's HTTPException handler
    flattens into the response body:
    {
        "message": "Human-readable message",
        "error_code": "ERR_XXX_NNN",
        "action": "What the user can do",
        ...extra
    }
    """

    def __init__(
        self,
        error_code: ErrorCode,
        detail: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        status_code: Optional[int] = None,
        **extra: Any,
    ):
        error_info = get_error_info(error_code)
        self.error_code = error_code
        self.action = error_info.action

        super().__init__(
            status_code=status_code or error_info.status_code,
            detail={
                "message": detail or error_info.message,
                "error_code": error_code.value,
                "action": error_info.action,
                **extra,
            },
            headers=headers,
        )


def raise_api_error(
    error_code: ErrorCode,
    exception: Optional[Exception] = None,
    detail: Optional[str] = None,
    log_level: str = "warning",
    status_code: Optional[int] = None,
    **extra: Any,
) -> NoReturn:
    """Raise an APIError with a standardized error code.

    Args:
        error_code: The standardized error code
        exception: The original exception (logged but not exposed)
        detail: Customer-facing message (overrides the registry default)
        log_level: Logging level for the original exception
        status_code: Override of the registry status code
        **extra: Extra fields merged into the response body

    Raises:
        APIError: Always
    """
    if exception is not None:
        error_info = get_error_info(error_code)
        log_func = getattr(logger, log_level, logger.error)
        log_func(
            f"[{error_code.value}] {error_info.message}: {exception}",
            exc_info=log_level == "error",
        )

    raise APIError(error_code=error_code, detail=detail, status_code=status_code, **extra)


def get_error_info(error_code: ErrorCode) -> ErrorInfo:
    """Get error information for a given error code."""
    return ERROR_REGISTRY.get(error_code, ERROR_REGISTRY[ErrorCode.UNKNOWN])


def create_error_response(
    error_code: ErrorCode,
    detail: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Create a standardized error body for non-exception contexts."""
    error_info = get_error_info(error_code)
    return {
        "success": False,
        "message": detail or error_info.message,
        "error_code": error_code.value,
        **extra,
    }


# =============================================================================
# Domain exception translation
# =============================================================================


def raise_for_domain_error(exc: StorefrontError) -> NoReturn:
    """Translate a service-layer exception into an APIError.

    The exception message becomes the response ``message`` and its
    ``extra`` fields are merged into the body.
    """
    if isinstance(exc, StockError):
        code = ErrorCode.STOCK_INSUFFICIENT
        if exc.current_stock is None or exc.requested is None:
            code = ErrorCode.STOCK_INVALID_ADJUSTMENT
    elif isinstance(exc, InvalidTransitionError):
        code = ErrorCode.ORDER_INVALID_TRANSITION
    elif isinstance(exc, SessionStateError):
        code = ErrorCode.SESSION_EXPIRED if exc.gone else ErrorCode.SESSION_INACTIVE
    elif isinstance(exc, OfferValidationError):
        code = ErrorCode.VAL_INVALID_OFFER
    elif isinstance(exc, ValidationError):
        code = ErrorCode.VAL_INVALID_FORMAT
    elif isinstance(exc, NotFoundError):
        code = ErrorCode.RES_NOT_FOUND
    elif isinstance(exc, PermissionDeniedError):
        code = ErrorCode.AUTH_FORBIDDEN
    elif isinstance(exc, AccountBlockedError):
        code = ErrorCode.AUTH_ACCOUNT_BLOCKED
    elif isinstance(exc, UserStatusError):
        code = ErrorCode.RES_CONFLICT
    else:
        code = ErrorCode.UNKNOWN

    raise APIError(error_code=code, detail=exc.message, **exc.extra)


@contextmanager
def domain_errors() -> Iterator[None]:
    """Run a block of service calls, translating domain errors to APIError.

    Example:
        with domain_errors():
            order = await orders.confirm_order(session, order_id, user.id)
    """
    try:
        yield
    except StorefrontError as exc:
        raise_for_domain_error(exc)
