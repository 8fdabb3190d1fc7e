"""Unit tests for domain error translation."""

import pytest
from fastapi import status

from storefront.api.shared.helpers.errors import (
    APIError,
    ErrorCode,
    create_error_response,
    domain_errors,
    get_error_info,
    raise_for_domain_error,
)
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


@pytest.mark.parametrize(
    "exc,code,status_code",
    [
        (ValidationError("Bad input"), ErrorCode.VAL_INVALID_FORMAT, 400),
        (OfferValidationError("Old price is required"), ErrorCode.VAL_INVALID_OFFER, 400),
        (NotFoundError("Product not found"), ErrorCode.RES_NOT_FOUND, 404),
        (PermissionDeniedError("Access denied"), ErrorCode.AUTH_FORBIDDEN, 403),
        (AccountBlockedError("Blocked"), ErrorCode.AUTH_ACCOUNT_BLOCKED, 403),
        (UserStatusError("User is already blocked"), ErrorCode.RES_CONFLICT, 400),
        (InvalidTransitionError("Cannot change status"), ErrorCode.ORDER_INVALID_TRANSITION, 400),
        (SessionStateError("Session has expired", gone=True), ErrorCode.SESSION_EXPIRED, 410),
        (SessionStateError("Session is no longer active"), ErrorCode.SESSION_INACTIVE, 400),
        (StockError("Delta must be a non-zero integer"), ErrorCode.STOCK_INVALID_ADJUSTMENT, 400),
        (StorefrontError("Something odd"), ErrorCode.UNKNOWN, 500),
    ],
)
def test_raise_for_domain_error(exc, code, status_code):
    with pytest.raises(APIError) as exc_info:
        raise_for_domain_error(exc)

    error = exc_info.value
    assert error.error_code == code
    assert error.status_code == status_code
    assert error.detail["message"] == exc.message
    assert error.detail["error_code"] == code.value


def test_stock_shortfall_carries_quantities():
    with pytest.raises(APIError) as exc_info:
        raise_for_domain_error(StockError("Not enough stock. Available: 2", current_stock=2, requested=5))

    detail = exc_info.value.detail
    assert exc_info.value.error_code == ErrorCode.STOCK_INSUFFICIENT
    assert detail["availableQty"] == 2
    assert detail["requestedQty"] == 5


def test_domain_errors_context_manager():
    with pytest.raises(APIError) as exc_info:
        with domain_errors():
            raise NotFoundError("Order not found")

    assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND


def test_domain_errors_leaves_other_exceptions_alone():
    with pytest.raises(KeyError):
        with domain_errors():
            raise KeyError("missing")


def test_api_error_uses_registry_defaults():
    error = APIError(ErrorCode.AUTH_MISSING_TOKEN)

    assert error.status_code == 401
    assert error.detail["message"] == "Access denied. No token provided."
    assert error.detail["action"] == get_error_info(ErrorCode.AUTH_MISSING_TOKEN).action


def test_create_error_response():
    body = create_error_response(ErrorCode.LIMIT_RATE_EXCEEDED, retryAfter=30)

    assert body == {
        "success": False,
        "message": "Too many requests. Please slow down.",
        "error_code": "ERR_LIMIT_001",
        "retryAfter": 30,
    }
