"""Shared API helpers."""

from storefront.api.shared.helpers.errors import (
    ERROR_REGISTRY,
    APIError,
    ErrorCode,
    ErrorInfo,
    create_error_response,
    domain_errors,
    get_error_info,
    raise_api_error,
    raise_for_domain_error,
)

__all__ = [
    "ERROR_REGISTRY",
    "APIError",
    "ErrorCode",
    "ErrorInfo",
    "create_error_response",
    "domain_errors",
    "get_error_info",
    "raise_api_error",
    "raise_for_domain_error",
]
