"""API middleware."""

from storefront.api.shared.middleware.correlation import CorrelationIdMiddleware
from storefront.api.shared.middleware.rate_limit import (
    RATE_LIMITS,
    RateLimitConfig,
    limiter,
    rate_limit_exceeded_handler,
)

__all__ = [
    "CorrelationIdMiddleware",
    "RATE_LIMITS",
    "RateLimitConfig",
    "limiter",
    "rate_limit_exceeded_handler",
]
