"""Rate limiting for sensitive and expensive endpoints.

Limits are enforced by slowapi, keyed on the client address and stored
in Redis when ``REDIS_URL`` points at one (in memory otherwise).

Usage:
    from storefront.api.shared.middleware.rate_limit import RATE_LIMITS, limiter

    @router.post("/login")
    @limiter.limit(RATE_LIMITS["sensitive"].to_slowapi_format())
    async def login(request: Request, ...):
        ...

A request over the limit gets a 429 with the standard error body and a
``Retry-After`` header.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from storefront.api.shared.helpers.errors import ErrorCode, create_error_response
from storefront.config import get_settings
from storefront.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Rate Limit Constants
# =============================================================================


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit.

    Attributes:
        requests: Number of requests allowed
        window_seconds: Time window in seconds
        description: Human-readable description
    """

    requests: int
    window_seconds: int
    description: str

    def to_slowapi_format(self) -> str:
        """Convert to slowapi limit string format, e.g. ``10/minute``."""
        if self.window_seconds == 60:
            return f"{self.requests}/minute"
        elif self.window_seconds == 3600:
            return f"{self.requests}/hour"
        elif self.window_seconds == 86400:
            return f"{self.requests}/day"
        requests_per_minute = max(1, (self.requests * 60) // self.window_seconds)
        return f"{requests_per_minute}/minute"


RATE_LIMITS: dict[str, RateLimitConfig] = {
    # signup, login, security question lookup, password reset
    "sensitive": RateLimitConfig(
        requests=10,
        window_seconds=60,
        description="10 attempts per minute",
    ),
    "search": RateLimitConfig(
        requests=30,
        window_seconds=60,
        description="30 searches per minute",
    ),
    # image search uploads
    "upload": RateLimitConfig(
        requests=10,
        window_seconds=60,
        description="10 uploads per minute",
    ),
}

HEADER_RETRY_AFTER = "Retry-After"


# =============================================================================
# Limiter
# =============================================================================


def _build_limiter() -> Limiter:
    server = get_settings().server
    return Limiter(
        key_func=get_remote_address,
        storage_uri=server.redis_url or "memory://",
        enabled=server.rate_limit_enabled,
    )


limiter = _build_limiter()


def get_rate_limit_exceeded_headers(retry_after: int) -> dict[str, str]:
    """Headers for a 429 response."""
    return {HEADER_RETRY_AFTER: str(max(1, retry_after))}


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    limit_item = getattr(getattr(exc, "limit", None), "limit", None)
    if limit_item is None:
        return 60
    return int(limit_item.get_expiry())


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render slowapi's RateLimitExceeded as the standard error body."""
    retry_after = _retry_after_seconds(exc)
    logger.warning(
        f"Rate limit exceeded on {request.url.path}",
        extra={"client": get_remote_address(request), "limit": str(exc.detail)},
    )
    return JSONResponse(
        status_code=429,
        content=create_error_response(ErrorCode.LIMIT_RATE_EXCEEDED, retryAfter=retry_after),
        headers={
            **get_rate_limit_exceeded_headers(retry_after),
            "X-RateLimit-Reset": str(int(time.time()) + retry_after),
        },
    )
