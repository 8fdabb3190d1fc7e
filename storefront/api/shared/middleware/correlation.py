"""Correlation ID middleware for request tracing."""

import uuid

import sentry_sdk
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.logging_config import clear_context, set_context

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to every request, log record and Sentry event."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())

        set_context(correlation_id=correlation_id)
        sentry_sdk.set_tag("correlation_id", correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            clear_context()
