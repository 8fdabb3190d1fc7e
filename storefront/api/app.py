"""FastAPI application for the Storefront API."""

import os
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront import __version__
from storefront.api.models import ErrorResponse
from storefront.api.routes import routers
from storefront.api.shared.helpers import ErrorCode
from storefront.api.shared.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from storefront.config import get_settings
from storefront.db.session import close_db, engine, init_db
from storefront.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

settings = get_settings()

HEALTH_TRANSACTIONS = ("/health", "/health/ready", "GET /health", "GET /health/ready")


def _init_sentry() -> None:
    """Initialize Sentry SDK with FastAPI integrations."""
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.info("SENTRY_DSN not configured, Sentry error tracking disabled")
        return

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=settings.server.environment,
        release=os.getenv("RELEASE_VERSION", __version__),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        send_default_pii=False,
        traces_sampler=_traces_sampler,
    )
    logger.info("Sentry SDK initialized", extra={"environment": settings.server.environment})


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    transaction_name = sampling_context.get("transaction_context", {}).get("name", "")
    if transaction_name in HEALTH_TRANSACTIONS:
        return 0.0
    return float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))


configure_logging(
    level=settings.logging.level.value,
    json_output=settings.logging.format.value == "json",
)
_init_sentry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Storefront API", extra={"version": __version__})
    await init_db()
    yield
    await close_db()
    logger.info("Shutting down Storefront API")


OPENAPI_TAGS = [
    {"name": "auth", "description": "Sign-up, sign-in, password recovery and profile."},
    {"name": "categories", "description": "Product categories."},
    {
        "name": "products",
        "description": "Storefront catalogue: category rows, product pages, exclusive offers "
        "and recommendations. Responses are never cached.",
    },
    {"name": "events", "description": "Server-sent product change notifications."},
    {"name": "ratings", "description": "Product star ratings."},
    {"name": "comments", "description": "Product comments."},
    {"name": "search", "description": "Text search, suggestions and search by image."},
    {
        "name": "checkout",
        "description": "Buy-now sessions that snapshot a product for a 24-hour checkout.",
    },
    {
        "name": "orders",
        "description": "Two-step checkout: create a pending order, then confirm it to take stock.",
    },
    {
        "name": "admin",
        "description": "Back office: products, orders, inventory, users, dashboard and sales report.",
    },
    {"name": "health", "description": "Liveness and readiness probes."},
]

app = FastAPI(
    title="Storefront API",
    description="""
# Storefront API

Online shop and admin back office.

## Authentication

Protected endpoints take a JWT issued by `POST /api/auth/login`:
```
Authorization: Bearer <token>
```

## Error Responses

All errors follow this format:

```json
{
  "success": false,
  "message": "Customer-facing message",
  "error_code": "ERR_STOCK_001"
}
```
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

# Correlation IDs first so every later log line carries one
app.add_middleware(CorrelationIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

for router in routers:
    app.include_router(router, prefix="/api")

settings.uploads.upload_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(settings.uploads.upload_dir)), name="uploads")


@app.get("/", tags=["health"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Storefront API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check():
    return {"status": "healthy", "version": __version__}


@app.get("/health/ready", tags=["health"])
async def readiness_check():
    """Readiness check verifying the database.

    Returns 200 when the database answers, 503 otherwise.
    """
    checks: dict[str, Any] = {}
    healthy = True
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        checks["database"] = False
        checks["database_error"] = str(e)
        healthy = False
        logger.warning(f"Database health check failed: {e}")

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if healthy else "not_ready", "checks": checks},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as ``{success: false, message, ...}``."""
    if isinstance(exc.detail, dict):
        content = {"success": False, **exc.detail}
    else:
        content = {"success": False, "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    sentry_sdk.capture_exception(exc)

    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    detail = "An unexpected error occurred. Please try again later." if settings.server.is_production else str(exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            message="Server error",
            error="Internal server error",
            detail=detail,
            error_code=ErrorCode.UNKNOWN.value,
        ).model_dump(exclude_none=True),
    )


def custom_openapi() -> dict[str, Any]:
    """Generate the OpenAPI schema with the bearer security scheme."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=app.openapi_tags,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Token from `POST /api/auth/login`, sent as `Bearer <token>`.",
        },
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storefront.api.app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
