"""Database session management for async SQLAlchemy.

This module provides async database session management using SQLAlchemy's
async engine and session factories. It's designed for use with FastAPI's
dependency injection system.
"""

import ssl
from typing import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from storefront.config import get_settings
from storefront.logging_config import get_logger

logger = get_logger(__name__)

_db_config = get_settings().database

DATABASE_URL = _db_config.url


def _parse_database_url(url: str) -> tuple[str, dict]:
    """Parse DATABASE_URL and extract asyncpg-incompatible params.

    asyncpg doesn't support sslmode in the URL, so it is stripped and
    converted to an SSL context for connect_args.

    Returns:
        Tuple of (cleaned_url, connect_args)
    """
    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)

    # urlunparse drops the empty netloc of sqlite URLs, so rebuild only when needed
    if "sslmode" not in query_params:
        return url, {}

    sslmode = query_params.pop("sslmode", [None])[0]

    new_query = urlencode({k: v[0] for k, v in query_params.items()}, doseq=False)
    cleaned_url = urlunparse((
        parsed.scheme,
        parsed.netloc,
        parsed.path,
        parsed.params,
        new_query,
        parsed.fragment,
    ))

    connect_args: dict = {}
    if sslmode in ("require", "verify-ca", "verify-full"):
        ssl_context = ssl.create_default_context()
        if sslmode == "require":
            # Encrypt only, no certificate verification
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context

    return cleaned_url, connect_args


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {"echo": _db_config.echo, "pool_pre_ping": True}
    # sqlite (local runs and tests) opens a connection per session so none
    # outlives the event loop that created it
    if url.startswith("sqlite"):
        kwargs["poolclass"] = NullPool
    else:
        kwargs["pool_size"] = _db_config.pool_size
        kwargs["max_overflow"] = _db_config.max_overflow
    return kwargs


_cleaned_url, _connect_args = _parse_database_url(DATABASE_URL)

engine = create_async_engine(
    _cleaned_url,
    connect_args=_connect_args,
    **_engine_kwargs(_cleaned_url),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides a database session.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Item))
            return result.scalars().all()

    The session is committed when the request handler returns and rolled
    back if it raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Verify database connectivity during application startup."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise


async def close_db() -> None:
    """Close database connections during application shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
