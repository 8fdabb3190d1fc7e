"""Integration test fixtures for database-backed route tests.

Every test gets freshly created tables in the SQLite test database.
Data seeded through ``db_session`` must be committed before the API is
called: the application opens its own connections, and SQLite allows a
single writer at a time.
"""

from typing import Callable, Dict

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from storefront.api.app import app
from storefront.api.shared.auth import create_access_token
from storefront.db.models import Base, User
from storefront.db.session import async_session_factory, engine
from storefront.services.events import broker


@pytest_asyncio.fixture
async def db_session():
    """Async session on a clean schema; tables are dropped afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def client(db_session) -> TestClient:
    """Test client for the full application (all routers under /api)."""
    return TestClient(app)


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Build an Authorization header for a persisted user."""

    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(user.id, user.username, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def published_events(monkeypatch):
    """Capture product events instead of fanning them out."""
    events = []

    def _capture(event="product-update", data=None):
        events.append({"event": event, **(data or {})})
        return 0

    monkeypatch.setattr(broker, "publish", _capture)
    return events
