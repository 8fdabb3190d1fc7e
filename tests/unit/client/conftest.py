"""Fixtures for client-side session tests."""

import pytest

from storefront.client import MemoryNavigator, MemoryStorage, SessionStore, SharedStorageArea
from tests.factories.tokens import build_token


@pytest.fixture
def make_token(now_ms):
    """Token for user 7 expiring ``ttl_ms`` after the fixed clock."""

    def _make(ttl_ms: int = 60 * 60 * 1000, **claims) -> str:
        payload = {
            "userId": 7,
            "username": "asha",
            "role": "user",
            "exp": (now_ms + ttl_ms) // 1000,
            **claims,
        }
        return build_token(payload)

    return _make


@pytest.fixture
def clock(now_ms):
    """Mutable client clock; set ``clock.now`` to move time."""

    class Clock:
        now = now_ms

        def __call__(self) -> int:
            return self.now

    return Clock()


@pytest.fixture
def session_storage():
    return MemoryStorage()


@pytest.fixture
def navigator():
    return MemoryNavigator(path="/orders", search="?page=2")


@pytest.fixture
def shared_area():
    return SharedStorageArea()


@pytest.fixture
def store(shared_area):
    return SessionStore(shared_area.tab())
