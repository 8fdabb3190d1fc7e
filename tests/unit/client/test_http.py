"""Unit tests for the authenticated httpx clients."""

import httpx
import pytest

from storefront.client import build_async_client, build_client
from storefront.client.guard import LOGIN_PATH
from storefront.client.http import LOGIN_REQUIRED_MESSAGE, AuthHooks, redirect_to_login
from storefront.client.storage import AUTH_MESSAGE_KEY, AUTH_REDIRECT_KEY
from storefront.exceptions import AuthRequiredError


class Recorder:
    """MockTransport handler that records requests and replies with ``status``."""

    def __init__(self, status: int = 200):
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json={"success": self.status < 400})


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def client(recorder, store, session_storage, navigator, clock):
    with build_client(
        "http://shop.test/api",
        store,
        session_storage,
        navigator,
        clock=clock,
        transport=httpx.MockTransport(recorder),
    ) as client:
        yield client


class TestRequestHook:
    def test_attaches_valid_token(self, client, recorder, store, make_token):
        token = make_token()
        store.set_token(token)

        client.get("/orders/my")

        assert recorder.requests[0].headers["Authorization"] == f"Bearer {token}"

    def test_drops_expired_token(self, client, recorder, store, make_token):
        store.set_token(make_token(ttl_ms=-1000))
        store.set_role("user")

        client.get("/products", headers={"Authorization": "Bearer stale"})

        assert "Authorization" not in recorder.requests[0].headers
        assert store.token is None
        assert store.role is None

    def test_guest_request(self, client, recorder):
        client.get("/products")

        assert "Authorization" not in recorder.requests[0].headers


class TestResponseHook:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure_signs_out(self, client, recorder, store, session_storage, navigator, make_token, status):
        recorder.status = status
        store.set_token(make_token())

        response = client.get("/orders/my")

        assert response.status_code == status
        assert store.token is None
        assert session_storage.get_item(AUTH_REDIRECT_KEY) == "/orders?page=2"
        assert navigator.redirects == [LOGIN_PATH]

    def test_failures_on_login_page_are_left_alone(self, client, recorder, store, navigator, make_token):
        recorder.status = 401
        navigator.path = LOGIN_PATH
        store.set_token(make_token())

        client.post("/auth/login", json={})

        assert store.token is not None
        assert navigator.redirects == []

    def test_other_errors_pass_through(self, client, recorder, store, navigator, make_token):
        recorder.status = 500
        store.set_token(make_token())

        client.get("/orders/my")

        assert store.token is not None
        assert navigator.redirects == []


async def test_async_client(recorder, store, session_storage, navigator, clock, make_token):
    token = make_token()
    store.set_token(token)
    recorder.status = 401

    async with build_async_client(
        "http://shop.test/api",
        store,
        session_storage,
        navigator,
        clock=clock,
        transport=httpx.MockTransport(recorder),
    ) as client:
        await client.get("/orders/my")

    assert recorder.requests[0].headers["Authorization"] == f"Bearer {token}"
    assert store.token is None
    assert navigator.redirects == [LOGIN_PATH]


class TestWithAuth:
    def test_runs_when_signed_in(self, store, session_storage, navigator, clock, make_token):
        store.set_token(make_token())
        hooks = AuthHooks(store, session_storage, navigator, clock)

        assert hooks.with_auth(lambda: "placed") == "placed"

    def test_redirects_guests(self, store, session_storage, navigator, clock):
        hooks = AuthHooks(store, session_storage, navigator, clock)

        with pytest.raises(AuthRequiredError):
            hooks.with_auth(lambda: "placed")

        assert session_storage.get_item(AUTH_MESSAGE_KEY) == LOGIN_REQUIRED_MESSAGE
        assert session_storage.get_item(AUTH_REDIRECT_KEY) == "/orders?page=2"
        assert navigator.redirects == [LOGIN_PATH]

    async def test_async_variant(self, store, session_storage, navigator, clock):
        hooks = AuthHooks(store, session_storage, navigator, clock)

        async def place():
            return "placed"

        with pytest.raises(AuthRequiredError):
            await hooks.with_auth_async(place)


def test_redirect_to_login_is_noop_on_login_page(session_storage, navigator):
    navigator.path = LOGIN_PATH

    redirect_to_login(session_storage, navigator)

    assert navigator.redirects == []
    assert session_storage.get_item(AUTH_MESSAGE_KEY) is None
