"""httpx clients that attach the stored token and react to auth failures."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from storefront.client import tokens
from storefront.client.guard import LOGIN_PATH, PUBLIC_AUTH_PATHS, Navigator
from storefront.client.storage import (
    AUTH_MESSAGE_KEY,
    AUTH_REDIRECT_KEY,
    SessionStore,
    Storage,
)
from storefront.exceptions import AuthRequiredError
from storefront.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0
LOGIN_REQUIRED_MESSAGE = "Please login to continue"
AUTH_FAILURE_STATUSES = (401, 403)


class AuthHooks:
    """Request and response hooks shared by the sync and async clients."""

    def __init__(
        self,
        store: SessionStore,
        session_storage: Storage,
        navigator: Navigator,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.store = store
        self.session_storage = session_storage
        self.navigator = navigator
        self.clock = clock or tokens.now_ms

    def is_authenticated(self) -> bool:
        return tokens.validate(self.store.token, self.clock()).valid

    def on_request(self, request: httpx.Request) -> None:
        """Send the bearer token only while it validates."""
        token = self.store.token
        if token and tokens.validate(token, self.clock()).valid:
            request.headers["Authorization"] = f"Bearer {token}"
            return
        request.headers.pop("Authorization", None)
        if token:
            logger.info("Dropping invalid stored token before request")
            self.store.clear()

    def on_response(self, response: httpx.Response) -> None:
        if response.status_code not in AUTH_FAILURE_STATUSES:
            return
        path = self.navigator.path
        if path in PUBLIC_AUTH_PATHS:
            return
        logger.info(
            "Request rejected, signing out",
            extra={"status_code": response.status_code, "from_path": path},
        )
        self.store.clear()
        self.session_storage.set_item(AUTH_REDIRECT_KEY, path + self.navigator.search)
        self.navigator.redirect(LOGIN_PATH)

    async def on_request_async(self, request: httpx.Request) -> None:
        self.on_request(request)

    async def on_response_async(self, response: httpx.Response) -> None:
        self.on_response(response)

    def redirect_to_login(self, message: str = LOGIN_REQUIRED_MESSAGE) -> None:
        redirect_to_login(self.session_storage, self.navigator, message)

    def with_auth(self, call: Callable[[], T]) -> T:
        """Run ``call`` only when signed in; otherwise go to the login page."""
        if not self.is_authenticated():
            self.redirect_to_login()
            raise AuthRequiredError("Authentication required")
        return call()

    async def with_auth_async(self, call: Callable[[], Awaitable[T]]) -> T:
        if not self.is_authenticated():
            self.redirect_to_login()
            raise AuthRequiredError("Authentication required")
        return await call()


def redirect_to_login(
    session_storage: Storage,
    navigator: Navigator,
    message: str = LOGIN_REQUIRED_MESSAGE,
) -> None:
    """Remember the current page and message, then go to the login page."""
    if navigator.path == LOGIN_PATH:
        return
    session_storage.set_item(AUTH_MESSAGE_KEY, message)
    session_storage.set_item(AUTH_REDIRECT_KEY, navigator.path + navigator.search)
    navigator.redirect(LOGIN_PATH)


def build_client(
    base_url: str,
    store: SessionStore,
    session_storage: Storage,
    navigator: Navigator,
    **kwargs: Any,
) -> httpx.Client:
    """Create a JSON API client wired to the session guard's storage.

    Example:
        client = build_client("http://localhost:5000/api", store, session_storage, navigator)
        client.get("/orders/my")
    """
    hooks = AuthHooks(store, session_storage, navigator, kwargs.pop("clock", None))
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    return httpx.Client(
        base_url=base_url,
        event_hooks={"request": [hooks.on_request], "response": [hooks.on_response]},
        **kwargs,
    )


def build_async_client(
    base_url: str,
    store: SessionStore,
    session_storage: Storage,
    navigator: Navigator,
    **kwargs: Any,
) -> httpx.AsyncClient:
    hooks = AuthHooks(store, session_storage, navigator, kwargs.pop("clock", None))
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    return httpx.AsyncClient(
        base_url=base_url,
        event_hooks={"request": [hooks.on_request_async], "response": [hooks.on_response_async]},
        **kwargs,
    )


def with_auth(
    call: Callable[[], T],
    store: SessionStore,
    session_storage: Storage,
    navigator: Navigator,
) -> T:
    return AuthHooks(store, session_storage, navigator).with_auth(call)
