"""Keeps the client's signed-in state consistent with the stored token.

The guard re-validates the stored token whenever something could have
changed it: navigation, user interaction, the tab becoming visible, a
periodic poll, a write through the ``SessionStore`` in this tab, or a
storage event from another tab. When the token stops being valid while
the user is signed in, the guard logs out and sends the user to the
login page, remembering where they were.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Callable, Dict, List, Optional, Protocol

from storefront.client import tokens
from storefront.client.storage import (
    AUTH_MESSAGE_KEY,
    AUTH_REDIRECT_KEY,
    ROLE_KEY,
    TOKEN_KEY,
    SessionChange,
    SessionStore,
    Storage,
    StorageEvent,
    Unsubscribe,
)
from storefront.logging_config import get_logger

logger = get_logger(__name__)

LOGIN_PATH = "/login"
SIGNUP_PATH = "/signup"
PUBLIC_AUTH_PATHS = (LOGIN_PATH, SIGNUP_PATH)

SESSION_INVALID_MESSAGE = "Session invalid. Please log in again."

INTERACTION_EVENTS = ("click", "keydown", "focus")
POLL_INTERVAL_SECONDS = 2.0


class Navigator(Protocol):
    """Where the user is and how to send them elsewhere."""

    path: str
    search: str

    def redirect(self, url: str) -> None: ...


class MemoryNavigator:
    """Navigator that records redirects instead of performing them."""

    def __init__(self, path: str = "/", search: str = ""):
        self.path = path
        self.search = search
        self.redirects: List[str] = []

    def navigate(self, url: str) -> None:
        path, _, query = url.partition("?")
        self.path = path or "/"
        self.search = f"?{query}" if query else ""

    def redirect(self, url: str) -> None:
        self.redirects.append(url)
        self.navigate(url)


class SessionGuard:
    def __init__(
        self,
        store: SessionStore,
        session_storage: Storage,
        navigator: Navigator,
        clock: Optional[Callable[[], int]] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.store = store
        self.session_storage = session_storage
        self.navigator = navigator
        self.clock = clock or tokens.now_ms
        self.poll_interval = poll_interval

        self.authenticated = False
        self.user: Optional[Dict[str, Any]] = None
        self._token: Optional[str] = None
        self._unsubscribers: List[Unsubscribe] = []
        self._poll_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """Adopt the stored token on first load; returns whether it is valid.

        A stored token that fails validation is removed and the login
        page will show the session-invalid message. An empty store is a
        first visit and leaves no message.
        """
        self._attach()
        stored = self.store.token
        result = self._validate(stored)
        if result.valid:
            self._adopt(stored, result.claims)
            return True

        self._reset()
        if stored:
            self.store.clear()
            self.session_storage.set_item(AUTH_MESSAGE_KEY, SESSION_INVALID_MESSAGE)
            logger.info(f"Discarded stored token: {result.reason}")
        return False

    def start(self) -> None:
        """Begin polling the token every ``poll_interval`` seconds."""
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def stop(self) -> None:
        """Stop polling and detach from the store and storage events."""
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            self.poll()

    def _attach(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers.append(self.store.subscribe(self._on_session_change))
        add_listener = getattr(self.store.storage, "add_listener", None)
        if add_listener is not None:
            self._unsubscribers.append(add_listener(self._on_storage_event))

    # ------------------------------------------------------------------
    # sign in / out
    # ------------------------------------------------------------------

    def login(self, token: str, user: Optional[Dict[str, Any]] = None) -> bool:
        """Store a freshly issued token; refuses tokens that fail validation."""
        result = self._validate(token)
        if not result.valid or result.claims is None:
            logger.warning(f"Refusing to store token: {result.reason}")
            return False

        claims = result.claims
        info = {
            "id": claims.get("userId") or claims.get("id"),
            "username": claims.get("username"),
            "role": claims.get("role"),
            **(user or {}),
        }
        self._adopt(token, claims, info)
        self.store.set_token(token)
        if info.get("role"):
            self.store.set_role(str(info["role"]))
        self.store.set_user(info)
        return True

    def logout(self) -> None:
        # drop local state first so the store's change events see a signed-out guard
        self._reset()
        self.store.clear()

    def force_logout(self, clear_store: bool = True) -> None:
        """Sign out, leave the session-invalid message and go to the login page."""
        if clear_store:
            self.logout()
        else:
            self._reset()
        self.session_storage.set_item(AUTH_MESSAGE_KEY, SESSION_INVALID_MESSAGE)
        path = self.navigator.path
        if path not in PUBLIC_AUTH_PATHS:
            self.session_storage.set_item(AUTH_REDIRECT_KEY, path)
        logger.info("Session invalidated, redirecting to login", extra={"from_path": path})
        self.navigator.redirect(LOGIN_PATH)

    # ------------------------------------------------------------------
    # triggers
    # ------------------------------------------------------------------

    def check(self) -> bool:
        """Re-validate the stored token; logs out when it went bad."""
        result = self._validate(self.store.token)
        if not result.valid and self.authenticated:
            self.force_logout()
        return result.valid

    def on_navigation(self, path: Optional[str] = None) -> bool:
        if path is not None:
            self.navigator.path = path
        return self.check()

    def on_interaction(self, kind: str) -> bool:
        if kind not in INTERACTION_EVENTS:
            return self.authenticated
        return self.check()

    def on_visibility_change(self, visible: bool) -> bool:
        if not visible:
            return self.authenticated
        return self.check()

    def poll(self) -> bool:
        return self.check()

    def _on_session_change(self, change: SessionChange) -> None:
        if change.key == TOKEN_KEY:
            self.check()

    def _on_storage_event(self, event: StorageEvent) -> None:
        """Handle a write to the shared storage made by another tab."""
        if event.key not in (TOKEN_KEY, None):
            return

        result = self._validate(self.store.token)
        if not result.valid:
            if self.authenticated:
                self.force_logout()
            elif self.store.token:
                self.store.clear()
            return

        # another tab stored a different, well-formed session
        if self.authenticated and self.store.token != self._token:
            self.force_logout(clear_store=False)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @property
    def is_admin(self) -> bool:
        return self.authenticated and self.store.storage.get_item(ROLE_KEY) == "admin"

    def _validate(self, token: Optional[str]) -> tokens.TokenValidation:
        return tokens.validate(token, self.clock())

    def _adopt(
        self,
        token: Optional[str],
        claims: Optional[Dict[str, Any]],
        user: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.authenticated = True
        self._token = token
        if user is not None:
            self.user = user
        elif claims is not None:
            self.user = {
                "id": claims.get("userId") or claims.get("id"),
                "username": claims.get("username"),
                "role": claims.get("role"),
            }

    def _reset(self) -> None:
        self.authenticated = False
        self._token = None
        self.user = None
