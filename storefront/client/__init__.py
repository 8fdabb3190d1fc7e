"""Client-side session handling for Storefront API consumers.

Mirrors what the web storefront does in the browser: validate the stored
token before using it, keep tabs consistent, and send the user back to
the login page when the session goes bad.
"""

from storefront.client.guard import MemoryNavigator, Navigator, SessionGuard
from storefront.client.http import (
    AuthHooks,
    build_async_client,
    build_client,
    redirect_to_login,
    with_auth,
)
from storefront.client.storage import (
    MemoryStorage,
    SessionChange,
    SessionStore,
    SharedStorageArea,
    Storage,
    StorageEvent,
)
from storefront.client.tokens import TokenValidation, decode, is_expired, user_from_token, validate

__all__ = [
    "AuthHooks",
    "MemoryNavigator",
    "MemoryStorage",
    "Navigator",
    "SessionChange",
    "SessionGuard",
    "SessionStore",
    "SharedStorageArea",
    "Storage",
    "StorageEvent",
    "TokenValidation",
    "build_async_client",
    "build_client",
    "decode",
    "is_expired",
    "redirect_to_login",
    "user_from_token",
    "validate",
    "with_auth",
]
