"""Authentication for the Storefront API.

This module provides:
- AuthUser: Authenticated user dataclass
- get_current_user / get_optional_user / require_admin: FastAPI dependencies
- enforce_user_status: Purchase guard for blocked and suspended accounts
- Password hashing and JWT helpers
"""

from storefront.api.shared.auth.dependencies import (
    AuthUser,
    bearer_scheme,
    enforce_user_status,
    get_current_user,
    get_optional_user,
    raise_for_account_status,
    require_admin,
)
from storefront.api.shared.auth.passwords import hash_password, normalize_security_answer, verify_password
from storefront.api.shared.auth.tokens import create_access_token, decode_access_token

__all__ = [
    # Dependencies
    "AuthUser",
    "bearer_scheme",
    "enforce_user_status",
    "get_current_user",
    "get_optional_user",
    "raise_for_account_status",
    "require_admin",
    # Passwords
    "hash_password",
    "normalize_security_answer",
    "verify_password",
    # Tokens
    "create_access_token",
    "decode_access_token",
]
