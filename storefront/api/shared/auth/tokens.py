"""Server-side JWT issuing and verification (PyJWT, HS256).

Claims: ``{userId, username, role, iat, exp}``. The storefront client
decodes the same payload without verifying the signature, so claim names
are camelCase.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

import jwt

from storefront.config import AuthConfig, get_settings
from storefront.db.models.base import utcnow


def create_access_token(
    user_id: int,
    username: str,
    role: str,
    config: Optional[AuthConfig] = None,
) -> str:
    """Sign a token that expires ``jwt_expires_hours`` from now."""
    config = config or get_settings().auth
    issued_at = utcnow()
    payload = {
        "userId": user_id,
        "username": username,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=config.jwt_expires_hours),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """Verify signature and expiry and return the claims.

    Raises:
        jwt.InvalidTokenError: If the token is malformed, tampered with,
            expired, or lacks a ``userId`` claim.
    """
    config = config or get_settings().auth
    claims = jwt.decode(
        token,
        config.jwt_secret,
        algorithms=[config.jwt_algorithm],
        options={"require": ["exp", "userId"]},
    )
    if not isinstance(claims.get("userId"), int):
        raise jwt.InvalidTokenError("userId claim must be an integer")
    return claims
