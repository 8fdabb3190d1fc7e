"""Client-side access token inspection.

These helpers only look at a token's shape and claims; the signature is
never checked here. The server verifies every request, so the client
uses them to decide whether a stored token is worth sending at all.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# a token this close to its expiry already counts as expired
EXPIRY_SKEW_MS = 5000

IDENTITY_CLAIMS = ("exp", "userId", "role")

REASON_MISSING = "missing"
REASON_INVALID_FORMAT = "invalid_format"
REASON_INVALID_STRUCTURE = "invalid_structure"
REASON_DECODE_FAILED = "decode_failed"
REASON_EXPIRED = "expired"


def now_ms() -> int:
    return int(time.time() * 1000)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded)


def decode(token: Any) -> Optional[Dict[str, Any]]:
    """Return the claims of a JWT-shaped token, or None.

    The token must have exactly three non-empty base64url segments, the
    middle one must decode to a JSON object, and that object must carry
    at least one of ``exp``, ``userId`` or ``role``.
    """
    if not token or not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) != 3 or not all(SEGMENT_RE.match(part) for part in parts):
        return None

    try:
        claims = json.loads(
            _b64url_decode(parts[1]).decode("utf-8"),
            parse_constant=_reject_constant,
        )
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    if not isinstance(claims, dict):
        return None
    if not any(claims.get(name) for name in IDENTITY_CLAIMS):
        return None
    return claims


def _expiry_ms(claims: Dict[str, Any]) -> Optional[float]:
    exp = claims.get("exp")
    if not exp:
        return None
    # unusable expiry, numeric strings and non-finite values included: treat as already expired
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return 0.0
    try:
        expiry = float(exp) * 1000
    except OverflowError:
        return 0.0
    return expiry if math.isfinite(expiry) else 0.0


def is_expired(token: Any, now: Optional[int] = None) -> bool:
    """True when the token cannot be decoded or is within 5 s of ``exp``."""
    claims = decode(token)
    if claims is None:
        return True
    expiry = _expiry_ms(claims)
    if expiry is None:
        return False
    current = now_ms() if now is None else now
    return current >= expiry - EXPIRY_SKEW_MS


@dataclass(frozen=True)
class TokenValidation:
    """Outcome of :func:`validate`."""

    valid: bool
    claims: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None


def validate(token: Any, now: Optional[int] = None) -> TokenValidation:
    """Check a stored token, naming the first problem found.

    Expired tokens still report their claims so callers can show who
    was signed in.
    """
    if not token:
        return TokenValidation(False, None, REASON_MISSING)
    if not isinstance(token, str):
        return TokenValidation(False, None, REASON_INVALID_FORMAT)
    if len(token.split(".")) != 3:
        return TokenValidation(False, None, REASON_INVALID_STRUCTURE)

    claims = decode(token)
    if claims is None:
        return TokenValidation(False, None, REASON_DECODE_FAILED)
    if is_expired(token, now):
        return TokenValidation(False, claims, REASON_EXPIRED)
    return TokenValidation(True, claims, None)


def user_from_token(token: Any, now: Optional[int] = None) -> Optional[Dict[str, Any]]:
    result = validate(token, now)
    if not result.valid or result.claims is None:
        return None
    claims = result.claims
    return {
        "id": claims.get("userId") or claims.get("id"),
        "username": claims.get("username"),
        "role": claims.get("role"),
    }
