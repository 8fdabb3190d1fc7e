"""Domain exceptions raised by Storefront services.

Services raise these; API routes translate them into HTTP responses via
``storefront.api.shared.helpers.errors.raise_for_domain_error``.
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for domain errors.

    Attributes:
        message: Customer-facing message
        extra: Additional fields merged into the error response body
    """

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra


class NotFoundError(StorefrontError):
    """A referenced record does not exist."""


class ValidationError(StorefrontError):
    """Input failed a business validation rule."""


class OfferValidationError(ValidationError):
    """Exclusive-offer fields are inconsistent with the product tag."""


class StockError(StorefrontError):
    """A stock operation could not be applied."""

    def __init__(
        self,
        message: str,
        current_stock: Optional[int] = None,
        requested: Optional[int] = None,
        **extra: Any,
    ):
        if current_stock is not None:
            extra.setdefault("availableQty", current_stock)
        if requested is not None:
            extra.setdefault("requestedQty", requested)
        super().__init__(message, **extra)
        self.current_stock = current_stock
        self.requested = requested


class InvalidTransitionError(StorefrontError):
    """An order status change is not allowed from the current status."""


class SessionStateError(StorefrontError):
    """A buy-now session is not in a usable state.

    ``gone`` is true when the session has expired or was already used.
    """

    def __init__(self, message: str, gone: bool = False, **extra: Any):
        super().__init__(message, **extra)
        self.gone = gone


class UserStatusError(StorefrontError):
    """An admin account action conflicts with the user's current state."""


class PermissionDeniedError(StorefrontError):
    """The caller may not act on this record."""


class AccountBlockedError(StorefrontError):
    """The account is blocked and may not sign in."""


class AuthRequiredError(StorefrontError):
    """A client call needs a signed-in user and there is none."""
