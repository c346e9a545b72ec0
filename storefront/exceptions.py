"""Domain exceptions raised by repositories and services.

The API layer translates these into HTTP responses in one place
(``storefront.api.shared.helpers.errors.storefront_error_handler``), so
services stay free of HTTP concerns and can be reused from the CLI.
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for expected, user-facing failures."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)


class NotFoundError(StorefrontError):
    """A referenced record does not exist (or is not visible to the caller)."""

    def __init__(self, resource: str, identifier: object = None):
        self.resource = resource
        self.identifier = identifier
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier!r} not found"
        super().__init__(message)


class ValidationError(StorefrontError):
    """Input is well-formed but not acceptable."""


class ConflictError(StorefrontError):
    """The operation clashes with existing state (duplicate slug, username...)."""


class PermissionDeniedError(StorefrontError):
    """The caller does not own the resource."""


class PaymentError(StorefrontError):
    """The payment processor rejected or failed the request."""


class InsufficientInventoryError(ConflictError):
    """Not enough stock to fulfil a cart line."""

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Only {available} of '{product_name}' left in stock, {requested} requested",
            "Reduce the quantity in your cart and try again.",
        )


class ReferralError(ValidationError):
    """A referral code cannot be redeemed."""
