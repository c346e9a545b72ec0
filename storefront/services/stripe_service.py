"""Stripe integration for checkout payments.

This module provides:
1. PaymentIntent creation for the server-computed cart total
2. Customer creation so repeat buyers share one Stripe customer
3. Webhook event verification
"""

import hashlib
import json
import time
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe

from storefront.api.shared.helpers.errors import APIError, ErrorCode
from storefront.config import StripeConfig, get_config
from storefront.logging_config import get_logger
from storefront.utils import to_cents

logger = get_logger(__name__)


def handle_stripe_error(error: stripe.StripeError, context: str) -> APIError:
    """Convert a Stripe error into an APIError with a user-safe message.

    - CardError: 402, the card was declined
    - RateLimitError: 429
    - InvalidRequestError: 400
    - AuthenticationError: 503, misconfigured key (logged as critical)
    - APIConnectionError: 503
    - anything else: 402 generic payment failure

    Args:
        error: The Stripe error
        context: Description of what operation failed
    """
    logger.error(f"Stripe error in {context}: {type(error).__name__}: {error}")

    if isinstance(error, stripe.CardError):
        return APIError(
            ErrorCode.PAY_CARD_DECLINED,
            error.user_message or "Your card was declined. Please try a different payment method.",
        )
    elif isinstance(error, stripe.RateLimitError):
        return APIError(
            ErrorCode.LIMIT_RATE_EXCEEDED,
            "Too many payment requests. Please wait a moment and try again.",
        )
    elif isinstance(error, stripe.InvalidRequestError):
        return APIError(
            ErrorCode.VAL_INVALID_INPUT,
            "Invalid payment request. Please check your details and try again.",
        )
    elif isinstance(error, stripe.AuthenticationError):
        logger.critical(f"Stripe authentication failed: {error}")
        return APIError(
            ErrorCode.PAY_NOT_CONFIGURED,
            "Payment service configuration error. Please contact support.",
        )
    elif isinstance(error, stripe.APIConnectionError):
        return APIError(
            ErrorCode.SYS_UPSTREAM_UNAVAILABLE,
            "Payment service temporarily unavailable. Please try again.",
        )
    else:
        return APIError(
            ErrorCode.PAY_FAILED,
            "Payment processing failed. Please try again or contact support.",
        )


class StripeService:
    """Thin wrapper over the Stripe SDK using the configured credentials."""

    def __init__(self, config: Optional[StripeConfig] = None):
        self.config = config or get_config().stripe

    def _require_key(self) -> str:
        if not self.config.secret_key:
            raise APIError(ErrorCode.PAY_NOT_CONFIGURED)
        return self.config.secret_key

    def ensure_customer(self, email: str, user_id: int, existing_id: Optional[str] = None) -> str:
        """Return the user's Stripe customer id, creating the customer if needed."""
        if existing_id:
            return existing_id
        api_key = self._require_key()
        try:
            customer = stripe.Customer.create(
                email=email,
                metadata={"userId": str(user_id)},
                api_key=api_key,
                idempotency_key=f"customer-{user_id}",
            )
        except stripe.StripeError as e:
            raise handle_stripe_error(e, "create_customer")
        logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
        return customer.id

    def create_payment_intent(
        self,
        amount: Decimal,
        user_id: int,
        customer_id: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a card PaymentIntent for ``amount``.

        Args:
            amount: Total in major currency units, converted to cents here
            user_id: Buyer, stored in the intent's metadata
            customer_id: Stripe customer to attach (optional)
            currency: Three-letter currency code, defaults to the configured one

        Returns:
            Dict with ``client_secret``, ``payment_intent_id`` and ``amount_cents``

        Raises:
            APIError: If Stripe is not configured or rejects the request
        """
        api_key = self._require_key()
        amount_cents = to_cents(amount)
        if amount_cents <= 0:
            raise APIError(ErrorCode.VAL_INVALID_INPUT, "Payment amount must be positive")
        currency = (currency or self.config.currency).lower()

        # Repeated clicks within the same minute reuse one intent
        idempotency_key = hashlib.sha256(
            f"{user_id}:{amount_cents}:{currency}:{int(time.time() // 60)}".encode()
        ).hexdigest()[:32]

        params: Dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "payment_method_types": ["card"],
            "metadata": {"userId": str(user_id)},
        }
        if customer_id:
            params["customer"] = customer_id

        try:
            intent = stripe.PaymentIntent.create(
                api_key=api_key,
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.StripeError as e:
            raise handle_stripe_error(e, "create_payment_intent")

        logger.info(
            f"Created PaymentIntent {intent.id} for user {user_id}",
            extra={"amount_cents": amount_cents, "currency": currency},
        )
        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "amount_cents": amount_cents,
        }

    def construct_webhook_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify and parse a webhook payload.

        Without a configured webhook secret the payload is parsed unverified,
        which is only acceptable in development.

        Returns:
            The event as a plain dict

        Raises:
            APIError: If the signature or payload is invalid
        """
        secret = self.config.webhook_secret
        if not secret:
            logger.warning("STRIPE_WEBHOOK_SECRET not set, accepting unverified webhook")
        elif not signature:
            raise APIError(ErrorCode.PAY_WEBHOOK_INVALID, "Missing Stripe-Signature header")
        else:
            try:
                stripe.Webhook.construct_event(payload, signature, secret)
            except stripe.SignatureVerificationError:
                raise APIError(ErrorCode.PAY_WEBHOOK_INVALID, "Invalid signature")
            except ValueError as e:
                logger.error(f"Webhook construction error: {e}")
                raise APIError(ErrorCode.PAY_WEBHOOK_INVALID)

        try:
            event = json.loads(payload)
        except ValueError as e:
            logger.error(f"Webhook payload could not be parsed: {e}")
            raise APIError(ErrorCode.PAY_WEBHOOK_INVALID)
        if not isinstance(event, dict):
            raise APIError(ErrorCode.PAY_WEBHOOK_INVALID)
        return event
