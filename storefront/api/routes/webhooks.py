"""Stripe webhook endpoint.

Payment events update the matching order's payment status. Stripe retries
deliveries, so handling the same event twice must be harmless;
``CheckoutService.reconcile_payment`` guarantees that.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.routes.orders import get_stripe_service
from storefront.db.session import get_db
from storefront.logging_config import get_logger
from storefront.services.checkout import PAYMENT_EVENTS, CheckoutService
from storefront.services.stripe_service import StripeService

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


def _payment_intent_id(data_object: Dict[str, Any]) -> Optional[str]:
    # Charge events reference the intent; intent events are the intent
    if data_object.get("object") == "charge":
        return data_object.get("payment_intent")
    return data_object.get("id")


def _amount_collected(data_object: Dict[str, Any]) -> Optional[int]:
    # amount_received is what was actually captured; amount is only requested
    if data_object.get("object") == "charge":
        return data_object.get("amount_captured")
    received = data_object.get("amount_received")
    return received if received is not None else data_object.get("amount")


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> Dict[str, Any]:
    payload = await request.body()
    event = stripe_service.construct_webhook_event(payload, stripe_signature)

    event_type = event.get("type", "")
    if event_type not in PAYMENT_EVENTS:
        logger.info(f"Unhandled Stripe event type {event_type}")
        return {"received": True}

    data_object = (event.get("data") or {}).get("object") or {}
    intent_id = _payment_intent_id(data_object)
    if not intent_id:
        logger.warning(f"Stripe event {event.get('id')} ({event_type}) has no PaymentIntent")
        return {"received": True}

    order = await CheckoutService(db, currency=stripe_service.config.currency).reconcile_payment(
        intent_id,
        event_type,
        amount_cents=_amount_collected(data_object),
        currency=data_object.get("currency"),
    )
    return {
        "received": True,
        "order_id": order.id if order is not None else None,
    }
