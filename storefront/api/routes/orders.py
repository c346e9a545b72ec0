"""Order history, payment intents and checkout."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import get_current_user
from storefront.db.models import Order, OrderStatus, PaymentStatus, User
from storefront.db.repositories import OrderRepository, UserRepository
from storefront.db.session import get_db
from storefront.exceptions import PermissionDeniedError
from storefront.logging_config import get_logger
from storefront.services.checkout import CheckoutRequest, CheckoutService
from storefront.services.stripe_service import StripeService

logger = get_logger(__name__)

router = APIRouter(tags=["orders"])


# ============================================================================
# Request/Response Models
# ============================================================================


class OrderItemResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    name: str
    price: Decimal
    quantity: int
    line_total: Decimal

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    """Order with its item snapshots."""

    id: int
    user_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    total: Decimal
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    payment_intent_id: Optional[str] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderCreate(BaseModel):
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    payment_intent_id: Optional[str] = Field(default=None, max_length=255)
    total: Optional[Decimal] = Field(
        default=None,
        description="Total shown to the shopper; informational only, the server recomputes it",
    )


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount: Decimal


def get_stripe_service() -> StripeService:
    return StripeService()


# ============================================================================
# Routes
# ============================================================================


@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[Order]:
    return await OrderRepository(db).list_for_user(user.id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Order:
    """Fetch one order; visible to its owner and to administrators."""
    order = await OrderRepository(db).get_by_id_or_raise(order_id)
    if order.user_id != user.id and not user.is_admin:
        raise PermissionDeniedError("Not authorized to view this order")
    return order


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> PaymentIntentResponse:
    """Create a Stripe PaymentIntent for the current cart total.

    The amount always comes from the cart; nothing in the request body can
    change it.
    """
    total = await CheckoutService(db).get_cart_total(user)

    customer_id = stripe_service.ensure_customer(user.email, user.id, user.stripe_customer_id)
    if customer_id != user.stripe_customer_id:
        await UserRepository(db).set_stripe_customer_id(user, customer_id)

    intent = stripe_service.create_payment_intent(total, user.id, customer_id=customer_id)
    return PaymentIntentResponse(
        client_secret=intent["client_secret"],
        payment_intent_id=intent["payment_intent_id"],
        amount=total,
    )


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Order:
    """Place an order from the current cart.

    Stock is reserved and the cart emptied in the same transaction; if any
    line is short the request fails with 409 and nothing changes.
    """
    return await CheckoutService(db).create_order(
        user,
        CheckoutRequest(
            shipping_address_id=body.shipping_address_id,
            billing_address_id=body.billing_address_id,
            payment_intent_id=body.payment_intent_id,
            client_total=body.total,
        ),
    )
