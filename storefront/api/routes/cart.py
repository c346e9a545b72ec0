"""Shopping cart routes.

Logged-in shoppers use their own cart; guests get a cart tied to the
anonymous id in their session cookie. Quantities below 1 are rejected with
400 rather than silently clamped.
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.routes.products import ProductResponse
from storefront.api.shared.auth import get_optional_user, get_session_id
from storefront.db.models import Cart, CartItem, User
from storefront.db.repositories import CartRepository
from storefront.db.session import get_db
from storefront.exceptions import NotFoundError
from storefront.services.checkout import CheckoutService

router = APIRouter(prefix="/cart", tags=["cart"])


# ============================================================================
# Request/Response Models
# ============================================================================


class CartItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    product: ProductResponse

    model_config = {"from_attributes": True}


class CartResponse(BaseModel):
    id: Optional[int] = None
    items: List[CartItemResponse]
    subtotal: Decimal


class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = 1


class CartItemUpdate(BaseModel):
    quantity: int


# ============================================================================
# Helper Functions
# ============================================================================


class CartOwner:
    """Resolved owner of the current request's cart."""

    def __init__(self, user: Optional[User], session_id: Optional[str]):
        self.user_id = user.id if user is not None else None
        self.session_id = None if user is not None else session_id


async def get_cart_owner(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
) -> CartOwner:
    if user is not None:
        return CartOwner(user, None)
    return CartOwner(None, get_session_id(request))


def _cart_response(cart: Optional[Cart]) -> CartResponse:
    if cart is None:
        return CartResponse(id=None, items=[], subtotal=Decimal("0.00"))
    return CartResponse(
        id=cart.id,
        items=[CartItemResponse.model_validate(item) for item in cart.items],
        subtotal=CheckoutService.cart_total(cart),
    )


async def _owned_item(carts: CartRepository, owner: CartOwner, item_id: int) -> CartItem:
    cart = await carts.get_for_owner(owner.user_id, owner.session_id)
    if cart is None:
        raise NotFoundError("Cart item", item_id)
    return await carts.get_item(cart, item_id)


# ============================================================================
# Routes
# ============================================================================


@router.get("", response_model=CartResponse)
async def get_cart(
    owner: CartOwner = Depends(get_cart_owner),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    cart = await CartRepository(db).get_for_owner(owner.user_id, owner.session_id)
    return _cart_response(cart)


@router.post("", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    body: CartItemCreate,
    owner: CartOwner = Depends(get_cart_owner),
    db: AsyncSession = Depends(get_db),
) -> CartItem:
    """Add a product, increasing the quantity if it is already in the cart."""
    carts = CartRepository(db)
    cart = await carts.get_or_create(owner.user_id, owner.session_id)
    return await carts.add_item(cart, body.product_id, body.quantity)


@router.put("/items/{item_id}", response_model=CartItemResponse)
async def update_cart_item(
    item_id: int,
    body: CartItemUpdate,
    owner: CartOwner = Depends(get_cart_owner),
    db: AsyncSession = Depends(get_db),
) -> CartItem:
    carts = CartRepository(db)
    item = await _owned_item(carts, owner, item_id)
    return await carts.update_item_quantity(item, body.quantity)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_cart_item(
    item_id: int,
    owner: CartOwner = Depends(get_cart_owner),
    db: AsyncSession = Depends(get_db),
) -> None:
    carts = CartRepository(db)
    item = await _owned_item(carts, owner, item_id)
    await carts.remove_item(item)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(
    owner: CartOwner = Depends(get_cart_owner),
    db: AsyncSession = Depends(get_db),
) -> None:
    carts = CartRepository(db)
    cart = await carts.get_for_owner(owner.user_id, owner.session_id)
    if cart is not None:
        await carts.clear(cart)
