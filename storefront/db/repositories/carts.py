"""Repository for shopping carts owned by users or guest sessions."""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Cart, CartItem, Product
from storefront.exceptions import NotFoundError, ValidationError
from storefront.logging_config import get_logger

logger = get_logger(__name__)


def _owner_clause(user_id: Optional[int], session_id: Optional[str]):
    if user_id is not None:
        return Cart.user_id == user_id
    if session_id:
        return Cart.session_id == session_id
    raise ValueError("A cart owner needs a user_id or a session_id")


class CartRepository:
    """Cart lookup and item management.

    Methods that change items return the cart reloaded with fresh items so
    callers never observe a stale collection.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_owner(
        self,
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> Optional[Cart]:
        result = await self.db.execute(
            select(Cart)
            .where(_owner_clause(user_id, session_id))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_with_items(self, cart_id: int) -> Cart:
        result = await self.db.execute(
            select(Cart)
            .where(Cart.id == cart_id)
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()
        if cart is None:
            raise NotFoundError("Cart", cart_id)
        return cart

    async def get_or_create(
        self,
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> Cart:
        cart = await self.get_for_owner(user_id, session_id)
        if cart is not None:
            return cart
        cart = Cart(
            user_id=user_id,
            session_id=None if user_id is not None else session_id,
            items=[],
        )
        self.db.add(cart)
        await self.db.flush()
        return cart

    async def get_item(self, cart: Cart, item_id: int) -> CartItem:
        """Return an item of ``cart``; items of other carts are reported as missing."""
        result = await self.db.execute(
            select(CartItem).where(CartItem.id == item_id, CartItem.cart_id == cart.id)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError("Cart item", item_id)
        return item

    async def add_item(self, cart: Cart, product_id: int, quantity: int = 1) -> CartItem:
        """Add a product to the cart, merging with an existing line.

        Raises:
            ValidationError: If quantity is below 1
            NotFoundError: If the product does not exist
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if await self.db.get(Product, product_id) is None:
            raise NotFoundError("Product", product_id)

        result = await self.db.execute(
            select(CartItem).where(
                CartItem.cart_id == cart.id,
                CartItem.product_id == product_id,
            )
        )
        item = result.scalar_one_or_none()
        if item is not None:
            item.quantity += quantity
        else:
            item = CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity)
            self.db.add(item)
        await self.db.flush()
        await self.db.refresh(item, ["product"])
        return item

    async def update_item_quantity(self, item: CartItem, quantity: int) -> CartItem:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        item.quantity = quantity
        await self.db.flush()
        return item

    async def remove_item(self, item: CartItem) -> None:
        await self.db.delete(item)
        await self.db.flush()

    async def clear(self, cart: Cart) -> None:
        await self.db.execute(
            delete(CartItem)
            .where(CartItem.cart_id == cart.id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.flush()

    async def merge_guest_cart(self, session_id: str, user_id: int) -> Optional[Cart]:
        """Move a guest session's cart into the user's cart after login.

        If the user has no cart the guest cart is simply re-owned; otherwise
        its lines are merged into the user's cart and the guest cart deleted.
        """
        guest = await self.get_for_owner(session_id=session_id)
        if guest is None:
            return await self.get_for_owner(user_id=user_id)

        user_cart = await self.get_for_owner(user_id=user_id)
        if user_cart is None:
            guest.user_id = user_id
            guest.session_id = None
            await self.db.flush()
            logger.info(f"Assigned guest cart {guest.id} to user {user_id}")
            return await self.get_with_items(guest.id)

        for line in list(guest.items):
            await self.add_item(user_cart, line.product_id, line.quantity)
        await self.db.delete(guest)
        await self.db.flush()
        logger.info(f"Merged guest cart {guest.id} into cart {user_cart.id}")
        return await self.get_with_items(user_cart.id)
