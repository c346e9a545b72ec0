"""Cart to order conversion and payment reconciliation.

``CheckoutService`` owns the consistency rules around orders:

* the order total is always computed here from current product prices,
  never taken from the client;
* every line's name and price is copied into the order item at purchase
  time;
* stock is taken with a conditional UPDATE per line, and a shortfall on any
  line aborts the whole checkout;
* the cart is emptied in the same unit of work.

All of this runs on the caller's session. In the API that session belongs to
the request (see ``storefront.db.session.get_db``), which commits once the
handler succeeds and rolls back everything otherwise.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Cart, Order, OrderStatus, PaymentStatus, User
from storefront.db.repositories import (
    AddressRepository,
    CartRepository,
    OrderRepository,
    ProductRepository,
)
from storefront.config import get_config
from storefront.exceptions import ConflictError, InsufficientInventoryError, ValidationError
from storefront.logging_config import get_logger
from storefront.utils import to_cents

logger = get_logger(__name__)

CENT = Decimal("0.01")

# Stripe event type -> payment status it establishes
PAYMENT_EVENTS = {
    "payment_intent.succeeded": PaymentStatus.COMPLETED,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "payment_intent.canceled": PaymentStatus.FAILED,
    "charge.refunded": PaymentStatus.REFUNDED,
}


@dataclass
class CheckoutRequest:
    """What the client sends when placing an order."""

    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    payment_intent_id: Optional[str] = None
    client_total: Optional[Decimal] = None


class CheckoutService:
    def __init__(self, db: AsyncSession, currency: Optional[str] = None):
        self.db = db
        self.currency = (currency or get_config().stripe.currency).lower()
        self.carts = CartRepository(db)
        self.orders = OrderRepository(db)
        self.products = ProductRepository(db)
        self.addresses = AddressRepository(db)

    @staticmethod
    def cart_total(cart: Cart) -> Decimal:
        """Sum of current unit price times quantity over the cart's lines."""
        total = sum(
            (Decimal(item.product.price) * item.quantity for item in cart.items),
            Decimal("0"),
        )
        return total.quantize(CENT)

    async def get_cart_total(self, user: User) -> Decimal:
        """Total of the user's cart.

        Raises:
            ValidationError: If the cart is missing or empty
        """
        cart = await self.carts.get_for_owner(user_id=user.id)
        if cart is None or not cart.items:
            raise ValidationError("Your cart is empty")
        return self.cart_total(cart)

    async def create_order(self, user: User, request: CheckoutRequest) -> Order:
        """Turn the user's cart into a pending order.

        Raises:
            ValidationError: If the cart is empty
            NotFoundError / PermissionDeniedError: For a bad address id
            ConflictError: If another order already uses the PaymentIntent
            InsufficientInventoryError: If any line exceeds available stock
        """
        cart = await self.carts.get_for_owner(user_id=user.id)
        if cart is None or not cart.items:
            raise ValidationError("Your cart is empty")

        for address_id in (request.shipping_address_id, request.billing_address_id):
            if address_id is not None:
                await self.addresses.get_owned(address_id, user.id)

        if request.payment_intent_id and await self.orders.get_by_payment_intent(request.payment_intent_id):
            raise ConflictError(
                f"PaymentIntent {request.payment_intent_id} is already attached to an order",
                "Request a new payment intent before checking out again.",
            )

        total = self.cart_total(cart)
        if request.client_total is not None and Decimal(request.client_total).quantize(CENT) != total:
            logger.warning(
                f"Client total {request.client_total} differs from cart total {total} "
                f"for user {user.id}, using cart total"
            )

        lines = [
            (item.product.id, item.product.name, Decimal(item.product.price), item.quantity)
            for item in cart.items
        ]
        for product_id, name, _price, quantity in lines:
            if not await self.products.decrement_inventory(product_id, quantity):
                product = await self.products.get_by_id(product_id, refresh=True)
                available = product.inventory if product is not None else 0
                raise InsufficientInventoryError(name, quantity, available)

        order = await self.orders.create(
            Order(
                user_id=user.id,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                total=total,
                shipping_address_id=request.shipping_address_id,
                billing_address_id=request.billing_address_id,
                payment_intent_id=request.payment_intent_id,
            )
        )
        for product_id, name, price, quantity in lines:
            await self.orders.add_item(order, name, price, quantity, product_id=product_id)

        await self.carts.clear(cart)

        logger.info(
            f"Created order {order.id} for user {user.id}",
            extra={"order_id": order.id, "total": str(total), "lines": len(lines)},
        )
        return await self.orders.get_by_id_or_raise(order.id)

    async def reconcile_payment(
        self,
        payment_intent_id: str,
        event_type: str,
        amount_cents: Optional[int] = None,
        currency: Optional[str] = None,
    ) -> Optional[Order]:
        """Apply a payment processor event to the matching order.

        Replaying an event leaves the order unchanged. Completed payments move
        a pending order to processing, but only when the amount received and
        its currency match the order total; anything else is logged and the
        order is left as it was. A refund is only recorded against a completed
        payment.

        Args:
            payment_intent_id: Stripe PaymentIntent id stored on the order
            event_type: Stripe event type
            amount_cents: Amount the intent actually collected, in minor units
            currency: Currency of that amount

        Returns:
            The order, or None when the event is irrelevant or the intent unknown
        """
        new_status = PAYMENT_EVENTS.get(event_type)
        if new_status is None:
            logger.debug(f"Ignoring Stripe event {event_type}")
            return None

        order = await self.orders.get_by_payment_intent(payment_intent_id)
        if order is None:
            logger.warning(f"No order for PaymentIntent {payment_intent_id} ({event_type})")
            return None

        if order.payment_status == new_status:
            logger.info(f"Order {order.id} already {new_status.value}, skipping")
            return order
        if new_status == PaymentStatus.REFUNDED and order.payment_status != PaymentStatus.COMPLETED:
            logger.warning(f"Refund for order {order.id} without completed payment, skipping")
            return order
        if order.payment_status in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED) and new_status == PaymentStatus.FAILED:
            logger.warning(f"Late failure event for settled order {order.id}, skipping")
            return order
        if new_status == PaymentStatus.COMPLETED and not self._payment_covers(order, amount_cents, currency):
            return order

        await self.orders.update_payment_status(order, new_status)
        if new_status == PaymentStatus.COMPLETED and order.status == OrderStatus.PENDING:
            await self.orders.update_status(order, OrderStatus.PROCESSING)

        logger.info(
            f"Order {order.id} payment {new_status.value}",
            extra={"order_id": order.id, "payment_intent_id": payment_intent_id},
        )
        return order

    def _payment_covers(self, order: Order, amount_cents: Optional[int], currency: Optional[str]) -> bool:
        expected = to_cents(order.total)
        if amount_cents is None or int(amount_cents) != expected:
            logger.warning(
                f"PaymentIntent {order.payment_intent_id} collected {amount_cents} cents "
                f"but order {order.id} totals {expected}, not marking it paid",
                extra={"order_id": order.id, "expected_cents": expected, "received_cents": amount_cents},
            )
            return False
        if currency is not None and currency.lower() != self.currency:
            logger.warning(
                f"PaymentIntent {order.payment_intent_id} paid in {currency}, "
                f"expected {self.currency}, not marking order {order.id} paid"
            )
            return False
        return True

    async def update_status(self, order: Order, status: OrderStatus) -> Order:
        """Change fulfilment status; cancelling puts stock back."""
        if order.status == status:
            return order
        if order.status == OrderStatus.CANCELLED:
            raise ValidationError("Cancelled orders cannot be changed")
        if status == OrderStatus.CANCELLED:
            return await self.cancel_order(order)
        return await self.orders.update_status(order, status)

    async def cancel_order(self, order: Order) -> Order:
        """Cancel an order and restore inventory for products that still exist."""
        if order.status == OrderStatus.CANCELLED:
            return order
        for item in order.items:
            if item.product_id is not None:
                await self.products.restock(item.product_id, item.quantity)
        await self.orders.update_status(order, OrderStatus.CANCELLED)
        logger.info(f"Cancelled order {order.id}, inventory restored")
        return order
