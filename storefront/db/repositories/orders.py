"""Repository for orders and their item snapshots."""

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Order, OrderItem, OrderStatus, PaymentStatus
from storefront.exceptions import NotFoundError


class OrderRepository:
    """Order persistence. Items are loaded eagerly with their order."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: int) -> List[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(
        self,
        status: Optional[OrderStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Order], int]:
        """List every order (admin view).

        Returns:
            Tuple of (orders, total matching count)
        """
        stmt = select(Order)
        count_stmt = select(func.count(Order.id))
        if status is not None:
            stmt = stmt.where(Order.status == status)
            count_stmt = count_stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit)
        orders = list((await self.db.execute(stmt)).scalars().all())
        total = int((await self.db.execute(count_stmt)).scalar_one())
        return orders, total

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_id_or_raise(self, order_id: int) -> Order:
        order = await self.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order).where(Order.payment_intent_id == payment_intent_id)
        )
        return result.scalar_one_or_none()

    async def create(self, order: Order) -> Order:
        """Persist a new order together with its items."""
        self.db.add(order)
        await self.db.flush()
        return await self.get_by_id_or_raise(order.id)

    async def add_item(
        self,
        order: Order,
        name: str,
        price,
        quantity: int,
        product_id: Optional[int] = None,
    ) -> OrderItem:
        item = OrderItem(
            order_id=order.id,
            product_id=product_id,
            name=name,
            price=price,
            quantity=quantity,
        )
        self.db.add(item)
        await self.db.flush()
        return item

    async def update_status(self, order: Order, status: OrderStatus) -> Order:
        order.status = status
        await self.db.flush()
        return order

    async def update_payment_status(
        self,
        order: Order,
        payment_status: PaymentStatus,
        payment_intent_id: Optional[str] = None,
    ) -> Order:
        order.payment_status = payment_status
        if payment_intent_id:
            order.payment_intent_id = payment_intent_id
        await self.db.flush()
        return order
