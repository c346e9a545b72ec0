"""Administrator order management."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.routes.orders import OrderResponse
from storefront.api.shared.auth import require_admin
from storefront.db.models import Order, OrderStatus, User
from storefront.db.repositories import OrderRepository
from storefront.db.session import get_db
from storefront.logging_config import get_logger
from storefront.services.checkout import CheckoutService

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


@router.get("/orders", response_model=List[OrderResponse])
async def list_all_orders(
    response: Response,
    status: Optional[OrderStatus] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[Order]:
    """Every order, newest first; total count in ``X-Total-Count``."""
    orders, total = await OrderRepository(db).list_all(status, limit, offset)
    response.headers["X-Total-Count"] = str(total)
    return orders


@router.put("/orders/{order_id}", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Order:
    """Move an order to a new status. Cancelling returns its stock."""
    order = await OrderRepository(db).get_by_id_or_raise(order_id)
    order = await CheckoutService(db).update_status(order, body.status)
    logger.info(
        f"Admin {admin.id} set order {order.id} to {order.status.value}",
        extra={"order_id": order.id},
    )
    return order
