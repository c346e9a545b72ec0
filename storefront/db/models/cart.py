"""Shopping cart models."""

from typing import List

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, generate_repr
from .catalog import Product


class Cart(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A pending collection of products owned by a user or a guest session.

    Exactly one of ``user_id`` / ``session_id`` identifies the owner, and
    each owner has at most one cart.
    """

    __tablename__ = "carts"

    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    session_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )

    items: Mapped[List["CartItem"]] = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="CartItem.id",
    )

    __table_args__ = (
        CheckConstraint(
            "user_id IS NOT NULL OR session_id IS NOT NULL",
            name="has_owner",
        ),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "user_id", "session_id")


class CartItem(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A product and quantity inside a cart."""

    __tablename__ = "cart_items"

    cart_id: Mapped[int] = mapped_column(
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    cart: Mapped[Cart] = relationship(Cart, back_populates="items")
    product: Mapped[Product] = relationship(Product, lazy="selectin")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        CheckConstraint("quantity >= 1", name="quantity_positive"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "cart_id", "product_id", "quantity")
