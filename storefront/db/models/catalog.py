"""Catalog models: categories, products and their many-to-many link."""

from decimal import Decimal
from typing import List

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, generate_repr


class Category(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A browsable product category."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(120),
        unique=True,
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    def __repr__(self) -> str:
        return generate_repr(self, "id", "slug")


class ProductCategory(Base, IntegerPrimaryKeyMixin):
    """Join row linking a product to one of its categories."""

    __tablename__ = "product_categories"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("product_id", "category_id", name="uq_product_categories_pair"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "product_id", "category_id")


class Product(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A sellable product.

    Attributes:
        name: Display name
        slug: Unique URL slug
        price: Current unit price
        original_price: Compare-at price shown struck through (optional)
        inventory: Units in stock, never negative
        featured: Shown on the home page
        is_new: Flagged as a new arrival
        rating: Average rating 0.0-5.0 (optional)
        supplier_sku: External supplier identifier, the upsert key for sync
        category_id: Primary category (optional)
        categories: All categories the product is listed under
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(300),
        unique=True,
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    original_price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
    )
    image: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    inventory: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_new: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rating: Mapped[Decimal | None] = mapped_column(Numeric(2, 1), nullable=True)
    supplier_sku: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    categories: Mapped[List[Category]] = relationship(
        Category,
        secondary="product_categories",
        lazy="selectin",
        order_by=Category.id,
    )

    __table_args__ = (
        CheckConstraint("inventory >= 0", name="inventory_non_negative"),
    )

    @property
    def in_stock(self) -> bool:
        return self.inventory > 0

    def __repr__(self) -> str:
        return generate_repr(self, "id", "slug", "price")
