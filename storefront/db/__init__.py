"""Database package for Storefront.

Subpackages:
    models: SQLAlchemy ORM models
    repositories: Query helpers, one per aggregate
"""

from .models import (
    Address,
    AddressType,
    Base,
    Cart,
    CartItem,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Product,
    ProductCategory,
    Referral,
    ReferredUser,
    User,
    UserRole,
)

__all__ = [
    "Base",
    "User",
    "Address",
    "Category",
    "Product",
    "ProductCategory",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Referral",
    "ReferredUser",
    "UserRole",
    "AddressType",
    "OrderStatus",
    "PaymentStatus",
]
