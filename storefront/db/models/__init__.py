"""SQLAlchemy models for the Storefront database.

Usage:
    from storefront.db.models import Product, Cart, Order

    product = Product(name="Laptop Pro", slug="laptop-pro", price=Decimal("1299.99"))
"""

from .address import Address, AddressType
from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, generate_repr
from .cart import Cart, CartItem
from .catalog import Category, Product, ProductCategory
from .order import Order, OrderItem, OrderStatus, PaymentStatus
from .referral import Referral, ReferredUser
from .user import User, UserRole

__all__ = [
    # Base classes
    "Base",
    "IntegerPrimaryKeyMixin",
    "TimestampMixin",
    "generate_repr",
    # Models
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
    # Enums
    "UserRole",
    "AddressType",
    "OrderStatus",
    "PaymentStatus",
]
