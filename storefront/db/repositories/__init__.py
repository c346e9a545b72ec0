"""Repositories wrapping database access for each aggregate.

Usage:
    repo = ProductRepository(db)
    products = await repo.search(ProductQuery(category_slug="electronics"))
"""

from .addresses import AddressRepository
from .carts import CartRepository
from .categories import CategoryRepository
from .orders import OrderRepository
from .products import ProductQuery, ProductRepository, ProductSort
from .referrals import ReferralRepository
from .users import UserRepository

__all__ = [
    "AddressRepository",
    "CartRepository",
    "CategoryRepository",
    "OrderRepository",
    "ProductQuery",
    "ProductRepository",
    "ProductSort",
    "ReferralRepository",
    "UserRepository",
]
