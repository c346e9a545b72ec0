"""Test factories for generating model instances.

Usage:
    from tests.factories import UserFactory, ProductFactory

    user = await UserFactory.async_create(session)
    product = await ProductFactory.async_create(session, price=Decimal("9.99"))
"""

from .address import AddressFactory
from .base import AsyncModelFactory, short_id
from .catalog import CategoryFactory, ProductFactory
from .user import TEST_PASSWORD, TEST_PASSWORD_HASH, UserFactory

__all__ = [
    "AsyncModelFactory",
    "short_id",
    "AddressFactory",
    "CategoryFactory",
    "ProductFactory",
    "TEST_PASSWORD",
    "TEST_PASSWORD_HASH",
    "UserFactory",
]
