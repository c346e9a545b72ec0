"""Initial catalog and admin account.

``seed_database`` is safe to run repeatedly: categories and products are
matched by slug and the admin by username, so existing rows are left alone.
"""

import random
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import hash_password
from storefront.db.models import UserRole
from storefront.db.repositories import CategoryRepository, ProductRepository, UserRepository

from .catalog_sync import CatalogSync

logger = structlog.get_logger(__name__)

SEED_CATEGORIES = [
    {"name": "Electronics", "slug": "electronics", "description": "Electronic devices and gadgets"},
    {"name": "Clothing", "slug": "clothing", "description": "Apparel and fashion items"},
    {"name": "Home & Kitchen", "slug": "home-kitchen", "description": "Products for your home"},
    {"name": "Books", "slug": "books", "description": "Books and publications"},
]


def _placeholder(name: str) -> str:
    return f"https://placehold.co/600x400?text={name.replace(' ', '+')}"


# (category slug, product values)
SEED_PRODUCTS = [
    ("electronics", {
        "name": "Smartphone X",
        "slug": "smartphone-x",
        "description": "The latest smartphone with amazing features",
        "price": Decimal("799.99"),
        "original_price": Decimal("899.99"),
        "inventory": 50,
        "featured": True,
        "is_new": True,
        "rating": Decimal("4.5"),
    }),
    ("electronics", {
        "name": "Laptop Pro",
        "slug": "laptop-pro",
        "description": "Powerful laptop for professionals",
        "price": Decimal("1299.99"),
        "original_price": Decimal("1499.99"),
        "inventory": 30,
        "featured": True,
        "is_new": False,
        "rating": Decimal("4.8"),
    }),
    ("electronics", {
        "name": "Wireless Headphones",
        "slug": "wireless-headphones",
        "description": "Premium noise-cancelling headphones",
        "price": Decimal("249.99"),
        "original_price": Decimal("299.99"),
        "inventory": 100,
        "featured": True,
        "is_new": False,
        "rating": Decimal("4.6"),
    }),
    ("clothing", {
        "name": "Casual T-Shirt",
        "slug": "casual-t-shirt",
        "description": "Comfortable casual t-shirt",
        "price": Decimal("19.99"),
        "original_price": Decimal("24.99"),
        "inventory": 200,
        "featured": False,
        "is_new": True,
        "rating": Decimal("4.2"),
    }),
    ("home-kitchen", {
        "name": "Kitchen Blender",
        "slug": "kitchen-blender",
        "description": "High-performance kitchen blender",
        "price": Decimal("89.99"),
        "original_price": Decimal("119.99"),
        "inventory": 75,
        "featured": False,
        "is_new": True,
        "rating": Decimal("4.3"),
    }),
    ("books", {
        "name": "Bestselling Novel",
        "slug": "bestselling-novel",
        "description": "The latest bestselling fiction novel",
        "price": Decimal("14.99"),
        "original_price": Decimal("19.99"),
        "inventory": 150,
        "featured": False,
        "is_new": True,
        "rating": Decimal("4.7"),
    }),
]

ADMIN_USERNAME = "admin"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"


@dataclass
class SeedResult:
    categories: int = 0
    products: int = 0
    admin_created: bool = False
    deals: int = 0


async def seed_database(
    db: AsyncSession,
    include_deals: bool = True,
    rng: Optional[random.Random] = None,
) -> SeedResult:
    """Create the starter categories, products and admin user.

    Args:
        db: Session to write through; the caller commits
        include_deals: Also import the curated deal list
        rng: Random source for deal stock and ratings

    Returns:
        SeedResult counting only what was newly created
    """
    result = SeedResult()
    categories = CategoryRepository(db)
    products = ProductRepository(db)
    users = UserRepository(db)

    by_slug = {}
    for values in SEED_CATEGORIES:
        existing = await categories.get_by_slug(values["slug"])
        if existing is None:
            existing = await categories.create(values)
            result.categories += 1
        by_slug[existing.slug] = existing

    for category_slug, values in SEED_PRODUCTS:
        if await products.get_by_slug(values["slug"]) is not None:
            continue
        data = dict(values, image=_placeholder(values["name"]))
        await products.create(data, [by_slug[category_slug].id])
        result.products += 1

    if await users.get_by_username(ADMIN_USERNAME) is None:
        await users.create(
            username=ADMIN_USERNAME,
            email=ADMIN_EMAIL,
            password_hash=hash_password(ADMIN_PASSWORD),
            role=UserRole.ADMIN,
        )
        result.admin_created = True

    if include_deals:
        deals = await CatalogSync(db).import_deals(rng or random.Random())
        result.deals = deals.created

    logger.info(
        "database_seeded",
        categories=result.categories,
        products=result.products,
        admin_created=result.admin_created,
        deals=result.deals,
    )
    return result
