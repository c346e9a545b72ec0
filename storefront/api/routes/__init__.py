"""API route modules."""

from storefront.api.routes import (
    addresses,
    admin,
    auth,
    cart,
    categories,
    chatbot,
    orders,
    products,
    referrals,
    webhooks,
)

__all__ = [
    "addresses",
    "admin",
    "auth",
    "cart",
    "categories",
    "chatbot",
    "orders",
    "products",
    "referrals",
    "webhooks",
]
