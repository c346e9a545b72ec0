"""Customer support chat assistant.

Answers shopper questions with an OpenAI chat completion, grounded in a
small amount of store data picked by keyword (the shopper's orders, cart or
featured products). When no API key is configured, or the completion call
fails, a canned answer chosen by keyword is returned instead, so the widget
always gets a reply.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import ChatbotConfig, get_config
from storefront.db.models import Cart, Order, Product, User
from storefront.db.repositories import CartRepository, OrderRepository, ProductRepository
from storefront.logging_config import get_logger

logger = get_logger(__name__)

ORDER_KEYWORDS = ("order", "purchase")
CART_KEYWORDS = ("cart",)
PRODUCT_KEYWORDS = ("product", "price", "item", "stock")
FEATURED_CONTEXT_LIMIT = 4

SYSTEM_PROMPT = """You are an AI assistant for {store_name}, an e-commerce store.
Answer the customer's query using the context provided.

Keep your response friendly, helpful and concise. If you don't have enough
information to answer correctly, say so and suggest how the customer might
find the answer or offer to connect them with customer service.
Don't mention that you're looking at JSON data; respond naturally as if you
had this knowledge."""

FALLBACK_DEFAULT = (
    "I'm here to help with questions about our products, shipping, returns, and more. "
    "How can I assist you today?"
)


def fallback_response(message: str) -> str:
    """Canned answer for ``message`` chosen by keyword."""
    text = message.lower()
    if "shipping" in text or "delivery" in text:
        return (
            "We offer free shipping on all orders over $50. Standard delivery takes 3-5 "
            "business days, while express shipping (available for an additional fee) "
            "takes 1-2 business days."
        )
    if "return" in text or "refund" in text:
        return (
            "Our return policy allows you to return items within 30 days of delivery for a "
            "full refund. Please visit our Returns page or contact customer service for "
            "assistance."
        )
    if "payment" in text:
        return (
            "We accept all major credit cards (Visa, Mastercard, American Express, "
            "Discover), PayPal, and Apple Pay for payment."
        )
    if "order" in text and "status" in text:
        return (
            "To check your order status, please log in to your account and visit the "
            "Orders section. If you need further assistance, our customer service team "
            "is available 24/7."
        )
    if "cart" in text:
        return (
            "You can view your cart by clicking on the cart icon in the top right corner "
            "of the page. From there, you can modify quantities or proceed to checkout."
        )
    if "product" in text or "electronics" in text:
        return (
            "We have a wide selection of products across various categories. You can "
            "browse our catalog from the main shop page or use the search function to "
            "find specific items."
        )
    return FALLBACK_DEFAULT


def _money(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else f"{Decimal(value):.2f}"


def _user_context(user: User) -> Dict[str, Any]:
    # Never includes password_hash
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }


def _product_context(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "price": _money(product.price),
        "original_price": _money(product.original_price),
        "in_stock": product.inventory > 0,
        "rating": _money(product.rating),
    }


def _cart_context(cart: Cart) -> Dict[str, Any]:
    return {
        "id": cart.id,
        "items": [
            {"product": item.product.name, "price": _money(item.product.price), "quantity": item.quantity}
            for item in cart.items
        ],
    }


def _order_context(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "total": _money(order.total),
        "placed_at": order.created_at.isoformat() if order.created_at else None,
        "items": [{"name": item.name, "quantity": item.quantity} for item in order.items],
    }


@dataclass
class ChatReply:
    """Assistant reply returned to the widget."""

    response: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    model: str = "fallback"


class ChatbotService:
    """Builds store context for a message and asks the model to answer it."""

    def __init__(
        self,
        db: AsyncSession,
        config: Optional[ChatbotConfig] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.db = db
        self.config = config or get_config().chatbot
        self._client = client
        if self._client is None and self.config.api_key:
            self._client = AsyncOpenAI(api_key=self.config.api_key)

    async def build_context(
        self,
        message: str,
        user: Optional[User],
        session_id: Optional[str],
    ) -> Dict[str, Any]:
        """Collect the store data relevant to ``message``."""
        text = message.lower()
        context: Dict[str, Any] = {}
        carts = CartRepository(self.db)

        if user is not None:
            context["user"] = _user_context(user)
            if any(word in text for word in ORDER_KEYWORDS):
                orders = await OrderRepository(self.db).list_for_user(user.id)
                context["orders"] = [_order_context(o) for o in orders]
            if any(word in text for word in CART_KEYWORDS):
                cart = await carts.get_for_owner(user_id=user.id)
                if cart is not None:
                    context["cart"] = _cart_context(cart)
        elif session_id:
            cart = await carts.get_for_owner(session_id=session_id)
            if cart is not None:
                context["cart"] = _cart_context(cart)

        if any(word in text for word in PRODUCT_KEYWORDS):
            featured = await ProductRepository(self.db).featured(FEATURED_CONTEXT_LIMIT)
            context["featured_products"] = [_product_context(p) for p in featured]

        return context

    def build_prompt(
        self,
        message: str,
        client_context: Optional[Dict[str, Any]],
        server_context: Dict[str, Any],
    ) -> str:
        combined = {
            "message": message,
            "frontend": client_context or {},
            "backend": server_context,
        }
        return (
            f"CUSTOMER QUERY: {message}\n\n"
            f"CONTEXT:\n{json.dumps(combined, indent=2, default=str)}"
        )

    async def respond(
        self,
        message: str,
        user: Optional[User] = None,
        session_id: Optional[str] = None,
        client_context: Optional[Dict[str, Any]] = None,
    ) -> ChatReply:
        """Answer a shopper's message."""
        if self._client is None:
            return ChatReply(response=fallback_response(message))

        server_context = await self.build_context(message, user, session_id)
        prompt = self.build_prompt(message, client_context, server_context)

        try:
            completion = await self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {
                        "role": "system",
                        "content": SYSTEM_PROMPT.format(store_name=self.config.store_name),
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
            text = (completion.choices[0].message.content or "").strip()
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            return ChatReply(response=fallback_response(message))

        if not text:
            logger.warning("Chat completion returned no text, using fallback")
            return ChatReply(response=fallback_response(message))
        return ChatReply(response=text, model=self.config.model)
