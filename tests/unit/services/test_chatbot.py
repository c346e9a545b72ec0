"""Unit tests for the support chat assistant."""

import json
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.config import ChatbotConfig
from storefront.db.repositories import CartRepository
from storefront.services.chatbot import FALLBACK_DEFAULT, ChatbotService, fallback_response
from storefront.services.checkout import CheckoutRequest, CheckoutService
from tests.factories import ProductFactory, UserFactory


def _mock_client(content="Happy to help!", error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        completion = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )
        client.chat.completions.create = AsyncMock(return_value=completion)
    return client


class TestFallbackResponse:
    @pytest.mark.parametrize(
        "message,expected_fragment",
        [
            ("How long does shipping take?", "free shipping"),
            ("Can I get a refund?", "return policy"),
            ("Which payment methods?", "credit cards"),
            ("What is my order status", "Orders section"),
            ("where is my cart", "cart icon"),
            ("Do you sell electronics?", "wide selection"),
        ],
    )
    def test_keyword_answers(self, message, expected_fragment):
        assert expected_fragment in fallback_response(message)

    def test_default(self):
        assert fallback_response("hello there") == FALLBACK_DEFAULT


class TestRespond:
    async def test_without_api_key_uses_fallback(self, db_session):
        service = ChatbotService(db_session, ChatbotConfig(api_key=None))

        reply = await service.respond("Tell me about shipping")

        assert reply.model == "fallback"
        assert "free shipping" in reply.response

    async def test_uses_model_reply(self, db_session):
        client = _mock_client("  We ship worldwide.  ")
        service = ChatbotService(db_session, ChatbotConfig(model="test-model"), client=client)

        reply = await service.respond("Do you ship abroad?")

        assert reply.response == "We ship worldwide."
        assert reply.model == "test-model"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][0]["role"] == "system"
        assert "Do you ship abroad?" in kwargs["messages"][1]["content"]

    async def test_completion_failure_falls_back(self, db_session):
        client = _mock_client(error=RuntimeError("quota exceeded"))
        service = ChatbotService(db_session, ChatbotConfig(), client=client)

        reply = await service.respond("What about returns?")

        assert reply.model == "fallback"
        assert "return policy" in reply.response

    async def test_empty_completion_falls_back(self, db_session):
        service = ChatbotService(db_session, ChatbotConfig(), client=_mock_client(content=None))
        reply = await service.respond("hi")
        assert reply.response == FALLBACK_DEFAULT


class TestBuildContext:
    async def test_user_orders_and_cart(self, db_session):
        user = await UserFactory.async_create(db_session)
        product = await ProductFactory.async_create(db_session, name="Kettle", price=Decimal("30.00"))
        carts = CartRepository(db_session)
        cart = await carts.get_or_create(user_id=user.id)
        await carts.add_item(cart, product.id, 1)
        await CheckoutService(db_session).create_order(user, CheckoutRequest())
        await carts.add_item(cart, product.id, 2)
        service = ChatbotService(db_session, ChatbotConfig())

        context = await service.build_context("Where is my order? Also my cart", user, None)

        assert context["user"]["username"] == user.username
        assert context["orders"][0]["total"] == "30.00"
        assert context["orders"][0]["items"] == [{"name": "Kettle", "quantity": 1}]
        assert context["cart"]["items"][0]["quantity"] == 2
        assert "password" not in json.dumps(context, default=str)

    async def test_guest_cart_and_featured_products(self, db_session):
        product = await ProductFactory.async_create(db_session, featured=True, price=Decimal("5.00"))
        carts = CartRepository(db_session)
        cart = await carts.get_or_create(session_id="guest-1")
        await carts.add_item(cart, product.id, 1)
        service = ChatbotService(db_session, ChatbotConfig())

        context = await service.build_context("what price is this product", None, "guest-1")

        assert "user" not in context
        assert context["cart"]["items"][0]["price"] == "5.00"
        assert context["featured_products"][0]["id"] == product.id

    async def test_no_keywords_means_no_queries(self, db_session):
        service = ChatbotService(db_session, ChatbotConfig())
        assert await service.build_context("hello", None, None) == {}

    def test_prompt_includes_both_contexts(self):
        service = ChatbotService(None, ChatbotConfig())
        prompt = service.build_prompt("hi", {"page": "/cart"}, {"cart": {"id": 1}})
        assert prompt.startswith("CUSTOMER QUERY: hi")
        assert '"page": "/cart"' in prompt
        assert '"backend"' in prompt
