"""Tests for the support chat route."""

from storefront.api.routes import chatbot


class TestChatbot:
    async def test_fallback_reply_without_api_key(self, make_client):
        async with make_client(chatbot.router) as client:
            response = await client.post("/api/chatbot", json={"message": "How long does shipping take?"})
        assert response.status_code == 200
        data = response.json()
        assert "free shipping" in data["response"]
        assert data["timestamp"]

    async def test_empty_message(self, make_client):
        async with make_client(chatbot.router) as client:
            response = await client.post("/api/chatbot", json={"message": "   "})
        assert response.status_code == 400
        assert response.json()["detail"]["detail"] == "Message is required"

    async def test_rate_limited(self, make_client, storefront_config):
        storefront_config.chatbot.rate_limit = "2/minute"
        async with make_client(chatbot.router) as client:
            statuses = [
                (await client.post("/api/chatbot", json={"message": "hi"})).status_code
                for _ in range(3)
            ]
            limited = await client.post("/api/chatbot", json={"message": "hi"})

        assert statuses == [200, 200, 429]
        assert limited.json()["detail"]["error_code"] == "ERR_LIMIT_001"
        assert limited.headers["Retry-After"] == "60"
