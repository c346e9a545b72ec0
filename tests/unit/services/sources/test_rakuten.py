"""Unit tests for the Rakuten Ichiba client."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from storefront.config import RakutenConfig
from storefront.exceptions import ValidationError
from storefront.services.sources import RakutenClient, rakuten_item_to_product


def _item(**overrides):
    item = {
        "itemCode": "shop-a:10001",
        "itemName": "Bluetooth Speaker",
        "itemPrice": 3980,
        "itemCaption": "Portable speaker",
        "mediumImageUrls": [{"imageUrl": "https://thumbnail.image.rakuten.co.jp/a.jpg?_ex=128x128"}],
    }
    item.update(overrides)
    return item


class TestRakutenItemToProduct:
    def test_maps_fields(self):
        product = rakuten_item_to_product(_item())

        assert product.supplier_sku == "RAKUTEN-shop-a:10001"
        assert product.name == "Bluetooth Speaker"
        assert product.slug == "bluetooth-speaker-shop-a"
        assert product.price == Decimal("3980.00")
        assert product.image == "https://thumbnail.image.rakuten.co.jp/a.jpg"
        assert product.inventory == 50
        assert product.is_new is True

    def test_plain_string_image_urls(self):
        product = rakuten_item_to_product(_item(mediumImageUrls=["https://img.test/b.jpg"]))
        assert product.image == "https://img.test/b.jpg"

    @pytest.mark.parametrize(
        "overrides",
        [{"itemCode": None}, {"itemName": "  "}, {"itemPrice": "n/a"}, {"itemPrice": 0}],
    )
    def test_incomplete_items_are_skipped(self, overrides):
        assert rakuten_item_to_product(_item(**overrides)) is None


class TestRakutenClient:
    async def test_requires_app_id(self):
        with pytest.raises(ValidationError):
            await RakutenClient(RakutenConfig(app_id=None)).search()

    async def test_search(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={"Items": [{"Item": _item()}, {"Item": _item(itemName="")}]},
            )

        config = RakutenConfig(app_id="app-1", affiliate_id="aff-1", base_url="https://rakuten.test/search")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            products = await RakutenClient(config, client=http).search(keyword="speaker", hits=99)

        assert [p.name for p in products] == ["Bluetooth Speaker"]
        assert seen["params"]["applicationId"] == "app-1"
        assert seen["params"]["affiliateId"] == "aff-1"
        assert seen["params"]["keyword"] == "speaker"
        assert seen["params"]["hits"] == "30"

    async def test_server_errors_propagate_after_retries(self):
        config = RakutenConfig(app_id="app-1", base_url="https://rakuten.test/search")
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        with patch("storefront.http_client.asyncio.sleep", new=AsyncMock()):
            async with httpx.AsyncClient(transport=transport) as http:
                with pytest.raises(httpx.HTTPStatusError):
                    await RakutenClient(config, client=http).search()
