"""Wholesale2B dropshipping catalog client.

The feed is read page by page from ``{endpoint}/products``. Each item is
expected to carry ``id``, ``name``, ``description``, ``price``, ``msrp``,
``stock`` and ``image``; items missing an id, name or price are skipped.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from storefront.config import Wholesale2BConfig, get_config
from storefront.exceptions import ValidationError
from storefront.http_client import get_async_client, request_with_retry
from storefront.logging_config import get_logger

from .base import SupplierProduct

logger = get_logger(__name__)

SKU_PREFIX = "W2B-"


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


def wholesale2b_item_to_product(item: Dict[str, Any]) -> Optional[SupplierProduct]:
    item_id = item.get("id") or item.get("sku")
    name = (item.get("name") or "").strip()
    price = _decimal(item.get("price"))
    if not item_id or not name or price is None or price <= 0:
        return None

    msrp = _decimal(item.get("msrp"))
    stock = item.get("stock")
    try:
        inventory = max(int(stock), 0) if stock is not None else None
    except (TypeError, ValueError):
        inventory = None

    return SupplierProduct(
        supplier_sku=f"{SKU_PREFIX}{item_id}",
        name=name,
        description=item.get("description") or "",
        price=price,
        original_price=msrp if msrp and msrp > price else None,
        image=item.get("image") or None,
        inventory=inventory,
        source="Wholesale2B",
    )


class Wholesale2BClient:
    def __init__(
        self,
        config: Optional[Wholesale2BConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config().wholesale2b
        self._client = client

    async def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = await get_async_client()
        return self._client

    async def list_products(self, page: int = 1, limit: Optional[int] = None) -> List[SupplierProduct]:
        """Fetch one page of the product feed.

        Raises:
            ValidationError: If WHOLESALE2B_API_KEY is not configured
            httpx.HTTPError: If the API keeps failing after retries
        """
        if not self.config.api_key:
            raise ValidationError(
                "Wholesale2B API is not configured",
                suggestion="Set WHOLESALE2B_API_KEY to enable Wholesale2B catalog sync",
            )

        client = await self._http()
        response = await request_with_retry(
            client,
            "GET",
            f"{self.config.endpoint.rstrip('/')}/products",
            params={"page": page, "limit": limit or self.config.page_size},
            headers={"Authorization": f"Bearer {self.config.api_key}"},
        )
        payload = response.json()
        items = payload.get("products", payload.get("data", [])) if isinstance(payload, dict) else payload

        products = []
        for item in items or []:
            product = wholesale2b_item_to_product(item)
            if product is None:
                logger.debug(f"Skipping incomplete Wholesale2B item {item.get('id')}")
                continue
            products.append(product)

        logger.info(f"Wholesale2B page {page} returned {len(products)} products")
        return products
