"""Rakuten Ichiba item search client."""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from storefront.config import RakutenConfig, get_config
from storefront.exceptions import ValidationError
from storefront.http_client import get_async_client, request_with_retry
from storefront.logging_config import get_logger
from storefront.utils import generate_slug

from .base import SupplierProduct

logger = get_logger(__name__)

# Rakuten appends a thumbnail size to image URLs
THUMBNAIL_SUFFIX = "?_ex=128x128"
DEFAULT_INVENTORY = 50
MAX_HITS = 30


def rakuten_item_to_product(item: Dict[str, Any]) -> Optional[SupplierProduct]:
    """Map one ``Items[].Item`` entry to a SupplierProduct.

    Returns None when the item has no code, name or usable price.
    """
    code = item.get("itemCode")
    name = (item.get("itemName") or "").strip()
    try:
        price = Decimal(str(item.get("itemPrice")))
    except (InvalidOperation, TypeError):
        price = None
    if not code or not name or price is None or price <= 0:
        return None

    image = None
    images = item.get("mediumImageUrls") or []
    if images:
        first = images[0]
        url = first.get("imageUrl") if isinstance(first, dict) else first
        if url:
            image = url.replace(THUMBNAIL_SUFFIX, "")

    shop_code = code.split(":")[0]
    return SupplierProduct(
        supplier_sku=f"RAKUTEN-{code}",
        name=name,
        slug=generate_slug(f"{name}-{shop_code}"),
        description=item.get("itemCaption") or "",
        price=price.quantize(Decimal("0.01")),
        image=image,
        inventory=DEFAULT_INVENTORY,
        featured=False,
        is_new=True,
        source="Rakuten",
    )


class RakutenClient:
    """Search the Ichiba catalog with the configured application id."""

    def __init__(
        self,
        config: Optional[RakutenConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config().rakuten
        self._client = client

    async def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = await get_async_client()
        return self._client

    async def search(
        self,
        keyword: Optional[str] = None,
        hits: Optional[int] = None,
        page: int = 1,
    ) -> List[SupplierProduct]:
        """Fetch one page of search results.

        Raises:
            ValidationError: If RAKUTEN_APP_ID is not configured
            httpx.HTTPError: If the API keeps failing after retries
        """
        if not self.config.app_id:
            raise ValidationError(
                "Rakuten API is not configured",
                suggestion="Set RAKUTEN_APP_ID to enable Rakuten catalog sync",
            )

        params: Dict[str, Any] = {
            "applicationId": self.config.app_id,
            "format": "json",
            "keyword": keyword or self.config.default_keyword,
            "hits": min(hits or self.config.hits, MAX_HITS),
            "page": page,
        }
        if self.config.affiliate_id:
            params["affiliateId"] = self.config.affiliate_id

        client = await self._http()
        response = await request_with_retry(client, "GET", self.config.base_url, params=params)
        payload = response.json()

        products = []
        skipped = 0
        for entry in payload.get("Items") or []:
            item = entry.get("Item", entry) if isinstance(entry, dict) else None
            product = rakuten_item_to_product(item) if item else None
            if product is None:
                skipped += 1
                continue
            products.append(product)

        logger.info(
            f"Rakuten search '{params['keyword']}' returned {len(products)} products"
            + (f" ({skipped} skipped)" if skipped else "")
        )
        return products
