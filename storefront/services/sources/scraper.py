"""Deal listings for the home page "Deals" section.

The storefront ships with a fixed set of sample deals. ``scrape_amazon_deals``
can parse an Amazon search results page into the same shape, but it is only
run on HTML handed to it; nothing here fetches retailer pages on its own.
"""

import hashlib
import random
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from bs4 import BeautifulSoup

from storefront.logging_config import get_logger
from storefront.utils import generate_slug, parse_price

from .base import SupplierProduct

logger = get_logger(__name__)

AMAZON_BASE_URL = "https://www.amazon.com"


@dataclass
class ScrapedDeal:
    """A discounted product seen on a retailer site."""

    name: str
    price: Decimal
    description: str
    url: str
    source: str
    original_price: Optional[Decimal] = None
    image: Optional[str] = None

    @property
    def discount_percent(self) -> int:
        if not self.original_price or self.original_price <= self.price:
            return 0
        return int((1 - self.price / self.original_price) * 100)


SAMPLE_DEALS: List[ScrapedDeal] = [
    ScrapedDeal(
        name="Apple AirPods Pro (2nd Generation)",
        price=Decimal("189.99"),
        original_price=Decimal("249.99"),
        description=(
            "Apple AirPods Pro with USB-C Charging, Active Noise Cancellation, "
            "Transparency Mode, Adaptive Audio, Personalized Spatial Audio"
        ),
        image="https://m.media-amazon.com/images/I/51gStsSfFxL._AC_SL1500_.jpg",
        url="https://www.amazon.com/Apple-Generation-Cancellation-Transparency-Personalized/dp/B0CHX3QBFK/",
        source="Amazon",
    ),
    ScrapedDeal(
        name="Samsung 32-Inch ViewFinity S6 Monitor",
        price=Decimal("199.99"),
        original_price=Decimal("349.99"),
        description=(
            "SAMSUNG 32-Inch ViewFinity S6 Computer Monitor, 4K UHD, IPS Panel, HDR10, "
            "Eye Saver Mode, Height Adjustable Stand"
        ),
        image="https://m.media-amazon.com/images/I/71tZqLf-xAL._AC_SL1500_.jpg",
        url="https://www.amazon.com/SAMSUNG-ViewFinity-Computer-Adjustable-LS32C601EUNXZA/dp/B0CPBDVV4W/",
        source="Amazon",
    ),
    ScrapedDeal(
        name="Sony WH-1000XM5 Wireless Headphones",
        price=Decimal("328.00"),
        original_price=Decimal("399.99"),
        description=(
            "Sony WH-1000XM5 Wireless Noise Canceling Headphones with Auto Noise "
            "Canceling Optimizer and Crystal Clear Hands-Free Calling"
        ),
        image="https://m.media-amazon.com/images/I/61+btxzpfDL._AC_SL1500_.jpg",
        url="https://www.amazon.com/Sony-WH-1000XM5-Canceling-Headphones-Optimizer/dp/B09XS7JWHH/",
        source="Amazon",
    ),
    ScrapedDeal(
        name="LG 27-Inch UltraGear Gaming Monitor",
        price=Decimal("196.99"),
        original_price=Decimal("249.99"),
        description=(
            "LG 27-Inch UltraGear QHD Gaming Monitor with IPS 1ms, G-SYNC Compatible, "
            "AMD FreeSync Premium, HDR 10"
        ),
        image="https://m.media-amazon.com/images/I/61frwPsMZhL._AC_SL1500_.jpg",
        url="https://www.amazon.com/LG-27GP850-B-Ultragear-Compatible-Adjustable/dp/B093MTSTKD/",
        source="Best Buy",
    ),
    ScrapedDeal(
        name="ASUS ROG Strix G16 Gaming Laptop",
        price=Decimal("1299.99"),
        original_price=Decimal("1499.99"),
        description=(
            "ASUS ROG Strix G16 Gaming Laptop with GeForce RTX 4070, Intel Core i9, "
            "16GB DDR5, 1TB SSD"
        ),
        image="https://m.media-amazon.com/images/I/71AmKW4yuDL._AC_SL1500_.jpg",
        url="https://www.amazon.com/ASUS-Display-GeForce-i9-13980HX-G614JI-AS94/dp/B0BYZ18T7B/",
        source="Best Buy",
    ),
]

# Every known retailer currently maps to Electronics
SOURCE_CATEGORY_SLUGS = {
    "Amazon": "electronics",
    "Best Buy": "electronics",
    "eBay": "electronics",
    "Walmart": "electronics",
}
DEFAULT_CATEGORY_SLUG = "electronics"


def scrape_amazon_deals(html: str) -> List[ScrapedDeal]:
    """Parse an Amazon search results page into deals.

    Results without a name or a positive price are skipped. The struck-through
    list price is kept only when it is above the sale price.
    """
    soup = BeautifulSoup(html, "html.parser")
    deals: List[ScrapedDeal] = []

    for result in soup.select(".s-result-item"):
        name_el = result.select_one("h2 span")
        name = name_el.get_text(strip=True) if name_el else ""
        price_el = result.select_one(".a-price .a-offscreen")
        price = parse_price(price_el.get_text(strip=True) if price_el else None)
        if not name or not price or price <= 0:
            continue

        original_el = result.select_one(".a-text-price .a-offscreen")
        original = parse_price(original_el.get_text(strip=True) if original_el else None)
        image_el = result.select_one("img.s-image")
        link_el = result.select_one("a.a-link-normal")

        deals.append(
            ScrapedDeal(
                name=name,
                price=price,
                original_price=original if original and original > price else None,
                description=f"{name} - Great deal from Amazon.",
                image=image_el.get("src") if image_el else None,
                url=AMAZON_BASE_URL + (link_el.get("href", "") if link_el else ""),
                source="Amazon",
            )
        )

    logger.info(f"Parsed {len(deals)} deals from Amazon results page")
    return deals


def get_deals() -> List[ScrapedDeal]:
    """Current deals, best discount first."""
    return sorted(SAMPLE_DEALS, key=lambda d: d.discount_percent, reverse=True)


def deal_sku(deal: ScrapedDeal) -> str:
    """Stable supplier SKU for a deal, derived from its source and URL."""
    digest = hashlib.sha1(f"{deal.source}:{deal.url}".encode()).hexdigest()[:12]
    return f"DEAL-{generate_slug(deal.source)}-{digest}"


def deals_to_products(
    deals: List[ScrapedDeal],
    rng: Optional[random.Random] = None,
) -> List[SupplierProduct]:
    """Convert deals into supplier products with randomized merchandising flags.

    Inventory is 10-110 units, ratings fall between 3.8 and 5.0, and about
    30% are featured and 20% flagged new.
    """
    rng = rng or random.Random()
    products = []
    for deal in deals:
        products.append(
            SupplierProduct(
                supplier_sku=deal_sku(deal),
                name=deal.name,
                slug=generate_slug(deal.name),
                description=deal.description,
                price=deal.price,
                original_price=deal.original_price,
                image=deal.image,
                inventory=rng.randint(10, 110),
                featured=rng.random() > 0.7,
                is_new=rng.random() > 0.8,
                rating=Decimal(str(round(rng.uniform(3.8, 5.0), 1))),
                source=deal.source,
            )
        )
    return products
