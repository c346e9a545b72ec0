"""External catalog sources: retailer deals and supplier APIs."""

from .base import SupplierProduct
from .rakuten import RakutenClient, rakuten_item_to_product
from .scraper import (
    SAMPLE_DEALS,
    ScrapedDeal,
    deals_to_products,
    get_deals,
    scrape_amazon_deals,
)
from .wholesale2b import Wholesale2BClient, wholesale2b_item_to_product

__all__ = [
    "SupplierProduct",
    "RakutenClient",
    "rakuten_item_to_product",
    "SAMPLE_DEALS",
    "ScrapedDeal",
    "deals_to_products",
    "get_deals",
    "scrape_amazon_deals",
    "Wholesale2BClient",
    "wholesale2b_item_to_product",
]
