"""
Catalog synchronisation from supplier feeds.

This module contains the jobs that:
- Pull products from the Rakuten Ichiba search API
- Pull products from the Wholesale2B dropshipping feed
- Import the curated deal list

Every job funnels into ``CatalogSync.sync``, which upserts by supplier SKU so
a re-run updates rows instead of duplicating them. Each product is written
inside its own SAVEPOINT: one bad record is counted as an error and the rest
of the batch still lands.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Category
from storefront.db.repositories import CategoryRepository, ProductRepository
from storefront.exceptions import StorefrontError

from .sources import (
    RakutenClient,
    SupplierProduct,
    Wholesale2BClient,
    deals_to_products,
    get_deals,
)
from .sources.scraper import DEFAULT_CATEGORY_SLUG, SOURCE_CATEGORY_SLUGS

logger = structlog.get_logger(__name__)


@dataclass
class SyncResult:
    """Counts for one sync run."""

    source: str
    created: int = 0
    updated: int = 0
    errors: int = 0
    duration: float = 0.0
    failed_skus: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
            "duration": round(self.duration, 2),
        }


class CatalogSync:
    """Upsert supplier products into the catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.products = ProductRepository(db)
        self.categories = CategoryRepository(db)

    async def ensure_category(self, name: str, slug: Optional[str] = None) -> Category:
        return await self.categories.get_or_create(name, slug=slug)

    async def sync(
        self,
        products: Iterable[SupplierProduct],
        category: Optional[Category] = None,
        source: str = "manual",
    ) -> SyncResult:
        """Upsert ``products``, linking new and existing rows to ``category``.

        Args:
            products: Supplier products to write
            category: Category to add to every product (optional)
            source: Label used in logs and the result

        Returns:
            SyncResult with created, updated and error counts
        """
        start_time = time.time()
        result = SyncResult(source=source)
        category_ids = [category.id] if category is not None else None
        log = logger.bind(source=source, category=category.slug if category else None)

        for item in products:
            try:
                async with self.db.begin_nested():
                    _, created = await self.products.upsert_by_supplier_sku(
                        item.to_product_data(), category_ids
                    )
            except (SQLAlchemyError, StorefrontError) as e:
                result.errors += 1
                result.failed_skus.append(item.supplier_sku)
                log.warning("product_sync_failed", supplier_sku=item.supplier_sku, error=str(e))
                continue

            if created:
                result.created += 1
            else:
                result.updated += 1

        result.duration = time.time() - start_time
        log.info("catalog_sync_completed", **result.to_dict())
        return result

    async def sync_rakuten(
        self,
        keyword: Optional[str] = None,
        hits: Optional[int] = None,
        client: Optional[RakutenClient] = None,
    ) -> SyncResult:
        """Import one page of Rakuten search results into the Electronics category."""
        client = client or RakutenClient()
        log = logger.bind(source="rakuten", keyword=keyword)
        log.info("rakuten_sync_started")

        products = await client.search(keyword=keyword, hits=hits)
        category = await self.ensure_category("Electronics", "electronics")
        return await self.sync(products, category, source="rakuten")

    async def sync_wholesale2b(
        self,
        limit: Optional[int] = None,
        client: Optional[Wholesale2BClient] = None,
    ) -> SyncResult:
        """Import the first page of the Wholesale2B feed."""
        client = client or Wholesale2BClient()
        logger.info("wholesale2b_sync_started", limit=limit)

        products = await client.list_products(page=1, limit=limit)
        category = await self.ensure_category("Wholesale", "wholesale")
        return await self.sync(products, category, source="wholesale2b")

    async def import_deals(self, rng: Optional[random.Random] = None) -> SyncResult:
        """Import the current deal list, filed under each retailer's category."""
        start_time = time.time()
        result = SyncResult(source="deals")
        products = deals_to_products(get_deals(), rng)

        by_slug: dict[str, List[SupplierProduct]] = {}
        for product in products:
            slug = SOURCE_CATEGORY_SLUGS.get(product.source or "", DEFAULT_CATEGORY_SLUG)
            by_slug.setdefault(slug, []).append(product)

        for slug, group in by_slug.items():
            category = await self.categories.get_by_slug(slug)
            if category is None:
                category = await self.ensure_category(slug.replace("-", " ").title(), slug)
            partial = await self.sync(group, category, source="deals")
            result.created += partial.created
            result.updated += partial.updated
            result.errors += partial.errors
            result.failed_skus.extend(partial.failed_skus)

        result.duration = time.time() - start_time
        return result
