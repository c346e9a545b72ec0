"""Repository for products.

Listing supports the storefront's filter/sort/paginate query, and catalog
sync relies on ``upsert_by_supplier_sku`` to keep one row per supplier
item across repeated runs.
"""

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Category, Product, ProductCategory
from storefront.exceptions import ConflictError, NotFoundError, ValidationError
from storefront.utils import generate_slug

from .categories import CategoryRepository


class ProductSort(str, enum.Enum):
    """Supported orderings for product listings."""

    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    NEWEST = "newest"


@dataclass
class ProductQuery:
    """Filters for ``ProductRepository.search``.

    Price bounds are exclusive.
    """

    category_id: Optional[int] = None
    category_slug: Optional[str] = None
    search: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    featured: Optional[bool] = None
    sort: ProductSort = ProductSort.NEWEST
    limit: Optional[int] = None
    offset: int = 0


_ORDERING = {
    ProductSort.PRICE_ASC: (Product.price.asc(), Product.id.asc()),
    ProductSort.PRICE_DESC: (Product.price.desc(), Product.id.desc()),
    ProductSort.NAME_ASC: (Product.name.asc(), Product.id.asc()),
    ProductSort.NAME_DESC: (Product.name.desc(), Product.id.desc()),
    ProductSort.NEWEST: (Product.created_at.desc(), Product.id.desc()),
}


class ProductRepository:
    """Queries and mutations for products."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.categories = CategoryRepository(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _apply_filters(self, stmt: Select, query: ProductQuery) -> Select:
        if query.category_id is not None:
            linked = select(ProductCategory.product_id).where(
                ProductCategory.category_id == query.category_id
            )
            stmt = stmt.where(
                or_(Product.category_id == query.category_id, Product.id.in_(linked))
            )
        if query.category_slug:
            linked = (
                select(ProductCategory.product_id)
                .join(Category, Category.id == ProductCategory.category_id)
                .where(Category.slug == query.category_slug)
            )
            primary = select(Category.id).where(Category.slug == query.category_slug)
            stmt = stmt.where(
                or_(Product.id.in_(linked), Product.category_id.in_(primary))
            )
        if query.search:
            pattern = f"%{query.search.strip()}%"
            stmt = stmt.where(
                or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
            )
        if query.min_price is not None:
            stmt = stmt.where(Product.price > query.min_price)
        if query.max_price is not None:
            stmt = stmt.where(Product.price < query.max_price)
        if query.featured is not None:
            stmt = stmt.where(Product.featured.is_(query.featured))
        return stmt

    async def search(self, query: ProductQuery) -> List[Product]:
        stmt = self._apply_filters(select(Product), query)
        stmt = stmt.order_by(*_ORDERING[ProductSort(query.sort)])
        if query.offset:
            stmt = stmt.offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, query: ProductQuery) -> int:
        stmt = self._apply_filters(select(func.count(Product.id)), query)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def featured(self, limit: int = 8) -> List[Product]:
        result = await self.db.execute(
            select(Product)
            .where(Product.featured.is_(True))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_id(self, product_id: int, refresh: bool = False) -> Optional[Product]:
        stmt = select(Product).where(Product.id == product_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id_or_raise(self, product_id: int) -> Product:
        product = await self.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    async def get_by_slug(self, slug: str) -> Optional[Product]:
        result = await self.db.execute(select(Product).where(Product.slug == slug))
        return result.scalar_one_or_none()

    async def get_by_supplier_sku(self, supplier_sku: str) -> Optional[Product]:
        result = await self.db.execute(
            select(Product).where(Product.supplier_sku == supplier_sku)
        )
        return result.scalar_one_or_none()

    async def count_all(self) -> int:
        result = await self.db.execute(select(func.count(Product.id)))
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _unique_slug(self, base: str) -> str:
        slug = base
        suffix = 2
        while await self.get_by_slug(slug) is not None:
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    async def create(
        self,
        data: Dict[str, Any],
        category_ids: Optional[Sequence[int]] = None,
        unique_slug: bool = False,
    ) -> Product:
        """Create a product and link it to ``category_ids``.

        Args:
            data: Column values; ``slug`` defaults to a slug of ``name``
            category_ids: Categories to list the product under
            unique_slug: Append a numeric suffix instead of failing on a taken slug

        Raises:
            ConflictError: If the slug or supplier SKU is taken
            NotFoundError: If a category id is unknown
        """
        data = dict(data)
        slug = data.get("slug") or generate_slug(data["name"])
        if unique_slug:
            slug = await self._unique_slug(slug)
        elif await self.get_by_slug(slug) is not None:
            raise ConflictError(f"Product slug '{slug}' already exists")
        data["slug"] = slug

        sku = data.get("supplier_sku")
        if sku and await self.get_by_supplier_sku(sku) is not None:
            raise ConflictError(f"Supplier SKU '{sku}' already exists")

        product = Product(**data)
        product.categories = await self.categories.get_many(category_ids or [])
        if product.category_id is None and product.categories:
            product.category_id = product.categories[0].id
        self.db.add(product)
        await self.db.flush()
        return product

    async def update(
        self,
        product: Product,
        data: Dict[str, Any],
        category_ids: Optional[Sequence[int]] = None,
    ) -> Product:
        """Apply ``data`` to ``product``.

        When ``category_ids`` is given the product's category links are
        replaced with exactly those categories.
        """
        new_slug = data.get("slug")
        if new_slug and new_slug != product.slug:
            if await self.get_by_slug(new_slug) is not None:
                raise ConflictError(f"Product slug '{new_slug}' already exists")
        if "inventory" in data and data["inventory"] is not None and data["inventory"] < 0:
            raise ValidationError("Inventory cannot be negative")

        for key, value in data.items():
            setattr(product, key, value)
        if category_ids is not None:
            product.categories = await self.categories.get_many(category_ids)
            if product.categories and product.category_id not in {c.id for c in product.categories}:
                product.category_id = product.categories[0].id
        await self.db.flush()
        return product

    async def delete(self, product: Product) -> None:
        await self.db.delete(product)
        await self.db.flush()

    async def upsert_by_supplier_sku(
        self,
        data: Dict[str, Any],
        category_ids: Optional[Sequence[int]] = None,
    ) -> Tuple[Product, bool]:
        """Insert or update the product identified by ``data["supplier_sku"]``.

        An existing row keeps its id and slug; every other supplied column is
        overwritten. Category links are only added, so manual curation done
        in the admin survives a re-sync.

        Returns:
            Tuple of (product, created)
        """
        sku = data.get("supplier_sku")
        if not sku:
            raise ValidationError("supplier_sku is required for upsert")

        existing = await self.get_by_supplier_sku(sku)
        if existing is None:
            product = await self.create(data, category_ids, unique_slug=True)
            return product, True

        for key, value in data.items():
            if key in ("slug", "supplier_sku"):
                continue
            setattr(existing, key, value)
        if category_ids:
            current = {c.id for c in existing.categories}
            extra = [cid for cid in category_ids if cid not in current]
            if extra:
                existing.categories = existing.categories + await self.categories.get_many(extra)
        await self.db.flush()
        return existing, False

    async def decrement_inventory(self, product_id: int, quantity: int) -> bool:
        """Atomically take ``quantity`` units out of stock.

        Returns:
            False (and changes nothing) when fewer than ``quantity`` are left
        """
        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.inventory >= quantity)
            .values(inventory=Product.inventory - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def restock(self, product_id: int, quantity: int) -> None:
        await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(inventory=Product.inventory + quantity)
            .execution_options(synchronize_session=False)
        )
