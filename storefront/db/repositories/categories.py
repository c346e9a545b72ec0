"""Repository for product categories."""

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Category
from storefront.exceptions import ConflictError, NotFoundError
from storefront.utils import generate_slug


class CategoryRepository:
    """CRUD operations for categories."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self) -> List[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def get_by_id(self, category_id: int) -> Optional[Category]:
        return await self.db.get(Category, category_id)

    async def get_by_id_or_raise(self, category_id: int) -> Category:
        category = await self.get_by_id(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    async def get_by_slug(self, slug: str) -> Optional[Category]:
        result = await self.db.execute(select(Category).where(Category.slug == slug))
        return result.scalar_one_or_none()

    async def get_many(self, category_ids: Sequence[int]) -> List[Category]:
        """Load categories by id, raising if any id is unknown."""
        if not category_ids:
            return []
        wanted = set(category_ids)
        result = await self.db.execute(select(Category).where(Category.id.in_(wanted)))
        categories = list(result.scalars().all())
        missing = wanted - {c.id for c in categories}
        if missing:
            raise NotFoundError("Category", sorted(missing)[0])
        return sorted(categories, key=lambda c: c.id)

    async def create(self, data: Dict[str, Any]) -> Category:
        """Create a category, deriving the slug from the name when absent.

        Raises:
            ConflictError: If the slug is taken
        """
        data = dict(data)
        data["slug"] = data.get("slug") or generate_slug(data["name"])
        if await self.get_by_slug(data["slug"]) is not None:
            raise ConflictError(f"Category slug '{data['slug']}' already exists")
        category = Category(**data)
        self.db.add(category)
        await self.db.flush()
        return category

    async def update(self, category: Category, data: Dict[str, Any]) -> Category:
        new_slug = data.get("slug")
        if new_slug and new_slug != category.slug:
            if await self.get_by_slug(new_slug) is not None:
                raise ConflictError(f"Category slug '{new_slug}' already exists")
        for key, value in data.items():
            setattr(category, key, value)
        await self.db.flush()
        return category

    async def delete(self, category: Category) -> None:
        await self.db.delete(category)
        await self.db.flush()

    async def get_or_create(
        self,
        name: str,
        slug: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Category:
        slug = slug or generate_slug(name)
        category = await self.get_by_slug(slug)
        if category is None:
            category = await self.create(
                {"name": name, "slug": slug, "description": description}
            )
        return category
