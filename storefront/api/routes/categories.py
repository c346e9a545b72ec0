"""Category routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import require_admin
from storefront.db.models import Category, User
from storefront.db.repositories import CategoryRepository
from storefront.db.session import get_db
from storefront.exceptions import NotFoundError
from storefront.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None

    model_config = {"from_attributes": True}


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(default=None, max_length=2048)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(default=None, max_length=2048)


@router.get("", response_model=List[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)) -> List[Category]:
    return await CategoryRepository(db).list()


@router.get("/slug/{slug}", response_model=CategoryResponse)
async def get_category_by_slug(slug: str, db: AsyncSession = Depends(get_db)) -> Category:
    category = await CategoryRepository(db).get_by_slug(slug)
    if category is None:
        raise NotFoundError("Category", slug)
    return category


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)) -> Category:
    return await CategoryRepository(db).get_by_id_or_raise(category_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Category:
    category = await CategoryRepository(db).create(body.model_dump(exclude_none=True))
    logger.info(f"Admin {admin.id} created category {category.slug}")
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    body: CategoryUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Category:
    categories = CategoryRepository(db)
    category = await categories.get_by_id_or_raise(category_id)
    data = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key in ("description", "image")
    }
    return await categories.update(category, data)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a category; products keep existing and lose the link."""
    categories = CategoryRepository(db)
    category = await categories.get_by_id_or_raise(category_id)
    await categories.delete(category)
    logger.info(f"Admin {admin.id} deleted category {category_id}")
