"""Product catalog routes.

Listing and lookups are public; create, update and delete require an
administrator.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import require_admin
from storefront.db.models import Product, User
from storefront.db.repositories import ProductQuery, ProductRepository, ProductSort
from storefront.db.session import get_db
from storefront.exceptions import NotFoundError
from storefront.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

MAX_PAGE_SIZE = 100

# Columns an update may set back to null
CLEARABLE_FIELDS = {"description", "original_price", "image", "rating"}


# ============================================================================
# Request/Response Models
# ============================================================================


class CategorySummary(BaseModel):
    id: int
    name: str
    slug: str

    model_config = {"from_attributes": True}


class ProductResponse(BaseModel):
    """Product as shown in listings and on the detail page."""

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    price: Decimal
    original_price: Optional[Decimal] = None
    image: Optional[str] = None
    inventory: int
    featured: bool
    is_new: bool
    rating: Optional[Decimal] = None
    category_id: Optional[int] = None
    categories: List[CategorySummary] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    image: Optional[str] = Field(default=None, max_length=2048)
    inventory: int = Field(default=0, ge=0)
    featured: bool = False
    is_new: bool = False
    rating: Optional[Decimal] = Field(default=None, ge=0, le=5)
    supplier_sku: Optional[str] = Field(default=None, max_length=100)
    category_ids: Optional[List[int]] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    image: Optional[str] = Field(default=None, max_length=2048)
    inventory: Optional[int] = Field(default=None, ge=0)
    featured: Optional[bool] = None
    is_new: Optional[bool] = None
    rating: Optional[Decimal] = Field(default=None, ge=0, le=5)
    category_ids: Optional[List[int]] = Field(
        default=None,
        description="When given, replaces the product's category links",
    )


# ============================================================================
# Routes
# ============================================================================


@router.get("", response_model=List[ProductResponse])
async def list_products(
    response: Response,
    category: Optional[str] = Query(default=None, description="Category slug"),
    category_id: Optional[int] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=200),
    min_price: Optional[Decimal] = Query(default=None, ge=0),
    max_price: Optional[Decimal] = Query(default=None, ge=0),
    featured: Optional[bool] = Query(default=None),
    sort: ProductSort = Query(default=ProductSort.NEWEST),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[Product]:
    """List products with filtering, sorting and pagination.

    The unpaginated match count is returned in ``X-Total-Count``.
    """
    query = ProductQuery(
        category_id=category_id,
        category_slug=category,
        search=search,
        min_price=min_price,
        max_price=max_price,
        featured=featured,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    products = ProductRepository(db)
    response.headers["X-Total-Count"] = str(await products.count(query))
    return await products.search(query)


@router.get("/featured", response_model=List[ProductResponse])
async def featured_products(
    limit: int = Query(default=8, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
) -> List[Product]:
    return await ProductRepository(db).featured(limit)


@router.get("/slug/{slug}", response_model=ProductResponse)
async def get_product_by_slug(slug: str, db: AsyncSession = Depends(get_db)) -> Product:
    product = await ProductRepository(db).get_by_slug(slug)
    if product is None:
        raise NotFoundError("Product", slug)
    return product


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)) -> Product:
    return await ProductRepository(db).get_by_id_or_raise(product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Product:
    data = body.model_dump(exclude={"category_ids"}, exclude_none=True)
    product = await ProductRepository(db).create(data, body.category_ids)
    logger.info(f"Admin {admin.id} created product {product.id}", extra={"slug": product.slug})
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    body: ProductUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Product:
    products = ProductRepository(db)
    product = await products.get_by_id_or_raise(product_id)
    data = {
        key: value
        for key, value in body.model_dump(exclude={"category_ids"}, exclude_unset=True).items()
        if value is not None or key in CLEARABLE_FIELDS
    }
    product = await products.update(product, data, body.category_ids)
    logger.info(f"Admin {admin.id} updated product {product.id}")
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    products = ProductRepository(db)
    product = await products.get_by_id_or_raise(product_id)
    await products.delete(product)
    logger.info(f"Admin {admin.id} deleted product {product_id}")
