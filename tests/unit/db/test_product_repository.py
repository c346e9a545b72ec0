"""Unit tests for ProductRepository."""

from decimal import Decimal

import pytest

from storefront.db.repositories import ProductQuery, ProductRepository, ProductSort
from storefront.exceptions import ConflictError, NotFoundError, ValidationError
from tests.factories import CategoryFactory, ProductFactory


@pytest.fixture
async def catalog(db_session):
    """Three electronics products and one book, with one linked by join row only."""
    electronics = await CategoryFactory.async_create(db_session, name="Electronics", slug="electronics")
    books = await CategoryFactory.async_create(db_session, name="Books", slug="books")

    phone = await ProductFactory.async_create(
        db_session,
        name="Smartphone X",
        price=Decimal("799.99"),
        featured=True,
        category_id=electronics.id,
        categories=[electronics],
    )
    laptop = await ProductFactory.async_create(
        db_session,
        name="Laptop Pro",
        description="Powerful laptop for professionals",
        price=Decimal("1299.99"),
        featured=True,
        category_id=electronics.id,
        categories=[electronics],
    )
    headphones = await ProductFactory.async_create(
        db_session,
        name="Wireless Headphones",
        price=Decimal("199.99"),
        categories=[electronics],
    )
    novel = await ProductFactory.async_create(
        db_session,
        name="Bestselling Novel",
        price=Decimal("14.99"),
        category_id=books.id,
        categories=[books],
    )
    return {
        "electronics": electronics,
        "books": books,
        "phone": phone,
        "laptop": laptop,
        "headphones": headphones,
        "novel": novel,
    }


class TestProductSearch:
    """Tests for filtered, sorted and paginated listing."""

    async def test_no_filters_returns_everything(self, db_session, catalog):
        repo = ProductRepository(db_session)
        products = await repo.search(ProductQuery())
        assert len(products) == 4
        assert await repo.count(ProductQuery()) == 4

    async def test_category_slug_matches_primary_and_linked(self, db_session, catalog):
        repo = ProductRepository(db_session)
        products = await repo.search(
            ProductQuery(category_slug="electronics", sort=ProductSort.NAME_ASC)
        )
        assert [p.name for p in products] == ["Laptop Pro", "Smartphone X", "Wireless Headphones"]

    async def test_category_id_matches_linked_only_products(self, db_session, catalog):
        repo = ProductRepository(db_session)
        products = await repo.search(ProductQuery(category_id=catalog["electronics"].id))
        assert catalog["headphones"].id in {p.id for p in products}
        assert catalog["novel"].id not in {p.id for p in products}

    async def test_search_matches_name_and_description(self, db_session, catalog):
        repo = ProductRepository(db_session)
        by_name = await repo.search(ProductQuery(search="smartphone"))
        by_description = await repo.search(ProductQuery(search="PROFESSIONALS"))
        assert [p.name for p in by_name] == ["Smartphone X"]
        assert [p.name for p in by_description] == ["Laptop Pro"]

    async def test_price_bounds_are_exclusive(self, db_session, catalog):
        repo = ProductRepository(db_session)
        products = await repo.search(
            ProductQuery(min_price=Decimal("199.99"), max_price=Decimal("1299.99"))
        )
        assert [p.name for p in products] == ["Smartphone X"]

    async def test_featured_filter(self, db_session, catalog):
        repo = ProductRepository(db_session)
        featured = await repo.search(ProductQuery(featured=True))
        not_featured = await repo.search(ProductQuery(featured=False))
        assert {p.name for p in featured} == {"Smartphone X", "Laptop Pro"}
        assert len(not_featured) == 2

    @pytest.mark.parametrize(
        "sort,expected_first",
        [
            (ProductSort.PRICE_ASC, "Bestselling Novel"),
            (ProductSort.PRICE_DESC, "Laptop Pro"),
            (ProductSort.NAME_ASC, "Bestselling Novel"),
            (ProductSort.NAME_DESC, "Wireless Headphones"),
            (ProductSort.NEWEST, "Bestselling Novel"),
        ],
    )
    async def test_sorting(self, db_session, catalog, sort, expected_first):
        products = await ProductRepository(db_session).search(ProductQuery(sort=sort))
        assert products[0].name == expected_first

    async def test_pagination_and_count(self, db_session, catalog):
        repo = ProductRepository(db_session)
        query = ProductQuery(sort=ProductSort.PRICE_ASC, limit=2, offset=1)
        page = await repo.search(query)
        assert [p.name for p in page] == ["Wireless Headphones", "Smartphone X"]
        # Count ignores limit and offset
        assert await repo.count(query) == 4

    async def test_featured_helper(self, db_session, catalog):
        featured = await ProductRepository(db_session).featured(limit=1)
        assert len(featured) == 1
        assert featured[0].featured is True


class TestProductMutations:
    """Tests for create, update and delete."""

    async def test_create_derives_slug_and_primary_category(self, db_session):
        category = await CategoryFactory.async_create(db_session)
        repo = ProductRepository(db_session)

        product = await repo.create(
            {"name": "Home & Garden Lamp", "price": Decimal("25.00"), "inventory": 3},
            [category.id],
        )

        assert product.slug == "home-garden-lamp"
        assert product.category_id == category.id
        assert [c.id for c in product.categories] == [category.id]

    async def test_create_duplicate_slug_conflicts(self, db_session):
        await ProductFactory.async_create(db_session, name="Desk", slug="desk")
        with pytest.raises(ConflictError):
            await ProductRepository(db_session).create({"name": "Desk", "price": Decimal("5.00")})

    async def test_create_unique_slug_appends_suffix(self, db_session):
        await ProductFactory.async_create(db_session, name="Desk", slug="desk")
        await ProductFactory.async_create(db_session, name="Desk 2", slug="desk-2")
        product = await ProductRepository(db_session).create(
            {"name": "Desk", "price": Decimal("5.00")},
            unique_slug=True,
        )
        assert product.slug == "desk-3"

    async def test_create_unknown_category(self, db_session):
        with pytest.raises(NotFoundError):
            await ProductRepository(db_session).create(
                {"name": "Orphan", "price": Decimal("5.00")},
                [9999],
            )

    async def test_update_replaces_categories(self, db_session):
        first = await CategoryFactory.async_create(db_session)
        second = await CategoryFactory.async_create(db_session)
        product = await ProductFactory.async_create(
            db_session, category_id=first.id, categories=[first]
        )

        updated = await ProductRepository(db_session).update(
            product, {"price": Decimal("9.99")}, [second.id]
        )

        assert updated.price == Decimal("9.99")
        assert [c.id for c in updated.categories] == [second.id]
        assert updated.category_id == second.id

    async def test_update_rejects_negative_inventory(self, db_session):
        product = await ProductFactory.async_create(db_session)
        with pytest.raises(ValidationError):
            await ProductRepository(db_session).update(product, {"inventory": -1})

    async def test_delete(self, db_session):
        product = await ProductFactory.async_create(db_session)
        repo = ProductRepository(db_session)
        await repo.delete(product)
        assert await repo.get_by_id(product.id) is None


class TestUpsertBySupplierSku:
    """Tests for the catalog sync upsert."""

    async def test_insert_then_update_keeps_identity(self, db_session):
        category = await CategoryFactory.async_create(db_session)
        repo = ProductRepository(db_session)
        data = {
            "supplier_sku": "RAKUTEN-shop:1",
            "name": "Camera",
            "slug": "camera-shop",
            "price": Decimal("100.00"),
            "inventory": 50,
        }

        created, was_created = await repo.upsert_by_supplier_sku(data, [category.id])
        updated, was_created_again = await repo.upsert_by_supplier_sku(
            dict(data, name="Camera Mk II", slug="ignored", price=Decimal("90.00")),
            [category.id],
        )

        assert was_created is True
        assert was_created_again is False
        assert updated.id == created.id
        assert updated.slug == "camera-shop"
        assert updated.name == "Camera Mk II"
        assert updated.price == Decimal("90.00")
        assert await repo.count_all() == 1

    async def test_update_adds_categories_without_removing(self, db_session):
        manual = await CategoryFactory.async_create(db_session)
        synced = await CategoryFactory.async_create(db_session)
        repo = ProductRepository(db_session)
        data = {"supplier_sku": "W2B-7", "name": "Mug", "price": Decimal("4.00")}

        product, _ = await repo.upsert_by_supplier_sku(data, [manual.id])
        product, _ = await repo.upsert_by_supplier_sku(data, [synced.id])

        assert {c.id for c in product.categories} == {manual.id, synced.id}

    async def test_requires_sku(self, db_session):
        with pytest.raises(ValidationError):
            await ProductRepository(db_session).upsert_by_supplier_sku(
                {"name": "No SKU", "price": Decimal("1.00")}
            )


class TestInventory:
    """Tests for the conditional stock updates."""

    async def test_decrement_within_stock(self, db_session):
        product = await ProductFactory.async_create(db_session, inventory=5)
        repo = ProductRepository(db_session)

        assert await repo.decrement_inventory(product.id, 5) is True
        refreshed = await repo.get_by_id(product.id, refresh=True)
        assert refreshed.inventory == 0

    async def test_decrement_beyond_stock_changes_nothing(self, db_session):
        product = await ProductFactory.async_create(db_session, inventory=2)
        repo = ProductRepository(db_session)

        assert await repo.decrement_inventory(product.id, 3) is False
        refreshed = await repo.get_by_id(product.id, refresh=True)
        assert refreshed.inventory == 2

    async def test_restock(self, db_session):
        product = await ProductFactory.async_create(db_session, sold_out=True)
        repo = ProductRepository(db_session)

        await repo.restock(product.id, 4)
        refreshed = await repo.get_by_id(product.id, refresh=True)
        assert refreshed.inventory == 4
        assert refreshed.in_stock is True
