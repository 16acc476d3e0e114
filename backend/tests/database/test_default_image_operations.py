# backend/tests/database/test_default_image_operations.py
"""
Tests for default image operations: query builders and the psycopg-backed
operations classes against a mocked connection.
"""

import pytest
from psycopg import errors as pg_errors

from camtracker.database.core import AsyncDatabaseCore
from camtracker.database.default_image_operations import (
    BrandDefaultImageOperations,
    BrandDefaultImageQueryBuilder,
    CameraInventoryOperations,
    DefaultImageOperations,
    DefaultImageQueryBuilder,
)
from camtracker.database.schema import SCHEMA_STATEMENTS, ensure_schema
from camtracker.exceptions import DatabaseOperationError, DuplicateError, ValidationError
from camtracker.models.default_image_model import (
    BrandDefaultImageUpdate,
    DefaultImageCreate,
    DefaultImageUpdate,
)


def assert_sql_contains_patterns(sql, patterns):
    for pattern in patterns:
        assert pattern in sql, f"SQL should contain '{pattern}'"


@pytest.mark.unit
class TestDefaultImageQueryBuilder:
    def test_list_query_without_filters(self):
        query, params = DefaultImageQueryBuilder.build_list_query()

        assert "WHERE" not in query
        assert "ORDER BY brand, model, id" in query
        assert params == []

    def test_list_query_with_filters(self):
        query, params = DefaultImageQueryBuilder.build_list_query(
            brand="Canon", is_active=False
        )

        assert_sql_contains_patterns(query, ["brand = %s AND is_active = %s"])
        assert "model = %s" not in query
        assert params == ["Canon", False]

    def test_active_lookup_is_limited(self):
        query = DefaultImageQueryBuilder.build_get_active_by_brand_model_query()
        assert_sql_contains_patterns(
            query, ["brand = %s AND model = %s", "is_active = true", "LIMIT 1"]
        )

    def test_insert_and_update(self):
        insert = DefaultImageQueryBuilder.build_insert_query()
        update = DefaultImageQueryBuilder.build_update_query(["license", "author"])

        assert insert.count("%s") == 9
        assert "RETURNING *" in insert
        assert_sql_contains_patterns(
            update, ["SET license = %s, author = %s, updated_at = %s", "WHERE id = %s"]
        )

    def test_count_query(self):
        assert DefaultImageQueryBuilder.build_count_query(None)[1] == []
        assert DefaultImageQueryBuilder.build_count_query(True)[1] == [True]

    def test_brand_list_query(self):
        query, params = BrandDefaultImageQueryBuilder.build_list_query(is_active=True)
        assert "is_active = %s" in query
        assert params == [True]


@pytest.mark.unit
class TestDefaultImageOperations:
    @pytest.mark.asyncio
    async def test_get_by_brand_and_model(self, mock_async_db, rows):
        db, _, cursor = mock_async_db
        cursor.fetchone.return_value = rows.default_image()

        image = await DefaultImageOperations(db).get_by_brand_and_model("Canon", "AE-1")

        assert image.id == 1
        assert image.image_quality == 8
        assert cursor.execute.call_args[0][1] == ("Canon", "AE-1")

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, mock_async_db):
        db, _, cursor = mock_async_db
        cursor.fetchone.return_value = None

        assert await DefaultImageOperations(db).get_by_id(5) is None

    @pytest.mark.asyncio
    async def test_get_all(self, mock_async_db, rows):
        db, _, cursor = mock_async_db
        cursor.fetchall.return_value = [
            rows.default_image(),
            rows.default_image(id=2, model="A-1"),
        ]

        images = await DefaultImageOperations(db).get_all(brand="Canon")

        assert [image.model for image in images] == ["AE-1", "A-1"]

    @pytest.mark.asyncio
    async def test_create(self, mock_async_db, rows):
        db, _, cursor = mock_async_db
        cursor.fetchone.return_value = rows.default_image(id=7)

        image = await DefaultImageOperations(db).create(
            DefaultImageCreate(brand="Canon", model="AE-1", image_url="/u/ae1.jpg")
        )

        assert image.id == 7
        values = cursor.execute.call_args[0][1]
        assert values[:3] == ["Canon", "AE-1", "/u/ae1.jpg"]
        assert values[-1] is True

    @pytest.mark.asyncio
    async def test_create_duplicate(self, mock_async_db):
        db, _, cursor = mock_async_db
        cursor.execute.side_effect = pg_errors.UniqueViolation("duplicate key")

        with pytest.raises(DuplicateError, match="Canon AE-1"):
            await DefaultImageOperations(db).create(
                DefaultImageCreate(brand="Canon", model="AE-1", image_url="/u/ae1.jpg")
            )

    @pytest.mark.asyncio
    async def test_replace_deactivates_then_inserts(self, mock_async_db, rows):
        db, _, cursor = mock_async_db
        cursor.fetchone.return_value = rows.default_image(id=8)

        image = await DefaultImageOperations(db).replace(
            DefaultImageCreate(brand="Canon", model="AE-1", image_url="/u/v2.jpg")
        )

        assert image.id == 8
        first, second = cursor.execute.call_args_list
        assert "SET is_active = false" in first[0][0]
        assert first[0][1][1:] == ("Canon", "AE-1")
        assert "INSERT INTO default_camera_images" in second[0][0]

    @pytest.mark.asyncio
    async def test_update_only_known_columns(self, mock_async_db, rows):
        db, _, cursor = mock_async_db
        cursor.fetchone.return_value = rows.default_image(license="CC0")

        image = await DefaultImageOperations(db).update(1, DefaultImageUpdate(license="CC0"))

        assert image.license == "CC0"
        query, params = cursor.execute.call_args[0]
        assert "SET license = %s, updated_at = %s" in query
        assert params[0] == "CC0"
        assert params[-1] == 1

    @pytest.mark.asyncio
    async def test_soft_and_hard_delete(self, mock_async_db):
        db, _, cursor = mock_async_db
        ops = DefaultImageOperations(db)

        cursor.fetchone.return_value = {"id": 3}
        assert await ops.delete(3) is True
        assert "SET is_active = false" in cursor.execute.call_args[0][0]

        cursor.fetchone.return_value = None
        assert await ops.delete(3, hard=True) is False
        assert cursor.execute.call_args[0][0].startswith("DELETE")

    @pytest.mark.asyncio
    async def test_brands_models_count(self, mock_async_db):
        db, _, cursor = mock_async_db
        ops = DefaultImageOperations(db)

        cursor.fetchall.return_value = [{"brand": "Canon"}, {"brand": "Nikon"}]
        assert await ops.get_brands() == ["Canon", "Nikon"]

        cursor.fetchall.return_value = [{"model": "AE-1"}]
        assert await ops.get_models_by_brand("Canon") == ["AE-1"]

        cursor.fetchone.return_value = {"count": 4}
        assert await ops.get_count() == 4


@pytest.mark.unit
class TestBrandDefaultImageOperations:
    @pytest.mark.asyncio
    async def test_get_by_brand(self, mock_async_db, rows):
        db, _, cursor = mock_async_db
        cursor.fetchone.return_value = rows.brand_image()

        image = await BrandDefaultImageOperations(db).get_by_brand("Nikon")

        assert image.image_url == "/uploads/brands/nikon.jpg"

    @pytest.mark.asyncio
    async def test_update_requires_fields(self, mock_async_db):
        db, _, cursor = mock_async_db

        with pytest.raises(ValidationError):
            await BrandDefaultImageOperations(db).update(1, BrandDefaultImageUpdate())
        cursor.execute.assert_not_called()


@pytest.mark.unit
class TestCameraInventoryOperations:
    @pytest.mark.asyncio
    async def test_unique_models(self, mock_async_db):
        db, _, cursor = mock_async_db
        cursor.fetchall.return_value = [
            {"brand": "Canon", "model": "AE-1"},
            {"brand": "Nikon", "model": "F3"},
        ]

        models = await CameraInventoryOperations(db).get_unique_camera_models()

        assert [(m.brand, m.model) for m in models] == [("Canon", "AE-1"), ("Nikon", "F3")]
        assert "DISTINCT TRIM(brand)" in cursor.execute.call_args[0][0]


@pytest.mark.unit
class TestSchema:
    @pytest.mark.asyncio
    async def test_ensure_schema_runs_every_statement(self, mock_async_db):
        db, _, cursor = mock_async_db

        await ensure_schema(db)

        executed = [c[0][0] for c in cursor.execute.call_args_list]
        assert executed == SCHEMA_STATEMENTS
        assert all("IF NOT EXISTS" in statement for statement in executed)

    def test_active_records_are_unique(self):
        unique = [s for s in SCHEMA_STATEMENTS if "CREATE UNIQUE INDEX" in s]
        assert len(unique) == 2
        assert all("WHERE is_active" in s for s in unique)


@pytest.mark.unit
class TestAsyncDatabaseCore:
    @pytest.mark.asyncio
    async def test_uninitialized_pool(self, test_settings):
        db = AsyncDatabaseCore(test_settings)

        assert db.is_initialized is False
        assert await db.check_pool_health() is False
        assert await db.get_pool_stats() == {"status": "not_initialized"}
        with pytest.raises(DatabaseOperationError, match="not initialized"):
            async with db.get_connection():
                pass
