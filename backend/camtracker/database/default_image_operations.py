# backend/camtracker/database/default_image_operations.py
"""Database operations for default camera images and brand fallback images."""

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from psycopg import errors as pg_errors

from ..exceptions import DuplicateError, ValidationError
from ..models.default_image_model import (
    BrandDefaultImage,
    BrandDefaultImageCreate,
    BrandDefaultImageUpdate,
    CameraModelRef,
    DefaultImage,
    DefaultImageCreate,
    DefaultImageUpdate,
)
from ..utils.time_utils import utc_now
from .core import AsyncDatabase

DEFAULT_IMAGE_COLUMNS = (
    "brand",
    "model",
    "image_url",
    "source",
    "source_attribution",
    "author",
    "license",
    "image_quality",
    "is_active",
)

BRAND_IMAGE_COLUMNS = (
    "brand",
    "image_url",
    "source",
    "source_attribution",
    "author",
    "license",
    "is_active",
)


class DefaultImageQueryBuilder:
    """Centralized query builder for default image operations."""

    @staticmethod
    def build_list_query(
        brand: Optional[str] = None,
        model: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[str, List[Any]]:
        """Build filtered list query ordered by brand, model."""
        conditions = []
        params: List[Any] = []

        if brand is not None:
            conditions.append("brand = %s")
            params.append(brand)
        if model is not None:
            conditions.append("model = %s")
            params.append(model)
        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        query = f"""
            SELECT * FROM default_camera_images
            {where}
            ORDER BY brand, model, id
        """
        return query, params

    @staticmethod
    def build_get_by_id_query() -> str:
        return "SELECT * FROM default_camera_images WHERE id = %s"

    @staticmethod
    def build_get_active_by_brand_model_query() -> str:
        return """
            SELECT * FROM default_camera_images
            WHERE brand = %s AND model = %s AND is_active = true
            LIMIT 1
        """

    @staticmethod
    def build_insert_query() -> str:
        columns = ", ".join(DEFAULT_IMAGE_COLUMNS)
        placeholders = ", ".join(["%s"] * len(DEFAULT_IMAGE_COLUMNS))
        return f"""
            INSERT INTO default_camera_images ({columns})
            VALUES ({placeholders})
            RETURNING *
        """

    @staticmethod
    def build_update_query(fields: List[str]) -> str:
        """Build a dynamic UPDATE for the given whitelisted columns."""
        assignments = ", ".join(f"{field} = %s" for field in fields)
        return f"""
            UPDATE default_camera_images
            SET {assignments}, updated_at = %s
            WHERE id = %s
            RETURNING *
        """

    @staticmethod
    def build_deactivate_brand_model_query() -> str:
        return """
            UPDATE default_camera_images
            SET is_active = false, updated_at = %s
            WHERE brand = %s AND model = %s AND is_active = true
        """

    @staticmethod
    def build_soft_delete_query() -> str:
        return """
            UPDATE default_camera_images
            SET is_active = false, updated_at = %s
            WHERE id = %s
            RETURNING id
        """

    @staticmethod
    def build_hard_delete_query() -> str:
        return "DELETE FROM default_camera_images WHERE id = %s RETURNING id"

    @staticmethod
    def build_brands_query() -> str:
        return """
            SELECT DISTINCT brand FROM default_camera_images
            WHERE is_active = true
            ORDER BY brand
        """

    @staticmethod
    def build_models_by_brand_query() -> str:
        return """
            SELECT DISTINCT model FROM default_camera_images
            WHERE brand = %s AND is_active = true
            ORDER BY model
        """

    @staticmethod
    def build_count_query(is_active: Optional[bool]) -> Tuple[str, List[Any]]:
        if is_active is None:
            return "SELECT COUNT(*) AS count FROM default_camera_images", []
        return (
            "SELECT COUNT(*) AS count FROM default_camera_images WHERE is_active = %s",
            [is_active],
        )


class BrandDefaultImageQueryBuilder:
    """Centralized query builder for brand fallback images."""

    @staticmethod
    def build_list_query(is_active: Optional[bool] = None) -> Tuple[str, List[Any]]:
        if is_active is None:
            return "SELECT * FROM brand_default_images ORDER BY brand, id", []
        return (
            "SELECT * FROM brand_default_images WHERE is_active = %s ORDER BY brand, id",
            [is_active],
        )

    @staticmethod
    def build_get_active_by_brand_query() -> str:
        return """
            SELECT * FROM brand_default_images
            WHERE brand = %s AND is_active = true
            LIMIT 1
        """

    @staticmethod
    def build_insert_query() -> str:
        columns = ", ".join(BRAND_IMAGE_COLUMNS)
        placeholders = ", ".join(["%s"] * len(BRAND_IMAGE_COLUMNS))
        return f"""
            INSERT INTO brand_default_images ({columns})
            VALUES ({placeholders})
            RETURNING *
        """

    @staticmethod
    def build_update_query(fields: List[str]) -> str:
        assignments = ", ".join(f"{field} = %s" for field in fields)
        return f"""
            UPDATE brand_default_images
            SET {assignments}, updated_at = %s
            WHERE id = %s
            RETURNING *
        """


class DefaultImageOperations:
    """Async operations for the default_camera_images table."""

    def __init__(self, db: AsyncDatabase) -> None:
        self.db = db

    async def get_all(
        self,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> List[DefaultImage]:
        """List default images with optional filters, ordered by brand, model."""
        query, params = DefaultImageQueryBuilder.build_list_query(
            brand, model, is_active
        )
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
                return [DefaultImage.model_validate(dict(row)) for row in rows]

    async def get_by_id(self, image_id: int) -> Optional[DefaultImage]:
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    DefaultImageQueryBuilder.build_get_by_id_query(), (image_id,)
                )
                row = await cur.fetchone()
                return DefaultImage.model_validate(dict(row)) if row else None

    async def get_by_brand_and_model(
        self, brand: str, model: str
    ) -> Optional[DefaultImage]:
        """Get the active default image for an exact (brand, model) pair."""
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    DefaultImageQueryBuilder.build_get_active_by_brand_model_query(),
                    (brand, model),
                )
                row = await cur.fetchone()
                return DefaultImage.model_validate(dict(row)) if row else None

    async def create(self, data: DefaultImageCreate) -> DefaultImage:
        """
        Insert a new default image.

        Raises:
            DuplicateError: an active record already exists for brand/model
        """
        values = [getattr(data, column) for column in DEFAULT_IMAGE_COLUMNS]
        try:
            async with self.db.get_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        DefaultImageQueryBuilder.build_insert_query(), values
                    )
                    row = await cur.fetchone()
        except pg_errors.UniqueViolation as e:
            raise DuplicateError(
                f"Default image already exists for {data.brand} {data.model}"
            ) from e

        logger.info(f"Created default image for {data.brand} {data.model}")
        return DefaultImage.model_validate(dict(row))

    async def replace(self, data: DefaultImageCreate) -> DefaultImage:
        """Deactivate any active record for brand/model and insert the new one."""
        values = [getattr(data, column) for column in DEFAULT_IMAGE_COLUMNS]
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    DefaultImageQueryBuilder.build_deactivate_brand_model_query(),
                    (utc_now(), data.brand, data.model),
                )
                await cur.execute(
                    DefaultImageQueryBuilder.build_insert_query(), values
                )
                row = await cur.fetchone()

        logger.info(f"Replaced default image for {data.brand} {data.model}")
        return DefaultImage.model_validate(dict(row))

    async def update(
        self, image_id: int, data: DefaultImageUpdate
    ) -> Optional[DefaultImage]:
        """Apply a partial update. Returns None when the id does not exist."""
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True)
        fields = [field for field in changes if field in DEFAULT_IMAGE_COLUMNS]
        if not fields:
            return await self.get_by_id(image_id)

        query = DefaultImageQueryBuilder.build_update_query(fields)
        params = [changes[field] for field in fields] + [utc_now(), image_id]
        try:
            async with self.db.get_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    row = await cur.fetchone()
        except pg_errors.UniqueViolation as e:
            raise DuplicateError(
                f"Reactivating default image {image_id} would duplicate an active record"
            ) from e

        return DefaultImage.model_validate(dict(row)) if row else None

    async def delete(self, image_id: int, hard: bool = False) -> bool:
        """Soft-delete (deactivate) by default; ``hard`` removes the row."""
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                if hard:
                    await cur.execute(
                        DefaultImageQueryBuilder.build_hard_delete_query(), (image_id,)
                    )
                else:
                    await cur.execute(
                        DefaultImageQueryBuilder.build_soft_delete_query(),
                        (utc_now(), image_id),
                    )
                row = await cur.fetchone()
                return row is not None

    async def get_brands(self) -> List[str]:
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(DefaultImageQueryBuilder.build_brands_query())
                rows = await cur.fetchall()
                return [row["brand"] for row in rows]

    async def get_models_by_brand(self, brand: str) -> List[str]:
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    DefaultImageQueryBuilder.build_models_by_brand_query(), (brand,)
                )
                rows = await cur.fetchall()
                return [row["model"] for row in rows]

    async def get_count(self, is_active: Optional[bool] = True) -> int:
        query, params = DefaultImageQueryBuilder.build_count_query(is_active)
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return int(row["count"]) if row else 0


class BrandDefaultImageOperations:
    """Async operations for the brand_default_images table."""

    def __init__(self, db: AsyncDatabase) -> None:
        self.db = db

    async def get_all(self, is_active: Optional[bool] = None) -> List[BrandDefaultImage]:
        query, params = BrandDefaultImageQueryBuilder.build_list_query(is_active)
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
                return [BrandDefaultImage.model_validate(dict(row)) for row in rows]

    async def get_by_brand(self, brand: str) -> Optional[BrandDefaultImage]:
        """Get the active fallback image for a brand."""
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    BrandDefaultImageQueryBuilder.build_get_active_by_brand_query(),
                    (brand,),
                )
                row = await cur.fetchone()
                return BrandDefaultImage.model_validate(dict(row)) if row else None

    async def create(self, data: BrandDefaultImageCreate) -> BrandDefaultImage:
        values = [getattr(data, column) for column in BRAND_IMAGE_COLUMNS]
        try:
            async with self.db.get_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        BrandDefaultImageQueryBuilder.build_insert_query(), values
                    )
                    row = await cur.fetchone()
        except pg_errors.UniqueViolation as e:
            raise DuplicateError(
                f"Brand default image already exists for {data.brand}"
            ) from e
        return BrandDefaultImage.model_validate(dict(row))

    async def update(
        self, image_id: int, data: BrandDefaultImageUpdate
    ) -> Optional[BrandDefaultImage]:
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True)
        fields = [field for field in changes if field in BRAND_IMAGE_COLUMNS]
        if not fields:
            raise ValidationError("No brand image fields to update")

        query = BrandDefaultImageQueryBuilder.build_update_query(fields)
        params = [changes[field] for field in fields] + [utc_now(), image_id]
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return BrandDefaultImage.model_validate(dict(row)) if row else None


class CameraInventoryOperations:
    """Read-only access to the camera table owned by the CRUD layer."""

    def __init__(self, db: AsyncDatabase) -> None:
        self.db = db

    async def get_unique_camera_models(self) -> List[CameraModelRef]:
        """Distinct non-blank (brand, model) pairs in the inventory."""
        query = """
            SELECT DISTINCT TRIM(brand) AS brand, TRIM(model) AS model
            FROM cameras
            WHERE brand IS NOT NULL AND model IS NOT NULL
              AND TRIM(brand) <> '' AND TRIM(model) <> ''
            ORDER BY 1, 2
        """
        async with self.db.get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query)
                rows = await cur.fetchall()
                return [CameraModelRef(brand=row["brand"], model=row["model"]) for row in rows]
