# backend/camtracker/database/schema.py
"""
Idempotent schema creation for the default image tables.

Fresh and existing databases both go through the same CREATE ... IF NOT
EXISTS statements at startup.
"""

from typing import List

from loguru import logger

from .core import AsyncDatabase

SCHEMA_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS default_camera_images (
        id SERIAL PRIMARY KEY,
        brand VARCHAR(100) NOT NULL,
        model VARCHAR(200) NOT NULL,
        image_url TEXT NOT NULL,
        source VARCHAR(100) NOT NULL DEFAULT 'Wikipedia Commons',
        source_attribution TEXT,
        author TEXT,
        license VARCHAR(200),
        image_quality INTEGER NOT NULL DEFAULT 5
            CHECK (image_quality BETWEEN 1 AND 10),
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_default_camera_images_active
        ON default_camera_images (brand, model)
        WHERE is_active
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_default_camera_images_brand
        ON default_camera_images (brand)
    """,
    """
    CREATE TABLE IF NOT EXISTS brand_default_images (
        id SERIAL PRIMARY KEY,
        brand VARCHAR(100) NOT NULL,
        image_url TEXT NOT NULL,
        source VARCHAR(100) NOT NULL DEFAULT 'Wikipedia Commons',
        source_attribution TEXT,
        author TEXT,
        license VARCHAR(200),
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_brand_default_images_active
        ON brand_default_images (brand)
        WHERE is_active
    """,
]


async def ensure_schema(db: AsyncDatabase) -> None:
    """Create the pipeline tables and indexes if they are missing."""
    async with db.get_connection() as conn:
        async with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                await cur.execute(statement)
    logger.info("✅ Default image schema verified")
