# backend/camtracker/database/core.py

"""
Async database core for composition-based architecture.

Provides connection pool management for operations classes without mixin
inheritance.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import psycopg
from loguru import logger
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from ..config import Settings, settings as default_settings
from ..exceptions import DatabaseOperationError
from ..utils.time_utils import utc_now


class AsyncDatabaseCore:
    """
    Core async database functionality.

    Owns a psycopg AsyncConnectionPool configured from settings. Every
    connection handed out runs inside a transaction and yields dict rows.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or default_settings
        self._pool: Optional[AsyncConnectionPool] = None
        self._connection_attempts = 0
        self._failed_connections = 0
        self._pool_created_at = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def initialize(self) -> None:
        """
        Initialize the async connection pool.

        This is called during FastAPI application startup and must complete
        before any operations class touches the database.
        """
        try:
            self._pool = AsyncConnectionPool(
                self.settings.database_url,
                min_size=self.settings.db_pool_min_size,
                max_size=max(self.settings.db_pool_min_size, self.settings.db_pool_size),
                timeout=self.settings.db_pool_timeout,
                kwargs={"row_factory": dict_row, "connect_timeout": 15},
                open=False,
            )
            await self._pool.open()
            self._pool_created_at = utc_now()
            logger.info("🗄️ Database connection pool opened")
        except (psycopg.Error, ConnectionError, OSError) as e:
            self._failed_connections += 1
            logger.error(f"Failed to initialize async database pool: {e}")
            raise

    async def close(self) -> None:
        """Close the connection pool during application shutdown."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection pool closed")

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[Any, None]:
        """
        Get an async database connection wrapped in a transaction.

        Usage:
            async with db.get_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT * FROM default_camera_images")
                    rows = await cur.fetchall()
        """
        if not self._pool:
            raise DatabaseOperationError("Database pool not initialized")

        self._connection_attempts += 1
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    yield conn
        except psycopg.OperationalError as e:
            self._failed_connections += 1
            logger.warning(f"Async database connection failed: {e}")
            raise DatabaseOperationError("Database connection failed") from e

    async def check_pool_health(self) -> bool:
        """Return True if a trivial query succeeds."""
        if not self._pool:
            return False

        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
                    await cur.fetchone()
            return True
        except psycopg.Error as e:
            self._failed_connections += 1
            logger.warning(f"Async database health check failed: {e}")
            return False

    async def get_pool_stats(self) -> Dict[str, Any]:
        """Connection pool statistics for monitoring."""
        if not self._pool:
            return {"status": "not_initialized"}

        start_time = time.time()
        healthy = await self.check_pool_health()
        return {
            "status": "healthy" if healthy else "unhealthy",
            "pool_created_at": (
                self._pool_created_at.isoformat() if self._pool_created_at else None
            ),
            "connection_attempts": self._connection_attempts,
            "failed_connections": self._failed_connections,
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
            "pool": self._pool.get_stats(),
        }


# Composition-based database class for services and routers
AsyncDatabase = AsyncDatabaseCore
