# backend/tests/database/conftest.py
"""
Shared fixtures and configuration for database operations tests.

Provides a mocked AsyncDatabase plus row factories shaped like the dict rows
psycopg returns with ``dict_row``.
"""

from datetime import datetime, timezone
from typing import Any, Dict
from unittest.mock import AsyncMock, Mock

import pytest


@pytest.fixture
def mock_async_db():
    """
    Mock async database connection for testing database operations.

    Returns:
        tuple: (db_mock, connection_mock, cursor_mock) for easy access in tests
    """
    db = Mock()
    conn = AsyncMock()
    cursor = AsyncMock()

    # Setup async context managers
    db.get_connection.return_value.__aenter__ = AsyncMock(return_value=conn)
    db.get_connection.return_value.__aexit__ = AsyncMock(return_value=None)
    conn.cursor = Mock()
    conn.cursor.return_value.__aenter__ = AsyncMock(return_value=cursor)
    conn.cursor.return_value.__aexit__ = AsyncMock(return_value=None)

    return db, conn, cursor


class RowFactory:
    """Dict rows as returned for the default image tables."""

    @staticmethod
    def default_image(**overrides) -> Dict[str, Any]:
        now = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        row = {
            "id": 1,
            "brand": "Canon",
            "model": "AE-1",
            "image_url": "/uploads/default-images/ae1.jpg",
            "source": "Wikipedia Commons",
            "source_attribution": "Jane Doe, CC BY-SA 4.0, via Wikimedia Commons",
            "author": "Jane Doe",
            "license": "CC BY-SA 4.0",
            "image_quality": 8,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        row.update(overrides)
        return row

    @staticmethod
    def brand_image(**overrides) -> Dict[str, Any]:
        row = {
            "id": 1,
            "brand": "Nikon",
            "image_url": "/uploads/brands/nikon.jpg",
            "source": "Manual",
            "source_attribution": None,
            "author": None,
            "license": None,
            "is_active": True,
        }
        row.update(overrides)
        return row


@pytest.fixture
def rows():
    return RowFactory
