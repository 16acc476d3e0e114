"""
Database package for CamTracker

Composition-based database access: operations classes receive an
AsyncDatabase instance and open connections through it.

Usage:
    from camtracker.database import async_db
    from camtracker.database.default_image_operations import DefaultImageOperations

    default_images = DefaultImageOperations(async_db)
"""

from .core import AsyncDatabase

async_db = AsyncDatabase()

__all__ = ["AsyncDatabase", "async_db"]
