#!/usr/bin/env python3
# backend/tests/conftest.py
"""
Pytest configuration and shared fixtures for CamTracker tests.

Network access is faked with httpx.MockTransport and the default image
tables with small in-memory stores, so nothing here needs PostgreSQL or
the internet.
"""

import io
import itertools
from typing import Callable, Dict, List, Optional

import httpx
import pytest
from PIL import Image

from camtracker.config import Settings
from camtracker.exceptions import DatabaseOperationError, DuplicateError, ValidationError
from camtracker.models.default_image_model import (
    BrandDefaultImage,
    BrandDefaultImageCreate,
    BrandDefaultImageUpdate,
    DefaultImage,
    DefaultImageCreate,
    DefaultImageUpdate,
)
from camtracker.utils.time_utils import utc_now


class FakeDefaultImageOperations:
    """In-memory stand-in for DefaultImageOperations."""

    def __init__(self):
        self.records: Dict[int, DefaultImage] = {}
        self._ids = itertools.count(1)
        self.fail_lookups = False

    def _active_for(self, brand: str, model: str) -> Optional[DefaultImage]:
        for record in self.records.values():
            if record.is_active and record.brand == brand and record.model == model:
                return record
        return None

    def seed(self, **fields) -> DefaultImage:
        """Insert a record directly, bypassing duplicate checks."""
        now = utc_now()
        record = DefaultImage(
            id=next(self._ids),
            created_at=now,
            updated_at=now,
            **DefaultImageCreate(**fields).model_dump(),
        )
        self.records[record.id] = record
        return record

    async def get_all(self, brand=None, model=None, is_active=None) -> List[DefaultImage]:
        records = [
            r
            for r in self.records.values()
            if (brand is None or r.brand == brand)
            and (model is None or r.model == model)
            and (is_active is None or r.is_active == is_active)
        ]
        return sorted(records, key=lambda r: (r.brand, r.model, r.id))

    async def get_by_id(self, image_id: int) -> Optional[DefaultImage]:
        return self.records.get(image_id)

    async def get_by_brand_and_model(self, brand: str, model: str) -> Optional[DefaultImage]:
        if self.fail_lookups:
            raise DatabaseOperationError("Database connection failed")
        return self._active_for(brand, model)

    async def create(self, data: DefaultImageCreate) -> DefaultImage:
        if data.is_active and self._active_for(data.brand, data.model):
            raise DuplicateError(f"Default image already exists for {data.brand} {data.model}")
        now = utc_now()
        record = DefaultImage(id=next(self._ids), created_at=now, updated_at=now, **data.model_dump())
        self.records[record.id] = record
        return record

    async def replace(self, data: DefaultImageCreate) -> DefaultImage:
        existing = self._active_for(data.brand, data.model)
        if existing is not None:
            existing.is_active = False
        return await self.create(data)

    async def update(self, image_id: int, data: DefaultImageUpdate) -> Optional[DefaultImage]:
        record = self.records.get(image_id)
        if record is None:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(record, key, value)
        record.updated_at = utc_now()
        return record

    async def delete(self, image_id: int, hard: bool = False) -> bool:
        record = self.records.get(image_id)
        if record is None:
            return False
        if hard:
            del self.records[image_id]
        else:
            record.is_active = False
        return True

    async def get_brands(self) -> List[str]:
        return sorted({r.brand for r in self.records.values() if r.is_active})

    async def get_models_by_brand(self, brand: str) -> List[str]:
        return sorted(
            {r.model for r in self.records.values() if r.is_active and r.brand == brand}
        )

    async def get_count(self, is_active: Optional[bool] = True) -> int:
        return len(await self.get_all(is_active=is_active))


class FakeBrandImageOperations:
    """In-memory stand-in for BrandDefaultImageOperations."""

    def __init__(self):
        self.records: Dict[int, BrandDefaultImage] = {}
        self._ids = itertools.count(1)

    async def get_all(self, is_active=None) -> List[BrandDefaultImage]:
        return [
            r for r in self.records.values() if is_active is None or r.is_active == is_active
        ]

    async def get_by_brand(self, brand: str) -> Optional[BrandDefaultImage]:
        for record in self.records.values():
            if record.is_active and record.brand == brand:
                return record
        return None

    async def create(self, data: BrandDefaultImageCreate) -> BrandDefaultImage:
        if data.is_active and await self.get_by_brand(data.brand):
            raise DuplicateError(f"Brand default image already exists for {data.brand}")
        record = BrandDefaultImage(id=next(self._ids), **data.model_dump())
        self.records[record.id] = record
        return record

    async def update(self, image_id: int, data: BrandDefaultImageUpdate):
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No brand image fields to update")
        record = self.records.get(image_id)
        if record is None:
            return None
        for key, value in changes.items():
            setattr(record, key, value)
        return record


def make_jpeg_bytes(width: int = 1600, height: int = 1200, color=(120, 80, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, "JPEG", quality=90)
    return buffer.getvalue()


def make_png_bytes(width: int = 64, height: int = 64) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), (10, 200, 30, 128)).save(buffer, "PNG")
    return buffer.getvalue()


def commons_page(
    title: str,
    url: str,
    width: int = 3000,
    height: int = 2000,
    size: int = 1_500_000,
    index: int = 1,
    mime: str = "image/jpeg",
    author: str = "<a href='//commons.wikimedia.org/wiki/User:Jane'>Jane Doe</a>",
    license_name: str = "CC BY-SA 4.0",
) -> Dict:
    """One page entry as returned by the Commons generator=search API."""
    return {
        "title": title,
        "index": index,
        "imageinfo": [
            {
                "url": url,
                "width": width,
                "height": height,
                "size": size,
                "mime": mime,
                "extmetadata": {
                    "Artist": {"value": author},
                    "LicenseShortName": {"value": license_name},
                },
            }
        ],
    }


def commons_response(*pages: Dict) -> Dict:
    return {"query": {"pages": {str(i + 1): page for i, page in enumerate(pages)}}}


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings rooted in a temporary data directory."""
    settings = Settings(
        environment="test",
        data_directory=str(tmp_path / "data"),
        queue_autostart=False,
        cache_cleanup_enabled=False,
        log_level="WARNING",
    )
    settings.ensure_directories()
    return settings


@pytest.fixture
def fake_default_images() -> FakeDefaultImageOperations:
    return FakeDefaultImageOperations()


@pytest.fixture
def fake_brand_images() -> FakeBrandImageOperations:
    return FakeBrandImageOperations()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg_bytes()


@pytest.fixture
def jpeg_factory() -> Callable[..., bytes]:
    return make_jpeg_bytes


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png_bytes


@pytest.fixture
def commons_page_factory():
    return commons_page


@pytest.fixture
def commons_response_factory():
    return commons_response


@pytest.fixture
def mock_http_client():
    """
    Build an httpx.AsyncClient backed by a handler function.

    Usage:
        client = mock_http_client(lambda request: httpx.Response(200, content=b"..."))
    """

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
