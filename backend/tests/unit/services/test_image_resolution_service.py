#!/usr/bin/env python3
"""
Unit tests for the camera image fallback chain.
"""

import pytest

from camtracker.constants import PLACEHOLDER_IMAGE_URL
from camtracker.enums import ImageSource
from camtracker.models.default_image_model import BrandDefaultImageCreate, DefaultImageCreate
from camtracker.models.resolution_model import CameraImageInput
from camtracker.services.image_resolution_service import (
    ImageResolutionService,
    build_image_resolution,
)


@pytest.fixture
def service(fake_default_images, fake_brand_images):
    return ImageResolutionService(fake_default_images, fake_brand_images)


async def _seed_model_default(store, brand="Canon", model="AE-1", url="/uploads/default-images/ae1.jpg"):
    return await store.create(
        DefaultImageCreate(
            brand=brand,
            model=model,
            image_url=url,
            source_attribution="Jane Doe, CC BY-SA 4.0, via Wikimedia Commons",
            image_quality=8,
        )
    )


async def _seed_brand_default(store, brand="Canon", url="/uploads/brands/canon.jpg"):
    return await store.create(BrandDefaultImageCreate(brand=brand, image_url=url))


@pytest.mark.unit
class TestBuildImageResolution:
    def test_user_images_win(self):
        camera = CameraImageInput(brand="Canon", model="AE-1", image1_path="/u/1.jpg", image2_path="/u/2.jpg")

        result = build_image_resolution(camera)

        assert result.image_source == ImageSource.USER
        assert result.primary_image == "/u/1.jpg"
        assert result.secondary_image == "/u/2.jpg"
        assert result.has_user_images is True
        assert result.default_image_info is None

    def test_user_slots_are_returned_verbatim(self):
        result = build_image_resolution(
            CameraImageInput(image1_path=None, image2_path="/uploads/b.jpg")
        )

        assert result.image_source == ImageSource.USER
        assert result.primary_image is None
        assert result.secondary_image == "/uploads/b.jpg"

    def test_user_paths_are_not_stripped(self):
        result = build_image_resolution(
            CameraImageInput(image1_path=" /uploads/a.jpg ", image2_path="  ")
        )

        assert result.primary_image == " /uploads/a.jpg "
        assert result.secondary_image == "  "

    def test_whitespace_paths_are_not_user_images(self):
        result = build_image_resolution(CameraImageInput(image1_path="   "))
        assert result.image_source == ImageSource.PLACEHOLDER

    def test_placeholder_when_nothing_matches(self):
        result = build_image_resolution(CameraImageInput(brand="Canon", model="AE-1"))

        assert result.image_source == ImageSource.PLACEHOLDER
        assert result.primary_image == PLACEHOLDER_IMAGE_URL
        assert result.default_image_info.source == "System"


@pytest.mark.unit
class TestImageResolutionService:
    @pytest.mark.asyncio
    async def test_model_default_used_without_user_images(self, service, fake_default_images):
        await _seed_model_default(fake_default_images)

        result = await service.resolve({"brand": "Canon", "model": "AE-1"})

        assert result.image_source == ImageSource.DEFAULT_MODEL
        assert result.primary_image == "/uploads/default-images/ae1.jpg"
        assert result.default_image_info.quality == 8
        assert "Jane Doe" in result.default_image_info.attribution

    @pytest.mark.asyncio
    async def test_user_images_beat_defaults(self, service, fake_default_images, fake_brand_images):
        await _seed_model_default(fake_default_images)
        await _seed_brand_default(fake_brand_images)

        result = await service.resolve(
            {"brand": "Canon", "model": "AE-1", "image1_path": "/uploads/mine.jpg"}
        )

        assert result.image_source == ImageSource.USER

    @pytest.mark.asyncio
    async def test_brand_default_when_no_model_default(self, service, fake_brand_images):
        await _seed_brand_default(fake_brand_images)

        result = await service.resolve({"brand": "Canon", "model": "F-1"})

        assert result.image_source == ImageSource.DEFAULT_BRAND
        assert result.primary_image == "/uploads/brands/canon.jpg"

    @pytest.mark.asyncio
    async def test_inactive_defaults_are_ignored(self, service, fake_default_images):
        record = await _seed_model_default(fake_default_images)
        await fake_default_images.delete(record.id)

        result = await service.resolve({"brand": "Canon", "model": "AE-1"})

        assert result.image_source == ImageSource.PLACEHOLDER

    @pytest.mark.asyncio
    async def test_blank_brand_goes_to_placeholder(self, service, fake_brand_images):
        await _seed_brand_default(fake_brand_images)

        result = await service.resolve({"brand": "  ", "model": "AE-1"})

        assert result.image_source == ImageSource.PLACEHOLDER

    @pytest.mark.asyncio
    async def test_lookup_failure_falls_through(self, service, fake_default_images, fake_brand_images):
        await _seed_brand_default(fake_brand_images)
        fake_default_images.fail_lookups = True

        result = await service.resolve({"brand": "Canon", "model": "AE-1"})

        assert result.image_source == ImageSource.DEFAULT_BRAND

    @pytest.mark.asyncio
    async def test_unreadable_record_resolves_to_placeholder(self, service):
        result = await service.resolve({"brand": ["not", "a", "string"]})
        assert result.image_source == ImageSource.PLACEHOLDER

    @pytest.mark.asyncio
    async def test_enhance_camera_keeps_extra_fields(self, service):
        enhanced = await service.enhance_camera(
            {"id": 7, "brand": "Leica", "model": "M3", "serial": "700123"}
        )

        assert enhanced["id"] == 7
        assert enhanced["serial"] == "700123"
        assert enhanced["image_source"] == "placeholder"
        assert enhanced["primary_image"] == PLACEHOLDER_IMAGE_URL

    @pytest.mark.asyncio
    async def test_statistics(self, service, fake_default_images, fake_brand_images):
        await _seed_model_default(fake_default_images)
        await _seed_brand_default(fake_brand_images, brand="Nikon")
        cameras = [
            {"brand": "Canon", "model": "AE-1"},
            {"brand": "Nikon", "model": "F3"},
            {"brand": "Pentax", "model": "K1000", "image1_path": "/u/k.jpg"},
            {"brand": "Olympus", "model": "OM-1"},
        ]

        stats = await service.get_image_statistics(cameras)

        assert stats.total == 4
        assert (stats.user, stats.default_model, stats.default_brand, stats.placeholder) == (1, 1, 1, 1)
        assert stats.coverage_percent == 75

    @pytest.mark.asyncio
    async def test_needs_default_image(self, service, fake_default_images):
        await _seed_model_default(fake_default_images)

        assert await service.needs_default_image({"brand": "Canon", "model": "AE-1"}) is False
        assert await service.needs_default_image({"brand": "Canon", "model": "A-1"}) is True
        assert await service.needs_default_image({"brand": "Canon", "model": ""}) is False
        assert (
            await service.needs_default_image(
                {"brand": "Canon", "model": "A-1", "image1_path": "/u/a.jpg"}
            )
            is False
        )
