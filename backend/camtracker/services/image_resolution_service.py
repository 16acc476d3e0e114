# backend/camtracker/services/image_resolution_service.py
"""
Camera image resolution (fallback chain).

Decides which image a camera shows, first match wins:

1. user images (image1_path / image2_path)
2. active DefaultImage for the exact (brand, model)
3. active BrandDefaultImage for the brand
4. the bundled placeholder

Resolution is total: every camera, including one with a blank brand or
model or whose lookups fail, ends in exactly one outcome.
"""

from typing import Any, Dict, List, Optional, Union

from loguru import logger

from ..constants import PLACEHOLDER_ATTRIBUTION, PLACEHOLDER_IMAGE_URL
from ..database.default_image_operations import (
    BrandDefaultImageOperations,
    DefaultImageOperations,
)
from ..enums import ImageProvenance, ImageSource
from ..models.default_image_model import BrandDefaultImage, DefaultImage
from ..models.resolution_model import (
    CameraImageInput,
    DefaultImageInfo,
    ImageResolution,
    ImageStatistics,
)

CameraLike = Union[CameraImageInput, Dict[str, Any]]


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


def to_camera_input(camera: CameraLike) -> CameraImageInput:
    if isinstance(camera, CameraImageInput):
        return camera
    return CameraImageInput.model_validate(camera or {})


def has_user_images(camera: CameraImageInput) -> bool:
    return bool(_clean(camera.image1_path) or _clean(camera.image2_path))


def build_image_resolution(
    camera: CameraImageInput,
    model_default: Optional[DefaultImage] = None,
    brand_default: Optional[BrandDefaultImage] = None,
) -> ImageResolution:
    """Pure fallback decision given the results of the two lookups."""
    if has_user_images(camera):
        # Slots pass through untouched, even when only slot 2 is filled
        return ImageResolution(
            primary_image=camera.image1_path,
            secondary_image=camera.image2_path,
            image_source=ImageSource.USER,
            has_user_images=True,
        )

    if model_default is not None:
        return ImageResolution(
            primary_image=model_default.image_url,
            image_source=ImageSource.DEFAULT_MODEL,
            default_image_info=DefaultImageInfo(
                source=model_default.source,
                attribution=model_default.source_attribution,
                quality=model_default.image_quality,
                type=ImageSource.DEFAULT_MODEL,
            ),
        )

    if brand_default is not None:
        return ImageResolution(
            primary_image=brand_default.image_url,
            image_source=ImageSource.DEFAULT_BRAND,
            default_image_info=DefaultImageInfo(
                source=brand_default.source,
                attribution=brand_default.source_attribution,
                type=ImageSource.DEFAULT_BRAND,
            ),
        )

    return ImageResolution(
        primary_image=PLACEHOLDER_IMAGE_URL,
        image_source=ImageSource.PLACEHOLDER,
        default_image_info=DefaultImageInfo(
            source=ImageProvenance.SYSTEM.value,
            attribution=PLACEHOLDER_ATTRIBUTION,
            type=ImageSource.PLACEHOLDER,
        ),
    )


class ImageResolutionService:
    """Runs the store lookups and applies the fallback chain."""

    def __init__(
        self,
        default_images: DefaultImageOperations,
        brand_images: BrandDefaultImageOperations,
    ):
        self.default_images = default_images
        self.brand_images = brand_images

    async def _lookup_model_default(
        self, brand: str, model: str
    ) -> Optional[DefaultImage]:
        if not brand or not model:
            return None
        try:
            return await self.default_images.get_by_brand_and_model(brand, model)
        except Exception as e:
            logger.warning(f"Default image lookup failed for {brand} {model}: {e}")
            return None

    async def _lookup_brand_default(self, brand: str) -> Optional[BrandDefaultImage]:
        if not brand:
            return None
        try:
            return await self.brand_images.get_by_brand(brand)
        except Exception as e:
            logger.warning(f"Brand default lookup failed for {brand}: {e}")
            return None

    async def resolve(self, camera: CameraLike) -> ImageResolution:
        """Resolve the image for a camera. Never raises."""
        try:
            cam = to_camera_input(camera)
        except ValueError as e:
            logger.warning(f"Unreadable camera record, using placeholder: {e}")
            return build_image_resolution(CameraImageInput())

        if has_user_images(cam):
            return build_image_resolution(cam)

        brand = _clean(cam.brand)
        model = _clean(cam.model)

        model_default = await self._lookup_model_default(brand, model)
        if model_default is not None:
            return build_image_resolution(cam, model_default=model_default)

        brand_default = await self._lookup_brand_default(brand)
        return build_image_resolution(cam, brand_default=brand_default)

    async def enhance_camera(self, camera: CameraLike) -> Dict[str, Any]:
        """Camera dict with the resolved image fields attached."""
        cam = to_camera_input(camera)
        resolution = await self.resolve(cam)
        enhanced = cam.model_dump()
        enhanced.update(resolution.model_dump(mode="json"))
        return enhanced

    async def enhance_cameras(self, cameras: List[CameraLike]) -> List[Dict[str, Any]]:
        return [await self.enhance_camera(camera) for camera in cameras]

    async def get_image_statistics(self, cameras: List[CameraLike]) -> ImageStatistics:
        """Count resolution outcomes across cameras."""
        stats = ImageStatistics(total=len(cameras))
        for camera in cameras:
            resolution = await self.resolve(camera)
            current = getattr(stats, resolution.image_source.value)
            setattr(stats, resolution.image_source.value, current + 1)

        if stats.total:
            stats.coverage_percent = round(
                (stats.total - stats.placeholder) / stats.total * 100
            )
        return stats

    async def needs_default_image(self, camera: CameraLike) -> bool:
        """True when a camera has no user images and no model-level default."""
        cam = to_camera_input(camera)
        if has_user_images(cam):
            return False
        brand, model = _clean(cam.brand), _clean(cam.model)
        if not brand or not model:
            return False
        return await self._lookup_model_default(brand, model) is None
