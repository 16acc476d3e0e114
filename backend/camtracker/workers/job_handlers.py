# backend/camtracker/workers/job_handlers.py
"""
Job handlers for the four built-in job types.

Each handler takes the job payload and returns a result dict that ends up
on the job record. Raising marks the attempt as failed and lets the queue
decide whether to retry.
"""

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from ..database.default_image_operations import DefaultImageOperations
from ..enums import JobType
from ..exceptions import DuplicateError, ValidationError
from ..models.default_image_model import DefaultImageCreate
from ..models.job_model import PopulateOptions
from ..services.default_image_populator import DefaultImagePopulator
from ..services.image_cache_service import ImageCacheService
from ..services.image_download_service import ImageDownloadService
from ..services.wikimedia_client import WikimediaImageClient


class JobHandlers:
    """Binds the services each job type needs."""

    def __init__(
        self,
        wikimedia_client: WikimediaImageClient,
        default_images: DefaultImageOperations,
        cache_service: ImageCacheService,
        populator: DefaultImagePopulator,
        download_service: Optional[ImageDownloadService] = None,
    ):
        self.wikimedia_client = wikimedia_client
        self.default_images = default_images
        self.cache_service = cache_service
        self.populator = populator
        self.download_service = download_service

    def as_mapping(self) -> Dict[JobType, Any]:
        return {
            JobType.FETCH_DEFAULT_IMAGE: self.fetch_default_image,
            JobType.CACHE_IMAGE: self.cache_image,
            JobType.CLEANUP_CACHE: self.cleanup_cache,
            JobType.POPULATE_DEFAULT_IMAGES: self.populate_default_images,
        }

    async def fetch_default_image(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        brand = (payload.get("brand") or "").strip()
        model = (payload.get("model") or "").strip()
        camera_id = payload.get("camera_id")
        if not brand or not model:
            raise ValidationError("fetch-default-image requires brand and model")

        existing = await self.default_images.get_by_brand_and_model(brand, model)
        if existing is not None:
            logger.debug(f"Default image already exists for {brand} {model}")
            return {
                "action": "skipped",
                "reason": "default_image_exists",
                "existing_image_id": existing.id,
            }

        best = await self.wikimedia_client.find_best_image_for_camera(brand, model)
        if best is None:
            logger.info(f"No suitable default image found for {brand} {model}")
            return {"action": "failed", "reason": "no_image_found"}

        try:
            created = await self.default_images.create(
                DefaultImageCreate(
                    brand=brand,
                    model=model,
                    image_url=best.image_url,
                    source=best.source,
                    source_attribution=best.source_attribution,
                    author=best.author,
                    license=best.license,
                    image_quality=best.image_quality,
                )
            )
        except DuplicateError:
            # Another job stored one first
            existing = await self.default_images.get_by_brand_and_model(brand, model)
            return {
                "action": "skipped",
                "reason": "default_image_exists",
                "existing_image_id": existing.id if existing else None,
            }

        logger.info(f"🖼️ Stored default image {created.id} for {brand} {model}")
        return {
            "action": "created",
            "default_image_id": created.id,
            "image_url": created.image_url,
            "quality": created.image_quality,
            "camera_id": camera_id,
        }

    async def cache_image(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = payload.get("url")
        if not url:
            raise ValidationError("cache-image requires a url")
        entry = await self.cache_service.get_or_fetch(url)
        return {
            "action": "cached",
            "cache_key": entry.cache_key,
            "size": entry.size,
            "url": entry.url,
        }

    async def cleanup_cache(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        result = await asyncio.to_thread(self.cache_service.cleanup_expired)
        temp_removed = 0
        if self.download_service is not None:
            temp_removed = await asyncio.to_thread(self.download_service.cleanup_temp_files)
        return {
            "action": "cleanup",
            "deleted_count": result.deleted_count,
            "error_count": result.error_count,
            "total_files": result.total_files,
            "temp_files_removed": temp_removed,
        }

    async def populate_default_images(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        options = PopulateOptions.model_validate(payload or {})
        return await self.populator.populate(options)
