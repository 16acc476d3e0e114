# backend/camtracker/services/default_image_populator.py
"""
Batch driver for populate-default-images.

Walks distinct (brand, model) pairs, finds the best Commons image for each
and stores a DefaultImage record. Requests to Commons are deliberately
spaced out: a pause after every model and a longer pause between batches.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from ..constants import (
    POPULATE_DELAY_BETWEEN_BATCHES_SECONDS,
    POPULATE_DELAY_BETWEEN_IMAGES_SECONDS,
    POPULATE_MAX_BATCH_SIZE,
    POPULATE_MIN_BATCH_SIZE,
)
from ..database.default_image_operations import DefaultImageOperations
from ..exceptions import CamTrackerError
from ..models.default_image_model import CameraModelRef, DefaultImageCreate
from ..models.job_model import PopulateOptions, PopulateStats
from ..utils.conversion_utils import clamp
from .image_cache_service import ImageCacheService
from .wikimedia_client import WikimediaImageClient

ModelProvider = Callable[[], Awaitable[List[CameraModelRef]]]


def normalize_options(options: Optional[PopulateOptions]) -> PopulateOptions:
    """Clamp batch size into 1-50 and min quality into 1-10."""
    opts = options.model_copy() if options else PopulateOptions()
    opts.batch_size = clamp(opts.batch_size, POPULATE_MIN_BATCH_SIZE, POPULATE_MAX_BATCH_SIZE)
    opts.min_quality = clamp(opts.min_quality, 1, 10)
    return opts


def unique_models(refs: List[CameraModelRef]) -> List[CameraModelRef]:
    """Drop blank and duplicate (brand, model) pairs, keeping first-seen order."""
    seen = set()
    result = []
    for ref in refs:
        brand, model = ref.brand.strip(), ref.model.strip()
        if not brand or not model or (brand, model) in seen:
            continue
        seen.add((brand, model))
        result.append(CameraModelRef(brand=brand, model=model))
    return result


class DefaultImagePopulator:
    """Populates default images for every camera model in the inventory."""

    def __init__(
        self,
        wikimedia_client: WikimediaImageClient,
        default_images: DefaultImageOperations,
        model_provider: Optional[ModelProvider] = None,
        cache_service: Optional[ImageCacheService] = None,
        delay_between_images: float = POPULATE_DELAY_BETWEEN_IMAGES_SECONDS,
        delay_between_batches: float = POPULATE_DELAY_BETWEEN_BATCHES_SECONDS,
    ):
        self.wikimedia_client = wikimedia_client
        self.default_images = default_images
        self.model_provider = model_provider
        self.cache_service = cache_service
        self.delay_between_images = delay_between_images
        self.delay_between_batches = delay_between_batches

    async def _load_models(self, options: PopulateOptions) -> List[CameraModelRef]:
        if options.models:
            refs = [
                CameraModelRef(brand=item.get("brand", ""), model=item.get("model", ""))
                for item in options.models
            ]
        elif self.model_provider is not None:
            refs = await self.model_provider()
        else:
            refs = []
        return refs

    async def _process_model(
        self, ref: CameraModelRef, options: PopulateOptions, stats: PopulateStats
    ) -> None:
        stats.processed += 1
        label = f"{ref.brand} {ref.model}"

        if options.skip_existing:
            existing = await self.default_images.get_by_brand_and_model(ref.brand, ref.model)
            if existing is not None:
                stats.skipped += 1
                logger.debug(f"⏭️ {label}: default image already exists")
                return

        best = await self.wikimedia_client.find_best_image_for_camera(
            ref.brand, ref.model, enable_download=not options.dry_run
        )
        if best is None:
            stats.failed += 1
            stats.errors.append({"model": label, "error": "No suitable image found"})
            return

        if best.image_quality < options.min_quality:
            stats.skipped += 1
            logger.info(
                f"⏭️ {label}: best image quality {best.image_quality} below {options.min_quality}"
            )
            return

        if options.dry_run:
            stats.successful += 1
            logger.info(f"[dry run] {label}: would store {best.original_url}")
            return

        await self.default_images.create(
            DefaultImageCreate(
                brand=ref.brand,
                model=ref.model,
                image_url=best.image_url,
                source=best.source,
                source_attribution=best.source_attribution,
                author=best.author,
                license=best.license,
                image_quality=best.image_quality,
            )
        )

        if options.enable_caching and self.cache_service is not None and not best.downloaded:
            try:
                await self.cache_service.get_or_fetch(best.original_url)
            except CamTrackerError as e:
                logger.warning(f"Caching failed for {label}: {e}")

        stats.successful += 1
        logger.info(f"✅ {label}: default image stored (quality {best.image_quality})")

    async def populate(self, options: Optional[PopulateOptions] = None) -> Dict[str, Any]:
        """Run a populate pass. Per-model failures are recorded, not raised."""
        opts = normalize_options(options)
        started = time.time()

        refs = await self._load_models(opts)
        models = unique_models(refs)
        stats = PopulateStats(total_cameras=len(refs), unique_models=len(models))
        logger.info(
            f"🚀 Populating default images for {len(models)} models "
            f"(batch size {opts.batch_size}, dry run {opts.dry_run})"
        )

        for start in range(0, len(models), opts.batch_size):
            batch = models[start : start + opts.batch_size]
            for index, ref in enumerate(batch):
                try:
                    await self._process_model(ref, opts, stats)
                except CamTrackerError as e:
                    stats.failed += 1
                    stats.errors.append({"model": f"{ref.brand} {ref.model}", "error": str(e)})
                    logger.warning(f"❌ {ref.brand} {ref.model}: {e}")

                if index < len(batch) - 1:
                    await asyncio.sleep(self.delay_between_images)

            if start + opts.batch_size < len(models):
                await asyncio.sleep(self.delay_between_batches)

        duration = round(time.time() - started, 2)
        success_rate = round(stats.successful / stats.processed * 100) if stats.processed else 0
        logger.info(
            f"🏁 Populate finished: {stats.successful} stored, {stats.skipped} skipped, "
            f"{stats.failed} failed in {duration}s"
        )
        return {
            "action": "populate-completed",
            "stats": stats.model_dump(),
            "duration": duration,
            "success_rate": success_rate,
            "dry_run": opts.dry_run,
        }
