# backend/camtracker/routers/cache_routers.py
"""
Image cache admin endpoints.

Stats, integrity checks and maintenance for the content-addressed cache
served under /cached-images.
"""

import asyncio

from fastapi import APIRouter, Query

from ..constants import CACHE_BATCH_MAX_URLS
from ..dependencies import CacheServiceDep, PerformanceServiceDep
from ..exceptions import ValidationError
from ..models.cache_model import (
    BatchFetchResult,
    CacheBatchRequest,
    CacheCleanupResult,
    CacheEntry,
    CacheStats,
    CacheUsageByAge,
    CacheValidationResult,
)
from ..models.job_model import CacheImageRequest
from ..utils.response_helpers import ResponseFormatter
from ..utils.router_helpers import handle_exceptions

router = APIRouter(tags=["cache"])


@router.get("/cache/stats", response_model=CacheStats)
@handle_exceptions("get cache statistics")
async def get_cache_stats(cache_service: CacheServiceDep):
    return await asyncio.to_thread(cache_service.get_stats)


@router.get("/cache/usage", response_model=CacheUsageByAge)
@handle_exceptions("get cache usage")
async def get_cache_usage(cache_service: CacheServiceDep):
    return await asyncio.to_thread(cache_service.get_usage_by_age)


@router.get("/cache/validate/{cache_key}", response_model=CacheValidationResult)
@handle_exceptions("validate cached file")
async def validate_cached_file(cache_key: str, cache_service: CacheServiceDep):
    return await asyncio.to_thread(cache_service.validate_cached_file, cache_key)


@router.get("/cache/info")
@handle_exceptions("get cached image info")
async def get_cached_image_info(
    cache_service: CacheServiceDep,
    url: str = Query(..., min_length=1, description="Original image URL"),
):
    """Cache status for an external URL; ``cached`` is false when missing or expired."""
    entry = cache_service.get_cached_image_info(url)
    return {
        "url": url,
        "cache_key": cache_service.get_cache_key(url),
        "cached": entry is not None,
        "entry": entry,
    }


@router.post("/cache/cleanup", response_model=CacheCleanupResult)
@handle_exceptions("clean up cache")
async def cleanup_cache(cache_service: CacheServiceDep):
    return await asyncio.to_thread(cache_service.cleanup_expired)


@router.post("/cache/image", response_model=CacheEntry)
@handle_exceptions("cache image")
async def cache_image(request: CacheImageRequest, cache_service: CacheServiceDep):
    """Fetch an image into the cache now, or return the existing entry."""
    return await cache_service.get_or_fetch(request.url)


@router.post("/cache/batch", response_model=BatchFetchResult)
@handle_exceptions("batch cache images")
async def batch_cache_images(request: CacheBatchRequest, cache_service: CacheServiceDep):
    if len(request.urls) > CACHE_BATCH_MAX_URLS:
        raise ValidationError(
            f"At most {CACHE_BATCH_MAX_URLS} URLs per batch (got {len(request.urls)})"
        )
    return await cache_service.batch_fetch(request.urls, concurrency=request.concurrency)


@router.delete("/cache/clear")
@handle_exceptions("clear cache")
async def clear_cache(cache_service: CacheServiceDep):
    removed = await asyncio.to_thread(cache_service.clear_cache)
    return ResponseFormatter.success(f"Removed {removed} cached files", data={"removed": removed})


@router.get("/cache/optimization")
@handle_exceptions("get cache optimization hints")
async def get_cache_optimization(
    cache_service: CacheServiceDep,
    performance_service: PerformanceServiceDep,
    unused_days: int = Query(7, ge=1, le=365),
):
    return await asyncio.to_thread(
        performance_service.optimize_image_loading, cache_service, unused_days
    )
