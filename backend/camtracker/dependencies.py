# backend/camtracker/dependencies.py
"""
Service wiring and FastAPI dependency injection.

All long-lived services are built once into a ServiceContainer that lives on
``app.state.container``. Routers receive individual services through the
Annotated dependency types at the bottom of this module, so tests can swap
the whole container (or any service in it) without touching globals.
"""

from typing import Annotated, Optional

import httpx
from fastapi import Depends, Request

from .config import Settings, settings as default_settings
from .database.core import AsyncDatabase
from .database.default_image_operations import (
    BrandDefaultImageOperations,
    CameraInventoryOperations,
    DefaultImageOperations,
)
from .services.attribution_service import AttributionService
from .services.default_image_populator import DefaultImagePopulator
from .services.image_cache_service import ImageCacheService
from .services.image_download_service import ImageDownloadService
from .services.image_resolution_service import ImageResolutionService
from .services.performance_service import PerformanceService
from .services.wikimedia_client import WikimediaImageClient
from .workers.cache_cleanup_scheduler import CacheCleanupScheduler
from .workers.job_events import JobEventBus
from .workers.job_handlers import JobHandlers
from .workers.job_queue import JobQueue


class ServiceContainer:
    """Holds one instance of every service the application uses."""

    def __init__(
        self,
        settings: Settings,
        default_images: DefaultImageOperations,
        brand_images: BrandDefaultImageOperations,
        wikimedia_client: WikimediaImageClient,
        download_service: ImageDownloadService,
        cache_service: ImageCacheService,
        job_queue: JobQueue,
        performance_service: PerformanceService,
        db: Optional[AsyncDatabase] = None,
        camera_inventory: Optional[CameraInventoryOperations] = None,
        populator: Optional[DefaultImagePopulator] = None,
        cleanup_scheduler: Optional[CacheCleanupScheduler] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.db = db
        self.default_images = default_images
        self.brand_images = brand_images
        self.camera_inventory = camera_inventory
        self.wikimedia_client = wikimedia_client
        self.download_service = download_service
        self.cache_service = cache_service
        self.populator = populator
        self.job_queue = job_queue
        self.cleanup_scheduler = cleanup_scheduler
        self.performance_service = performance_service
        self.http_client = http_client

        self.resolution_service = ImageResolutionService(default_images, brand_images)
        self.attribution_service = AttributionService(default_images)

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()


def build_container(
    settings: Optional[Settings] = None,
    db: Optional[AsyncDatabase] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ServiceContainer:
    """
    Wire the production service graph.

    One shared httpx client serves the Commons API, the downloader and the
    cache; it is closed with the container.
    """
    settings = settings or default_settings
    db = db or AsyncDatabase(settings)
    http_client = http_client or httpx.AsyncClient(
        headers={"User-Agent": settings.wikimedia_user_agent}
    )

    default_images = DefaultImageOperations(db)
    brand_images = BrandDefaultImageOperations(db)
    camera_inventory = CameraInventoryOperations(db)

    download_service = ImageDownloadService(
        settings.default_images_directory,
        http_client=http_client,
        user_agent=settings.wikimedia_user_agent,
    )
    cache_service = ImageCacheService(
        settings.cache_directory,
        http_client=http_client,
        max_age_days=settings.cache_max_age_days,
        user_agent=settings.wikimedia_user_agent,
    )
    wikimedia_client = WikimediaImageClient(
        http_client=http_client,
        download_service=download_service,
        api_url=settings.wikimedia_api_url,
        user_agent=settings.wikimedia_user_agent,
    )
    populator = DefaultImagePopulator(
        wikimedia_client,
        default_images,
        model_provider=camera_inventory.get_unique_camera_models,
        cache_service=cache_service,
    )

    handlers = JobHandlers(
        wikimedia_client,
        default_images,
        cache_service,
        populator,
        download_service=download_service,
    )
    job_queue = JobQueue(
        handlers.as_mapping(),
        max_concurrency=settings.queue_max_concurrency,
        max_retries=settings.queue_max_retries,
        retry_delay_seconds=settings.queue_retry_delay_seconds,
        job_timeout_seconds=settings.queue_job_timeout_seconds,
        cleanup_interval_seconds=settings.queue_cleanup_interval_seconds,
        retention_hours=settings.queue_retention_hours,
        event_bus=JobEventBus(),
    )
    cleanup_scheduler = CacheCleanupScheduler(
        job_queue, interval_hours=settings.cache_cleanup_interval_hours
    )

    return ServiceContainer(
        settings=settings,
        db=db,
        default_images=default_images,
        brand_images=brand_images,
        camera_inventory=camera_inventory,
        wikimedia_client=wikimedia_client,
        download_service=download_service,
        cache_service=cache_service,
        populator=populator,
        job_queue=job_queue,
        cleanup_scheduler=cleanup_scheduler,
        performance_service=PerformanceService(),
        http_client=http_client,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_job_queue(request: Request) -> JobQueue:
    return get_container(request).job_queue


def get_cache_service(request: Request) -> ImageCacheService:
    return get_container(request).cache_service


def get_default_image_operations(request: Request) -> DefaultImageOperations:
    return get_container(request).default_images


def get_brand_image_operations(request: Request) -> BrandDefaultImageOperations:
    return get_container(request).brand_images


def get_wikimedia_client(request: Request) -> WikimediaImageClient:
    return get_container(request).wikimedia_client


def get_resolution_service(request: Request) -> ImageResolutionService:
    return get_container(request).resolution_service


def get_attribution_service(request: Request) -> AttributionService:
    return get_container(request).attribution_service


def get_performance_service(request: Request) -> PerformanceService:
    return get_container(request).performance_service


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]
JobQueueDep = Annotated[JobQueue, Depends(get_job_queue)]
CacheServiceDep = Annotated[ImageCacheService, Depends(get_cache_service)]
DefaultImageOperationsDep = Annotated[
    DefaultImageOperations, Depends(get_default_image_operations)
]
BrandImageOperationsDep = Annotated[
    BrandDefaultImageOperations, Depends(get_brand_image_operations)
]
WikimediaClientDep = Annotated[WikimediaImageClient, Depends(get_wikimedia_client)]
ResolutionServiceDep = Annotated[ImageResolutionService, Depends(get_resolution_service)]
AttributionServiceDep = Annotated[AttributionService, Depends(get_attribution_service)]
PerformanceServiceDep = Annotated[PerformanceService, Depends(get_performance_service)]
