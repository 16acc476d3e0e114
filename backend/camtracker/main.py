# backend/camtracker/main.py
"""
FastAPI application entry point for CamTracker.

The web process hosts the admin API, serves cached and uploaded images, and
runs the in-memory job queue plus the periodic cache cleanup. Jobs are not
persisted, so there is exactly one queue per process.
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from .config import Settings, settings as default_settings
from .constants import CACHE_URL_PREFIX
from .database.schema import ensure_schema
from .dependencies import ServiceContainer, build_container
from .middleware import (
    ErrorHandlerMiddleware,
    PerformanceMiddleware,
    register_exception_handlers,
)
from .routers import attribution_routers as attribution
from .routers import cache_routers as cache
from .routers import default_image_routers as default_images
from .routers import health_routers as health
from .routers import image_routers as images
from .routers import image_search_routers as image_search
from .routers import jobs_routers as jobs
from .routers import performance_routers as performance
from .utils.logging_setup import configure_logging


async def _start_background(container: ServiceContainer, settings: Settings) -> None:
    if settings.queue_autostart:
        await container.job_queue.start()
    if settings.cache_cleanup_enabled and container.cleanup_scheduler is not None:
        await container.cleanup_scheduler.start()


async def _stop_background(container: ServiceContainer) -> None:
    if container.cleanup_scheduler is not None and container.cleanup_scheduler.running:
        await container.cleanup_scheduler.stop()
    await container.job_queue.shutdown()


def create_app(
    container: Optional[ServiceContainer] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application.

    When no container is passed, the production service graph is built at
    startup; tests pass a container wired with fakes.
    """
    settings = settings or (container.settings if container else default_settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        configure_logging(settings)
        settings.ensure_directories()
        logger.info(f"🚀 Starting CamTracker API ({settings.environment})")

        if getattr(_app.state, "container", None) is None:
            _app.state.container = build_container(settings)
        active: ServiceContainer = _app.state.container

        if active.db is not None:
            try:
                await active.db.initialize()
                await ensure_schema(active.db)
            except Exception as e:
                logger.error(f"Database initialization failed: {e}")
                raise RuntimeError(f"Cannot start application: {e}") from e

        await _start_background(active, settings)

        yield

        logger.info("Shutting down CamTracker API")
        await _stop_background(active)
        await active.aclose()
        if active.db is not None:
            await active.db.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="CamTracker API",
        description="Camera inventory image pipeline",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.container = container

    # Middleware stack (last added = first executed)
    app.add_middleware(PerformanceMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(jobs.router, prefix="/api")
    app.include_router(cache.router, prefix="/api")
    app.include_router(default_images.router, prefix="/api")
    app.include_router(attribution.router, prefix="/api")
    app.include_router(performance.router, prefix="/api")
    app.include_router(image_search.router, prefix="/api")
    app.include_router(images.router, prefix="/api")
    app.include_router(health.router, prefix="/api")

    # Directories may not exist yet; they are created during startup
    app.mount(
        CACHE_URL_PREFIX,
        StaticFiles(directory=str(settings.cache_directory), check_dir=False),
        name="cached-images",
    )
    app.mount(
        "/uploads",
        StaticFiles(directory=str(settings.uploads_directory), check_dir=False),
        name="uploads",
    )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "camtracker.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=default_settings.api_reload,
    )
