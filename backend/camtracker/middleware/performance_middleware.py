# backend/camtracker/middleware/performance_middleware.py
"""
Image delivery timing and static cache headers.

Every response gets an X-Response-Time header. Image requests (anything
under /uploads/ or /cached-images/, or asking for image/* content) are
recorded in the PerformanceService of the container on ``app.state``.
"""

import time
from typing import Optional

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..constants import (
    CACHE_STATUS_HEADER,
    CACHE_URL_PREFIX,
    CACHED_IMAGES_MAX_AGE_SECONDS,
    RESPONSE_TIME_HEADER,
    SLOW_IMAGE_RESPONSE_MS,
    UPLOADS_MAX_AGE_SECONDS,
)
from ..utils.conversion_utils import safe_int

UPLOADS_PREFIX = "/uploads"


def is_image_request(request: Request) -> bool:
    path = request.url.path
    if f"{UPLOADS_PREFIX}/" in path or f"{CACHE_URL_PREFIX}/" in path:
        return True
    return "image/" in request.headers.get("accept", "")


def is_served(response: Response) -> bool:
    """2xx or 304 Not Modified."""
    return 200 <= response.status_code < 300 or response.status_code == 304


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Times requests and feeds image deliveries into telemetry."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        path = request.url.path
        served = is_served(response)

        if served and path.startswith(f"{CACHE_URL_PREFIX}/"):
            response.headers["Cache-Control"] = (
                f"public, max-age={CACHED_IMAGES_MAX_AGE_SECONDS}, immutable"
            )
            response.headers[CACHE_STATUS_HEADER] = "hit"
        elif served and path.startswith(f"{UPLOADS_PREFIX}/"):
            response.headers["Cache-Control"] = f"public, max-age={UPLOADS_MAX_AGE_SECONDS}"

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        response.headers[RESPONSE_TIME_HEADER] = f"{elapsed_ms:.2f}ms"

        if is_image_request(request):
            self._track(request, response, elapsed_ms)

        return response

    def _track(self, request: Request, response: Response, elapsed_ms: float) -> None:
        container = getattr(request.app.state, "container", None)
        if container is None:
            return
        performance = container.performance_service

        # Misses include 404s for keys that are not on disk
        was_cached = is_served(response) and (
            request.url.path.startswith(f"{CACHE_URL_PREFIX}/")
            or response.headers.get(CACHE_STATUS_HEADER) == "hit"
        )
        content_length = response.headers.get("content-length")
        image_size: Optional[int] = (
            safe_int(content_length) if content_length and is_served(response) else None
        )

        performance.track_image_request(elapsed_ms, was_cached, image_size)

        if elapsed_ms > SLOW_IMAGE_RESPONSE_MS:
            logger.warning(
                f"🐢 Slow image response: {request.url.path} took {elapsed_ms:.0f}ms"
            )
