# backend/tests/unit/routers/conftest.py
"""
API test fixtures.

The application is built around a ServiceContainer wired with the in-memory
default image stores, a mocked Wikimedia client and real cache/download
services whose HTTP traffic goes to an httpx.MockTransport.
"""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from camtracker.dependencies import ServiceContainer
from camtracker.main import create_app
from camtracker.services.image_cache_service import ImageCacheService
from camtracker.services.image_download_service import ImageDownloadService
from camtracker.services.performance_service import PerformanceService
from camtracker.workers.job_queue import JobQueue


@pytest.fixture
def upstream_requests():
    """URLs the fake upstream served, in order."""
    return []


@pytest.fixture
def upstream_client(jpeg_bytes, upstream_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        upstream_requests.append(str(request.url))
        if "missing" in request.url.path:
            return httpx.Response(404)
        return httpx.Response(200, content=jpeg_bytes, headers={"content-type": "image/jpeg"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def mock_wikimedia():
    return AsyncMock()


@pytest.fixture
def api_container(
    test_settings, fake_default_images, fake_brand_images, mock_wikimedia, upstream_client
):
    return ServiceContainer(
        settings=test_settings,
        default_images=fake_default_images,
        brand_images=fake_brand_images,
        wikimedia_client=mock_wikimedia,
        download_service=ImageDownloadService(
            test_settings.default_images_directory, http_client=upstream_client
        ),
        cache_service=ImageCacheService(
            test_settings.cache_directory, http_client=upstream_client, batch_delay_seconds=0
        ),
        job_queue=JobQueue(retry_delay_seconds=0),
        performance_service=PerformanceService(),
    )


@pytest.fixture
def client(api_container):
    """TestClient without lifespan; nothing is started in the background."""
    return TestClient(create_app(container=api_container))
