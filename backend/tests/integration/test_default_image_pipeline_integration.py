#!/usr/bin/env python3
"""
Integration tests for the default image pipeline.

Tests the path from camera creation to a resolved default image:
- Scheduling a fetch from the camera-creation hook
- Commons search, download and transcode through real services
- Storing the record and resolving the camera afterwards

Only the network (httpx.MockTransport) and the database (in-memory store)
are faked.
"""

import httpx
import pytest
from PIL import Image

from camtracker.enums import ImageSource, JobStatus
from camtracker.services.default_image_populator import DefaultImagePopulator
from camtracker.services.image_cache_service import ImageCacheService
from camtracker.services.image_download_service import ImageDownloadService
from camtracker.services.image_resolution_service import ImageResolutionService
from camtracker.services.wikimedia_client import WikimediaImageClient
from camtracker.workers.job_handlers import JobHandlers
from camtracker.workers.job_queue import JobQueue

AE1_UPLOAD_URL = "https://upload.wikimedia.org/wikipedia/commons/a/ae/Canon_AE-1.jpg"


@pytest.fixture
def commons_traffic():
    """(host, path) of every upstream request."""
    return []


@pytest.fixture
def commons_client(
    commons_traffic, jpeg_factory, commons_page_factory, commons_response_factory
):
    """Fake Commons: the API finds Canon AE-1 only, uploads serve a real JPEG."""
    photo = jpeg_factory(1600, 1200)

    def handler(request: httpx.Request) -> httpx.Response:
        commons_traffic.append((request.url.host, request.url.path))
        if request.url.host == "commons.wikimedia.org":
            term = request.url.params.get("gsrsearch", "")
            if "AE-1" not in term:
                return httpx.Response(200, json={"batchcomplete": ""})
            return httpx.Response(
                200,
                json=commons_response_factory(
                    commons_page_factory("File:Canon AE-1 camera.jpg", AE1_UPLOAD_URL)
                ),
            )
        return httpx.Response(200, content=photo, headers={"content-type": "image/jpeg"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def pipeline(test_settings, commons_client, fake_default_images, fake_brand_images):
    download_service = ImageDownloadService(
        test_settings.default_images_directory, http_client=commons_client
    )
    wikimedia = WikimediaImageClient(
        http_client=commons_client, download_service=download_service
    )
    cache_service = ImageCacheService(
        test_settings.cache_directory, http_client=commons_client, batch_delay_seconds=0
    )
    populator = DefaultImagePopulator(
        wikimedia,
        fake_default_images,
        cache_service=cache_service,
        delay_between_images=0,
        delay_between_batches=0,
    )
    handlers = JobHandlers(
        wikimedia, fake_default_images, cache_service, populator, download_service
    )
    queue = JobQueue(
        handlers.as_mapping(),
        max_retries=0,
        busy_poll_seconds=0.01,
        idle_poll_seconds=0.01,
    )
    resolver = ImageResolutionService(fake_default_images, fake_brand_images)
    return queue, resolver


async def run_until_idle(queue: JobQueue) -> None:
    await queue.start_processing()
    try:
        assert await queue.wait_until_idle(timeout=10)
    finally:
        await queue.shutdown()


@pytest.mark.integration
class TestDefaultImagePipeline:
    @pytest.mark.asyncio
    async def test_new_camera_gets_model_default(
        self, pipeline, test_settings, fake_default_images, commons_traffic
    ):
        queue, resolver = pipeline
        camera = {"id": 42, "brand": "Canon", "model": "AE-1"}

        job = queue.schedule_default_image_fetch(camera)
        await run_until_idle(queue)

        finished = queue.get_job(job.id)
        assert finished.status == JobStatus.COMPLETED
        assert finished.result["action"] == "created"
        assert finished.result["camera_id"] == 42

        stored = await fake_default_images.get_by_brand_and_model("Canon", "AE-1")
        assert stored.image_url.startswith("/uploads/default-images/")
        assert stored.author == "Jane Doe"
        assert stored.image_quality == 8

        filename = stored.image_url.rsplit("/", 1)[1]
        local_file = test_settings.default_images_directory / filename
        with Image.open(local_file) as image:
            assert image.format == "JPEG"
            assert image.width <= 800 and image.height <= 600

        resolution = await resolver.resolve(camera)
        assert resolution.image_source == ImageSource.DEFAULT_MODEL
        assert resolution.primary_image == stored.image_url
        assert (
            "upload.wikimedia.org",
            "/wikipedia/commons/a/ae/Canon_AE-1.jpg",
        ) in commons_traffic

    @pytest.mark.asyncio
    async def test_second_fetch_is_skipped(self, pipeline, fake_default_images):
        queue, _ = pipeline
        camera = {"id": 1, "brand": "Canon", "model": "AE-1"}

        first = queue.schedule_default_image_fetch(camera)
        await run_until_idle(queue)
        second = queue.schedule_default_image_fetch(camera)
        await run_until_idle(queue)

        assert queue.get_job(first.id).result["action"] == "created"
        assert queue.get_job(second.id).result["action"] == "skipped"
        assert len(fake_default_images.records) == 1

    @pytest.mark.asyncio
    async def test_camera_with_user_images_is_not_scheduled(self, pipeline):
        queue, resolver = pipeline
        camera = {
            "id": 2,
            "brand": "Canon",
            "model": "AE-1",
            "image1_path": "/uploads/cameras/2.jpg",
        }

        assert queue.schedule_default_image_fetch({**camera, "has_user_images": True}) is None
        resolution = await resolver.resolve(camera)
        assert resolution.image_source == ImageSource.USER

    @pytest.mark.asyncio
    async def test_unknown_model_falls_back_to_placeholder(self, pipeline):
        queue, resolver = pipeline
        camera = {"id": 3, "brand": "Zorki", "model": "4K"}

        job = queue.schedule_default_image_fetch(camera)
        await run_until_idle(queue)

        assert queue.get_job(job.id).result == {"action": "failed", "reason": "no_image_found"}
        resolution = await resolver.resolve(camera)
        assert resolution.image_source == ImageSource.PLACEHOLDER

    @pytest.mark.asyncio
    async def test_populate_job(self, pipeline, fake_default_images):
        queue, _ = pipeline

        job = queue.schedule_populate_default_images(
            {
                "models": [
                    {"brand": "Canon", "model": "AE-1"},
                    {"brand": "Zorki", "model": "4K"},
                ],
                "enable_caching": False,
            }
        )
        await run_until_idle(queue)

        result = queue.get_job(job.id).result
        assert result["stats"]["successful"] == 1
        assert result["stats"]["processed"] == 2
        assert len(fake_default_images.records) == 1
