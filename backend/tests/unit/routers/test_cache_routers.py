#!/usr/bin/env python3
"""
Tests for the image cache endpoints and static cache serving.
"""

import os
import time

import pytest

from camtracker.services.image_cache_service import get_cache_key

IMAGE_URL = "https://upload.wikimedia.org/canon-ae1.jpg"


@pytest.mark.unit
class TestCacheEndpoints:
    def test_cache_image_then_info(self, client, upstream_requests):
        cached = client.post("/api/cache/image", json={"url": IMAGE_URL})

        assert cached.status_code == 200
        assert cached.json()["cache_key"] == get_cache_key(IMAGE_URL)

        info = client.get("/api/cache/info", params={"url": IMAGE_URL}).json()
        assert info["cached"] is True
        assert info["entry"]["size"] > 0

        client.post("/api/cache/image", json={"url": IMAGE_URL})
        assert upstream_requests == [IMAGE_URL]

    def test_info_for_uncached_url(self, client):
        info = client.get("/api/cache/info", params={"url": IMAGE_URL}).json()
        assert info["cached"] is False
        assert info["entry"] is None

    def test_upstream_failure_is_bad_gateway(self, client):
        response = client.post(
            "/api/cache/image", json={"url": "https://upload.wikimedia.org/missing.jpg"}
        )

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "download_error"

    def test_invalid_url_is_bad_request(self, client):
        assert client.post("/api/cache/image", json={"url": "nope"}).status_code == 400

    def test_batch(self, client):
        response = client.post(
            "/api/cache/batch",
            json={
                "urls": [IMAGE_URL, "https://upload.wikimedia.org/missing.jpg"],
                "concurrency": 2,
            },
        )

        body = response.json()
        assert body["successful"] == 1
        assert body["failed"] == 1

    def test_batch_limit(self, client):
        urls = [f"https://e.com/{i}.jpg" for i in range(101)]
        assert client.post("/api/cache/batch", json={"urls": urls}).status_code == 400

    def test_stats_usage_cleanup_clear(self, client, test_settings):
        cache_dir = test_settings.cache_directory
        fresh = cache_dir / f"{'a' * 64}.jpg"
        stale = cache_dir / f"{'b' * 64}.jpg"
        for path in (fresh, stale):
            path.write_bytes(b"\xff\xd8\xff\xe0")
        old = time.time() - 40 * 24 * 60 * 60
        os.utime(stale, (old, old))

        stats = client.get("/api/cache/stats").json()
        assert (stats["total_files"], stats["expired_files"]) == (2, 1)
        assert client.get("/api/cache/usage").json()["older"] == 1

        cleanup = client.post("/api/cache/cleanup").json()
        assert cleanup == {"deleted_count": 1, "error_count": 0, "total_files": 2}

        cleared = client.delete("/api/cache/clear").json()
        assert cleared["data"] == {"removed": 1}

    def test_validate(self, client, test_settings, jpeg_bytes):
        key = f"{'c' * 64}.jpg"
        (test_settings.cache_directory / key).write_bytes(jpeg_bytes)

        assert client.get(f"/api/cache/validate/{key}").json()["valid"] is True
        assert client.get("/api/cache/validate/not-a-key").status_code == 400

    def test_optimization(self, client):
        body = client.get("/api/cache/optimization").json()
        assert body["cache_valid_files"] == 0


@pytest.mark.unit
class TestStaticServing:
    def test_cached_image_served_with_long_lived_headers(self, client, api_container):
        client.post("/api/cache/image", json={"url": IMAGE_URL})

        response = client.get(f"/cached-images/{get_cache_key(IMAGE_URL)}")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=2592000, immutable"
        assert response.headers["x-cache-status"] == "hit"
        assert response.headers["x-response-time"].endswith("ms")

        stats = api_container.performance_service.get_performance_stats()
        assert stats.total_requests == 1
        assert stats.cache_hits == 1

    def test_missing_cached_image_is_a_miss(self, client, api_container):
        response = client.get(f"/cached-images/{'0' * 64}.jpg")

        assert response.status_code == 404
        assert "immutable" not in response.headers.get("cache-control", "")
        assert "x-cache-status" not in response.headers

        stats = api_container.performance_service.get_performance_stats()
        assert stats.total_requests == 1
        assert stats.cache_hits == 0
        assert stats.cache_misses == 1

    def test_uploads_served_with_week_cache(self, client, test_settings, jpeg_bytes):
        (test_settings.default_images_directory / "abc.jpg").write_bytes(jpeg_bytes)

        response = client.get("/uploads/default-images/abc.jpg")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=604800"
