#!/usr/bin/env python3
"""
Tests for the job queue admin endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from camtracker.enums import JobStatus, JobType
from camtracker.main import create_app


@pytest.mark.unit
class TestJobScheduling:
    def test_fetch_default_image_scheduled(self, client, api_container):
        response = client.post(
            "/api/jobs/fetch-default-image", json={"id": 1, "brand": "Canon", "model": "AE-1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["job_id"] == 1
        job = api_container.job_queue.get_job(1)
        assert job.type == JobType.FETCH_DEFAULT_IMAGE
        assert job.priority == 6

    def test_fetch_default_image_not_needed(self, client):
        response = client.post(
            "/api/jobs/fetch-default-image",
            json={"id": 1, "brand": "Canon", "model": "AE-1", "has_user_images": True},
        )

        assert response.status_code == 200
        assert response.json()["job_id"] is None

    def test_cache_image_job(self, client):
        response = client.post(
            "/api/jobs/cache-image", json={"url": "https://upload.wikimedia.org/a.jpg"}
        )
        assert response.status_code == 200
        assert response.json()["job_id"] == 1

    def test_cache_image_job_rejects_bad_url(self, client):
        response = client.post("/api/jobs/cache-image", json={"url": "not a url"})

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "validation_error"

    def test_cleanup_and_populate_jobs(self, client, api_container):
        assert client.post("/api/jobs/cache-cleanup").json()["job_id"] == 1

        response = client.post(
            "/api/jobs/populate-default-images", json={"batch_size": 80, "dry_run": True}
        )

        assert "dry run" in response.json()["message"]
        assert api_container.job_queue.get_job(2).payload["batch_size"] == 50

    def test_populate_without_body(self, client):
        response = client.post("/api/jobs/populate-default-images")
        assert response.status_code == 200
        assert "live" in response.json()["message"]


@pytest.mark.unit
class TestJobInspection:
    def test_get_job_and_missing_job(self, client, api_container):
        api_container.job_queue.schedule_cache_cleanup()

        assert client.get("/api/jobs/1").json()["type"] == "cleanup-cache"

        missing = client.get("/api/jobs/99")
        assert missing.status_code == 404
        assert missing.json()["detail"] == "Job 99 not found"

    def test_list_jobs_with_filters(self, client, api_container):
        queue = api_container.job_queue
        queue.schedule_cache_cleanup()
        queue.schedule_cache_image("https://e.com/a.jpg")
        queue.schedule_cache_image("https://e.com/b.jpg")

        body = client.get("/api/jobs", params={"type": "cache-image", "limit": 1}).json()

        assert body["total"] == 2
        assert body["has_more"] is True
        assert body["jobs"][0]["payload"]["url"] == "https://e.com/b.jpg"

    def test_list_jobs_rejects_unknown_status(self, client):
        assert client.get("/api/jobs", params={"status": "sleeping"}).status_code == 422

    def test_stats_and_types(self, client, api_container):
        api_container.job_queue.schedule_cache_cleanup()

        stats = client.get("/api/jobs/stats").json()
        types = client.get("/api/jobs/types").json()

        assert stats["pending"] == 1
        assert stats["is_processing"] is False
        assert len(types["job_types"]) == 4

    def test_clear_jobs(self, client, api_container):
        queue = api_container.job_queue
        queue.schedule_cache_cleanup()
        queue.schedule_cache_cleanup()
        queue._jobs[1].status = JobStatus.COMPLETED

        response = client.delete("/api/jobs/clear")
        assert response.json() == {"success": True, "cleared": 1, "status": "completed"}

        response = client.delete("/api/jobs/clear", params={"status": "all"})
        assert response.json()["cleared"] == 1


@pytest.mark.unit
class TestProcessingControl:
    def test_start_and_stop_processing(self, api_container):
        with TestClient(create_app(container=api_container)) as client:
            started = client.post("/api/jobs/start-processing").json()
            stopped = client.post("/api/jobs/stop-processing").json()

        assert started["success"] is True
        assert started["data"]["is_processing"] is True
        assert stopped["data"]["is_processing"] is False
