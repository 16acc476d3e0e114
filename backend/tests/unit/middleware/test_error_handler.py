#!/usr/bin/env python3
"""
Tests for domain error mapping and the unhandled-exception middleware.
"""

import uuid

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from camtracker.exceptions import (
    CamTrackerError,
    CompressionError,
    DatabaseOperationError,
    DownloadError,
    DuplicateError,
    ExternalServiceError,
    JobTimeoutError,
    NotFoundError,
    ValidationError,
)
from camtracker.middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_exception_handlers,
    status_code_for,
)


@pytest.fixture
def error_client():
    app = FastAPI()
    app.add_middleware(ErrorHandlerMiddleware)
    register_exception_handlers(app)

    @app.get("/not-found")
    async def not_found():
        raise NotFoundError("Job 7 not found")

    @app.get("/database")
    async def database():
        raise DatabaseOperationError("password=hunter2 rejected")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.unit
class TestStatusMapping:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (NotFoundError("x"), 404),
            (ValidationError("x"), 400),
            (DuplicateError("x"), 409),
            (DownloadError("x"), 502),
            (CompressionError("x"), 502),
            (ExternalServiceError("x"), 502),
            (JobTimeoutError("x"), 504),
            (DatabaseOperationError("x"), 500),
            (CamTrackerError("x"), 500),
        ],
    )
    def test_status_code_for(self, error, status_code):
        assert status_code_for(error) == status_code


@pytest.mark.unit
class TestErrorResponses:
    def test_domain_error_body(self, error_client):
        response = error_client.get("/not-found")

        assert response.status_code == 404
        body = response.json()
        assert body["detail"] == "Job 7 not found"
        assert body["error"]["type"] == "not_found"
        assert body["error"]["status_code"] == 404
        uuid.UUID(body["error"]["correlation_id"])

    def test_unmapped_domain_error_hides_message(self, error_client):
        response = error_client.get("/database")

        assert response.status_code == 500
        assert "hunter2" not in response.text
        assert response.json()["error"]["type"] == "internal_error"

    def test_unhandled_exception_becomes_500(self, error_client):
        response = error_client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["detail"] == "An internal server error occurred"
        assert body["error"]["type"] == "internal_error"
        uuid.UUID(body["error"]["correlation_id"])

    def test_unhandled_exception_hides_internals(self, error_client):
        response = error_client.get("/boom")

        error = response.json()["error"]
        assert set(error) == {"type", "message", "status_code", "correlation_id", "timestamp"}
        assert "traceback" not in error
        assert "secret internals" not in response.text
        assert "RuntimeError" not in response.text
