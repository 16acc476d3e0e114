#!/usr/bin/env python3
"""
Tests for default image and brand default image management.
"""

import pytest

AE1 = {
    "brand": "Canon",
    "model": "AE-1",
    "image_url": "/uploads/default-images/ae1.jpg",
    "author": "Jane Doe",
    "license": "CC BY-SA 4.0",
    "image_quality": 8,
}


@pytest.mark.unit
class TestDefaultImageRoutes:
    def test_create_and_get(self, client):
        created = client.post("/api/default-images", json=AE1)

        assert created.status_code == 201
        image_id = created.json()["id"]
        fetched = client.get(f"/api/default-images/{image_id}").json()
        assert fetched["model"] == "AE-1"
        assert fetched["source"] == "Wikipedia Commons"

    def test_duplicate_active_record_conflicts(self, client):
        client.post("/api/default-images", json=AE1)

        response = client.post("/api/default-images", json=AE1)

        assert response.status_code == 409
        assert response.json()["error"]["type"] == "duplicate"

    def test_overwrite_replaces_active_record(self, client, fake_default_images):
        first = client.post("/api/default-images", json=AE1).json()

        second = client.post(
            "/api/default-images",
            params={"overwrite": "true"},
            json={**AE1, "image_url": "/uploads/default-images/ae1-v2.jpg"},
        )

        assert second.status_code == 201
        assert fake_default_images.records[first["id"]].is_active is False
        active = client.get("/api/default-images", params={"brand": "Canon"}).json()
        assert [r["image_url"] for r in active] == ["/uploads/default-images/ae1-v2.jpg"]

    def test_invalid_body(self, client):
        response = client.post("/api/default-images", json={**AE1, "image_quality": 11})
        assert response.status_code == 422

    def test_missing_record(self, client):
        assert client.get("/api/default-images/404").status_code == 404
        assert client.put("/api/default-images/404", json={"license": "CC0"}).status_code == 404
        assert client.delete("/api/default-images/404").status_code == 404

    def test_update(self, client):
        image_id = client.post("/api/default-images", json=AE1).json()["id"]

        updated = client.put(f"/api/default-images/{image_id}", json={"license": "CC0"})

        assert updated.json()["license"] == "CC0"
        assert client.put(f"/api/default-images/{image_id}", json={}).status_code == 400

    def test_soft_and_hard_delete(self, client, fake_default_images):
        image_id = client.post("/api/default-images", json=AE1).json()["id"]

        soft = client.delete(f"/api/default-images/{image_id}")
        assert soft.json()["message"] == f"Default image {image_id} deactivated"
        assert client.get("/api/default-images").json() == []
        inactive = client.get("/api/default-images", params={"is_active": "false"}).json()
        assert [r["id"] for r in inactive] == [image_id]

        client.delete(f"/api/default-images/{image_id}", params={"hard": "true"})
        assert image_id not in fake_default_images.records

    def test_brands_and_models(self, client):
        client.post("/api/default-images", json=AE1)
        client.post("/api/default-images", json={**AE1, "model": "A-1"})
        client.post("/api/default-images", json={**AE1, "brand": "Nikon", "model": "F3"})

        assert client.get("/api/default-images/brands").json() == ["Canon", "Nikon"]
        assert client.get("/api/default-images/models/Canon").json() == {
            "brand": "Canon",
            "models": ["A-1", "AE-1"],
        }


@pytest.mark.unit
class TestBrandDefaultImageRoutes:
    def test_create_list_update(self, client):
        created = client.post(
            "/api/brand-default-images",
            json={"brand": "Leica", "image_url": "/uploads/brands/leica.jpg"},
        )
        assert created.status_code == 201
        image_id = created.json()["id"]

        listed = client.get("/api/brand-default-images").json()
        assert [b["brand"] for b in listed] == ["Leica"]

        updated = client.put(
            f"/api/brand-default-images/{image_id}", json={"license": "CC BY 2.0"}
        )
        assert updated.json()["license"] == "CC BY 2.0"

    def test_duplicate_brand(self, client):
        body = {"brand": "Leica", "image_url": "/uploads/brands/leica.jpg"}
        client.post("/api/brand-default-images", json=body)
        assert client.post("/api/brand-default-images", json=body).status_code == 409

    def test_update_errors(self, client):
        assert client.put("/api/brand-default-images/9", json={"license": "x"}).status_code == 404
        assert client.put("/api/brand-default-images/9", json={}).status_code == 400
