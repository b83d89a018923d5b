"""
Health check tests for the API.
"""

from unittest.mock import patch

import httpx

from catalogue.core.config import settings
from catalogue.search.facets import clear_reference_cache


class TestHealth:
    """Test liveness and readiness endpoints."""

    def test_health_check(self, client):
        response = client.get("/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ready_when_backend_answers(self, client, fake_backend):
        response = client.get("/v1/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["checks"]["search_backend"]["status"] == "ok"
        assert data["request_id"] == response.headers["X-Request-ID"]
        assert fake_backend.requests[0].method == "HEAD"

    def test_ready_when_backend_down(self, client, fake_backend):
        fake_backend.error = httpx.ConnectError("connection refused")

        response = client.get("/v1/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "down"
        assert data["checks"]["search_backend"]["message"] == "Search backend unreachable"

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["version"] == "1.0.0"
        assert response.json()["api"] == "/v1"

    def test_ready_degraded_without_facet_lists(self, client, tmp_path):
        clear_reference_cache()
        try:
            with patch.object(settings, "FACET_LISTS_DIR", str(tmp_path)):
                response = client.get("/v1/ready")
        finally:
            clear_reference_cache()

        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["search_backend"]["status"] == "ok"
        assert data["checks"]["facet_lists"]["message"] == "Empty facet lists: collections, subjects, languages"
