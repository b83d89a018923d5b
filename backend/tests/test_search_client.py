"""Tests for the search backend HTTP client."""

import base64
from unittest.mock import patch

import httpx
import pytest

from catalogue.common.request_context import SearchStats, search_stats_var
from catalogue.core.config import settings
from catalogue.search.search_client import (
    SearchClient,
    SearchRequestError,
    get_search_client,
    reset_client,
)
from tests.helpers.responses import make_hit, make_response


class TestSearchClient:
    """Test SearchClient request handling."""

    def test_search_posts_body_with_basic_auth(self, search_client, fake_backend):
        fake_backend.reply = make_response([make_hit(ys_id=1)])
        body = {"query": {"match_all": {}}, "from": 0, "size": 25}

        data = search_client.search(body)

        assert data["hits"]["total"]["value"] == 1
        request = fake_backend.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://search.test/yaz-scrape/_search"
        assert request.headers["Content-Type"] == "application/json"
        expected_auth = base64.b64encode(b"reader:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected_auth}"
        assert fake_backend.bodies == [body]

    def test_non_success_status_raises(self, search_client, fake_backend):
        fake_backend.status_code = 401
        fake_backend.reply = {"error": "unauthorized"}

        with pytest.raises(SearchRequestError) as exc_info:
            search_client.search({})

        assert str(exc_info.value) == "Search failed: 401"
        assert exc_info.value.status_code == 401

    def test_transport_error_raises(self, search_client, fake_backend):
        fake_backend.error = httpx.ConnectError("connection refused")

        with pytest.raises(SearchRequestError) as exc_info:
            search_client.search({})

        assert exc_info.value.message.startswith("Search request failed:")
        assert exc_info.value.status_code is None

    def test_invalid_json_raises(self, search_client, fake_backend):
        fake_backend.reply = "<html>bad gateway</html>"

        with pytest.raises(SearchRequestError, match="invalid response body"):
            search_client.search({})

    def test_search_calls_are_counted(self, search_client, fake_backend):
        stats = SearchStats()
        token = search_stats_var.set(stats)
        try:
            search_client.search({})
            fake_backend.status_code = 500
            with pytest.raises(SearchRequestError):
                search_client.search({})
        finally:
            search_stats_var.reset(token)

        assert stats.calls == 2
        assert stats.total_ms >= 0

    def test_calls_outside_a_request_are_not_counted(self, search_client):
        search_client.search({})
        assert search_stats_var.get() is None

    def test_ping_heads_index_url(self, search_client, fake_backend):
        assert search_client.ping() is True

        request = fake_backend.requests[0]
        assert request.method == "HEAD"
        assert str(request.url) == "https://search.test/yaz-scrape"

    def test_ping_reports_failure_status(self, search_client, fake_backend):
        fake_backend.status_code = 503
        assert search_client.ping() is False

    def test_ping_never_raises(self, search_client, fake_backend):
        fake_backend.error = httpx.ReadTimeout("timed out")
        assert search_client.ping() is False


class TestSearchClientSingleton:
    """Test the process-wide client."""

    def setup_method(self):
        """Reset client before each test."""
        reset_client()

    def teardown_method(self):
        reset_client()

    def test_endpoint_from_settings(self):
        with patch.object(settings, "SEARCH_API_URL", "https://search.example/opensearch/"), patch.object(
            settings, "SEARCH_API_INDEX", "manuscripts"
        ):
            client = get_search_client()

        assert client.endpoint == "https://search.example/opensearch/manuscripts/_search"

    def test_client_is_reused_until_reset(self):
        first = get_search_client()
        assert get_search_client() is first

        reset_client()
        assert get_search_client() is not first

    def test_explicit_endpoint_wins(self):
        client = SearchClient("https://other.test/idx/_search", username="", password="")
        try:
            assert client.endpoint == "https://other.test/idx/_search"
        finally:
            client.close()
