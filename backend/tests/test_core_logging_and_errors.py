"""Tests for settings, log formatting and the error envelope."""

import json
import logging

import pytest
from pydantic import ValidationError

from catalogue.common.request_context import request_id_var
from catalogue.core.app_exceptions import AppError, ErrorCode
from catalogue.core.config import Settings
from catalogue.core.logging import CatalogueJsonFormatter, RequestIdFilter, build_formatter


def _record(message: str = "Search failed: %s", *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("catalogue.search", logging.WARNING, __file__, 10, message, args or (500,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    """Test the request-id filter and JSON formatter."""

    def test_filter_stamps_current_request_id(self):
        token = request_id_var.set("req-42")
        try:
            record = _record()
            assert RequestIdFilter().filter(record) is True
        finally:
            request_id_var.reset(token)

        assert record.request_id == "req-42"

    def test_filter_outside_request(self):
        record = _record()
        RequestIdFilter().filter(record)
        assert record.request_id == "-"

    def test_filter_keeps_explicit_request_id(self):
        record = _record(request_id="given")
        RequestIdFilter().filter(record)
        assert record.request_id == "given"

    def test_json_line(self):
        record = _record(total=12)
        RequestIdFilter().filter(record)

        line = json.loads(build_formatter("json").format(record))

        assert line["event"] == "Search failed: 500"
        assert line["level"] == "WARNING"
        assert line["logger"] == "catalogue.search"
        assert line["total"] == 12
        assert line["request_id"] == "-"
        assert "message" not in line

    def test_text_format(self):
        record = _record()
        RequestIdFilter().filter(record)

        formatter = build_formatter("text")

        assert not isinstance(formatter, CatalogueJsonFormatter)
        assert formatter.format(record).endswith("[-] catalogue.search: Search failed: 500")


class TestAppError:
    """Test error codes and their HTTP status."""

    def test_status_follows_code(self):
        assert AppError(ErrorCode.SEARCH_FAILED, "Search failed: 500").status_code == 502
        assert AppError(ErrorCode.UNKNOWN_FACET, "Unknown facet: x").status_code == 404
        assert AppError(ErrorCode.EXPORT_CONFIRMATION_REQUIRED, "confirm").status_code == 409

    def test_explicit_status_wins(self):
        error = AppError(ErrorCode.HTTP_ERROR, "teapot", status_code=418)

        assert error.status_code == 418
        assert error.code == "HTTP_ERROR"
        assert error.detail == {"code": "HTTP_ERROR", "message": "teapot", "details": None}


class TestErrorEnvelope:
    """Test handler output through the app."""

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/v1/nothing-here")

        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "HTTP_ERROR"
        assert data["message"] == "Not Found"
        assert data["request_id"] == response.headers["X-Request-ID"]

    def test_validation_details(self, client):
        response = client.get("/v1/facets/collections", params={"q": "x" * 201})

        assert response.status_code == 422
        details = response.json()["details"]
        assert details[0]["field"] == "query.q"


class TestSettings:
    """Test settings normalization and the production credential check."""

    def test_cors_origins_from_comma_separated_string(self):
        settings = Settings(CORS_ORIGINS="https://a.example, https://b.example,")

        assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]

    def test_search_endpoint_joins_url_and_index(self):
        settings = Settings(SEARCH_API_URL="https://search.example/os/", SEARCH_API_INDEX="yaz-scrape")

        assert settings.search_endpoint == "https://search.example/os/yaz-scrape/_search"

    def test_prod_requires_credentials(self):
        with pytest.raises(ValidationError):
            Settings(ENV="prod", SEARCH_API_USER="", SEARCH_API_PASS="")

    def test_prod_with_credentials(self):
        settings = Settings(ENV="prod", SEARCH_API_USER="reader", SEARCH_API_PASS="secret")

        assert settings.ENV == "prod"
