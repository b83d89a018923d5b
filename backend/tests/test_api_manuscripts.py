"""Tests for the manuscript search, export and facet endpoints."""

from catalogue.search.csv_export import EXPORT_COLUMNS
from tests.helpers.responses import make_aggregation, make_hit, make_response


class TestSearchEndpoint:
    """Test GET /v1/manuscripts/search."""

    def test_browse_everything(self, client, fake_backend):
        fake_backend.reply = make_response([make_hit(ys_id=1, bib_number=10)], total=1)

        response = client.get("/v1/manuscripts/search")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["url_query"] == ""
        assert data["has_searched"] is False
        assert data["visible_facets"] == ["collections", "subjects", "languages"]
        assert data["message"] is None
        assert data["views"][0]["title"] == "Untitled"
        assert data["views"][0]["library"] == "-"
        assert data["pagination"]["summary"] == "Showing 1-1 of 1 results"
        assert fake_backend.bodies[0]["query"] == {"match_all": {}}

    def test_search_with_filters(self, client, fake_backend):
        fake_backend.reply = make_response(
            [make_hit(ys_id=2, title_arabic="ديوان", title_turkish="Divan", languages=["Arapça"])],
            total=60,
            aggregations={"languages": make_aggregation(("Arapça", 60))},
        )

        response = client.get(
            "/v1/manuscripts/search",
            params={"q1": "divan", "f1": "title", "languages": "Arapça", "page": "2", "sort": "date_desc"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["page"] == 2
        assert data["sort_by"] == "date_desc"
        assert data["facets"] == {"languages": [{"value": "Arapça", "count": 60}]}
        assert data["has_searched"] is True
        assert "authors" not in data["visible_facets"]
        assert data["views"][0]["title"] == "ديوان / Divan"
        assert data["views"][0]["language"] == "Arapça"
        body = fake_backend.bodies[0]
        assert body["from"] == 25
        assert body["query"]["bool"]["filter"] == [{"terms": {"languages": ["Arapça"]}}]

    def test_no_results_message(self, client, fake_backend):
        response = client.get("/v1/manuscripts/search", params={"q1": "yok"})

        assert response.status_code == 200
        assert response.json()["message"].startswith("No manuscripts found")

    def test_result_window_exceeded(self, client, fake_backend):
        response = client.get("/v1/manuscripts/search", params={"page": "401"})

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "RESULT_WINDOW_EXCEEDED"
        assert data["details"] == {"offset": 10000, "limit": 10000}
        assert data["request_id"] == response.headers["X-Request-ID"]
        assert fake_backend.requests == []

    def test_backend_failure(self, client, fake_backend):
        fake_backend.status_code = 500

        response = client.get("/v1/manuscripts/search")

        assert response.status_code == 502
        data = response.json()
        assert data["error_code"] == "SEARCH_FAILED"
        assert data["message"] == "Search failed: 500"

    def test_instrumentation_headers(self, client, fake_backend):
        response = client.get("/v1/manuscripts/search", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Search-Calls"] == "1"
        assert "X-Search-Time-ms" in response.headers
        assert "X-Response-Time-ms" in response.headers


class TestExportEndpoint:
    """Test GET /v1/manuscripts/export."""

    def test_export_counts_first_when_total_unknown(self, client, fake_backend):
        fake_backend.reply = make_response([make_hit(ys_id=1), make_hit(ys_id=2)], total=2)

        response = client.get("/v1/manuscripts/export", params={"q1": "kitab", "page": "3"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"].startswith('attachment; filename="manuscripts_')
        lines = response.text.split("\n")
        assert lines[0] == ",".join(EXPORT_COLUMNS)
        assert len(lines) == 3
        count_body, export_body = fake_backend.bodies
        assert count_body["from"] == 0
        assert export_body["from"] == 0
        assert export_body["size"] == 2
        assert "aggs" not in export_body
        assert response.headers["X-Search-Calls"] == "2"

    def test_large_export_needs_confirmation(self, client, fake_backend):
        response = client.get("/v1/manuscripts/export", params={"total": "5000"})

        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "EXPORT_CONFIRMATION_REQUIRED"
        assert data["details"] == {"total": 5000, "limit": 2000}
        assert "2,000" in data["message"]
        assert fake_backend.requests == []

    def test_confirmed_export(self, client, fake_backend):
        fake_backend.reply = make_response([make_hit(ys_id=1)], total=5000)

        response = client.get("/v1/manuscripts/export", params={"total": "5000", "confirm": "true"})

        assert response.status_code == 200
        assert fake_backend.bodies[0]["size"] == 2000

    def test_export_failure(self, client, fake_backend):
        fake_backend.status_code = 503

        response = client.get("/v1/manuscripts/export", params={"total": "10"})

        assert response.status_code == 502
        assert response.json()["error_code"] == "EXPORT_FAILED"

    def test_negative_total_is_rejected(self, client):
        response = client.get("/v1/manuscripts/export", params={"total": "-1"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestOptionsAndFacets:
    """Test GET /v1/manuscripts/options and /v1/facets/{facet}."""

    def test_options(self, client):
        response = client.get("/v1/manuscripts/options")

        assert response.status_code == 200
        data = response.json()
        assert data["per_page_options"] == [25, 50, 100, 200]
        assert data["max_search_terms"] == 3
        assert data["sort_options"]["id"] == "Id (Default)"
        assert data["limits"] == {"max_result_window": 10000, "export_max_rows": 2000}

    def test_facet_candidates_filtered(self, client):
        response = client.get("/v1/facets/collections", params={"q": "sehid", "selected": "Fatih"})

        assert response.status_code == 200
        data = response.json()
        assert [item["value"] for item in data["items"]] == ["Şehid Ali Paşa"]
        assert data["items"][0]["selected"] is False
        assert data["status"] == f"1 items (filtered from {data['total']}) • 1 selected"

    def test_facet_without_static_list(self, client):
        response = client.get("/v1/facets/authors")

        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_unknown_facet(self, client):
        response = client.get("/v1/facets/shelves")

        assert response.status_code == 404
        assert response.json()["error_code"] == "UNKNOWN_FACET"
