"""Search service for manuscripts: build, dispatch and map one search."""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from catalogue.common.pagination import page_window, results_summary, total_pages
from catalogue.schemas.manuscripts import Manuscript, PaginationInfo
from catalogue.search.facets import FACET_NAMES, FacetBucket, buckets_from_aggregation
from catalogue.search.manuscripts_query import build_manuscripts_search_query
from catalogue.search.search_client import SearchClient, SearchRequestError, get_search_client
from catalogue.search.state import SearchState
from catalogue.search.url_state import encode

logger = logging.getLogger(__name__)


@dataclass
class SearchOutcome:
    """Mapped reply of one search."""

    rows: list[Manuscript]
    total: int
    aggregations: dict[str, list[FacetBucket]] = field(default_factory=dict)
    url_query: str = ""


def parse_search_response(
    data: dict[str, Any],
) -> tuple[list[Manuscript], int, dict[str, list[FacetBucket]]]:
    """
    Map a raw backend reply to rows, total hit count and facet buckets.

    Only aggregations the reply actually carries are returned.

    Raises:
        SearchRequestError: if the reply does not have the expected shape
    """
    try:
        hits = data["hits"]
        raw_total = hits["total"]
        total = int(raw_total["value"]) if isinstance(raw_total, dict) else int(raw_total)
        rows = [Manuscript.model_validate(hit.get("_source") or {}) for hit in hits["hits"]]

        aggregations: dict[str, list[FacetBucket]] = {}
        for name, aggregation in (data.get("aggregations") or {}).items():
            if name in FACET_NAMES:
                aggregations[name] = buckets_from_aggregation(aggregation)
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        logger.warning("Unexpected search response shape: %s", e)
        raise SearchRequestError("Search failed: unexpected response") from e

    return rows, total, aggregations


def execute_search(state: SearchState, client: SearchClient | None = None) -> SearchOutcome:
    """
    Run the committed search.

    Raises:
        ResultWindowExceededError: if the page lies beyond the result window
            (raised before any request is sent)
        SearchRequestError: on backend failure
    """
    body = build_manuscripts_search_query(state)
    client = client or get_search_client()

    data = client.search(body)
    rows, total, aggregations = parse_search_response(data)

    logger.info(
        "Manuscript search completed",
        extra={
            "total": total,
            "returned": len(rows),
            "page": state.page,
            "per_page": state.per_page,
            "facets": sorted(aggregations),
        },
    )
    return SearchOutcome(rows=rows, total=total, aggregations=aggregations, url_query=encode(state))


def build_pagination_info(page: int, per_page: int, total: int) -> PaginationInfo:
    """Page buttons and result summary for a result page."""
    pages = total_pages(total, per_page)
    start, end = page_window(page, pages)
    return PaginationInfo(
        page=page,
        per_page=per_page,
        total_pages=pages,
        pages=list(range(start, end + 1)),
        leading_ellipsis=start > 1,
        trailing_ellipsis=end < pages,
        has_previous=page > 1,
        has_next=page < pages,
        summary=results_summary(page, per_page, total) if total > 0 else None,
    )
