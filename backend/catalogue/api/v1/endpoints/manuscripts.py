"""Manuscript search, CSV export and search-form option endpoints.

Search and export read the same query-string contract as the shareable
catalogue URL (q1/f1..q3/f3, collection, subjects, authors, languages,
library, shelf, from, to, undated, sort, page, per).
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from catalogue.core.app_exceptions import AppError, ErrorCode
from catalogue.core.config import settings
from catalogue.schemas.manuscripts import (
    NO_RESULTS_MESSAGE,
    FacetBucketItem,
    ManuscriptSearchResponse,
    ManuscriptView,
    SearchOptionsResponse,
)
from catalogue.search.csv_export import EXPORT_FAILED_MESSAGE, confirmation_message
from catalogue.search.facets import FACET_NAMES
from catalogue.search.manuscripts_query import ResultWindowExceededError
from catalogue.search.manuscripts_search_service import build_pagination_info
from catalogue.search.search_client import SearchClient, get_search_client
from catalogue.search.session import CatalogueSession
from catalogue.search.state import FIELD_OPTIONS, MAX_SEARCH_TERMS, PER_PAGE_OPTIONS, SORT_OPTIONS

logger = logging.getLogger(__name__)

router = APIRouter()


def _raise_search_failure(session: CatalogueSession) -> None:
    if isinstance(session.failure, ResultWindowExceededError):
        raise AppError(
            ErrorCode.RESULT_WINDOW_EXCEEDED,
            message=session.error or "",
            details={"offset": session.failure.offset, "limit": session.failure.limit},
        )
    raise AppError(ErrorCode.SEARCH_FAILED, message=session.error or "Search failed")


@router.get("/search", response_model=ManuscriptSearchResponse)
def search_manuscripts(
    request: Request,
    client: SearchClient = Depends(get_search_client),
) -> ManuscriptSearchResponse:
    """
    Run the search encoded in the query string.

    The response carries `url_query`, the canonical query string of the search
    that was run, for the browser to push into its history.
    """
    session = CatalogueSession.from_url(request.url.query)
    if not session.run_search(client):
        _raise_search_failure(session)

    committed = session.committed
    return ManuscriptSearchResponse(
        total=session.total_results,
        page=committed.page,
        per_page=committed.per_page,
        sort_by=committed.sort_by,
        url_query=session.url_query,
        results=session.results,
        views=[ManuscriptView.from_manuscript(row) for row in session.results],
        facets={
            facet: [FacetBucketItem(value=b.value, count=b.count) for b in buckets]
            for facet, buckets in session.facets.aggregations.items()
        },
        has_searched=session.facets.has_searched,
        visible_facets=[facet for facet in FACET_NAMES if session.facets.is_visible(facet)],
        pagination=build_pagination_info(committed.page, committed.per_page, session.total_results),
        message=NO_RESULTS_MESSAGE if not session.results else None,
    )


@router.get("/export")
def export_manuscripts(
    request: Request,
    confirm: bool = Query(False, description="Accept truncation to the export cap"),
    total: int | None = Query(None, ge=0, description="Known total hit count, if any"),
    client: SearchClient = Depends(get_search_client),
) -> Response:
    """Download the search encoded in the query string as CSV."""
    session = CatalogueSession.from_url(request.url.query)

    if total is None:
        # Count first; the export window depends on the total
        session.committed.page = 1
        if not session.run_search(client):
            _raise_search_failure(session)
    else:
        session.total_results = total

    export = session.export_csv(client, confirmed=confirm)
    if session.export_confirmation_pending:
        logger.info("Export awaiting confirmation", extra={"total": session.total_results})
        raise AppError(
            ErrorCode.EXPORT_CONFIRMATION_REQUIRED,
            message=confirmation_message(settings.EXPORT_MAX_ROWS),
            details={"total": session.total_results, "limit": settings.EXPORT_MAX_ROWS},
        )
    if export is None:
        raise AppError(ErrorCode.EXPORT_FAILED, message=session.error or EXPORT_FAILED_MESSAGE)

    return Response(
        content=export.content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("/options", response_model=SearchOptionsResponse)
async def get_search_options() -> SearchOptionsResponse:
    """Field scopes, sort keys and page sizes offered by the search form."""
    return SearchOptionsResponse(
        fields=FIELD_OPTIONS,
        sort_options=SORT_OPTIONS,
        per_page_options=list(PER_PAGE_OPTIONS),
        max_search_terms=MAX_SEARCH_TERMS,
        limits={
            "max_result_window": settings.MAX_RESULT_WINDOW,
            "export_max_rows": settings.EXPORT_MAX_ROWS,
        },
    )

