"""CSV export of the current search (first 2,000 rows at most)."""

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

from catalogue.core.config import settings
from catalogue.schemas.manuscripts import Manuscript
from catalogue.search.manuscripts_query import build_manuscripts_search_query
from catalogue.search.manuscripts_search_service import parse_search_response
from catalogue.search.search_client import SearchClient, SearchRequestError, get_search_client
from catalogue.search.state import SearchState

logger = logging.getLogger(__name__)

EXPORT_FAILED_MESSAGE = "Failed to download results"

EXPORT_COLUMNS: list[str] = [
    "ys_id",
    "bib_number",
    "title_turkish",
    "title_arabic",
    "auto_title",
    "author",
    "author_ar",
    "auto_name",
    "classification_no",
    "subject",
    "classification_yazscrape",
    "library",
    "collection",
    "date_full",
    "date_year",
    "url",
    "language",
    "languages",
    "physical_description",
    "shelf_mark",
    "previous_shelfmark",
    "type_of_material",
]


def confirmation_message(limit: int) -> str:
    return f"Can only download {limit:,} results. Proceed to download first {limit:,} results?"


class ExportConfirmationRequiredError(Exception):
    """Raised when an export would be truncated and the user has not agreed."""

    def __init__(self, total: int, limit: int):
        super().__init__(confirmation_message(limit))
        self.total = total
        self.limit = limit


class ExportFailedError(Exception):
    """Raised when the export request or its serialization fails."""

    def __init__(self, message: str = EXPORT_FAILED_MESSAGE):
        super().__init__(message)
        self.message = message


@dataclass
class CsvExport:
    filename: str
    content: str
    row_count: int


def format_cell(column: str, value: Any) -> str:
    if value is None:
        return ""
    if column == "languages":
        return ", ".join(str(v) for v in value) if isinstance(value, list) else ""
    return str(value)


def render_csv(records: Iterable[Manuscript]) -> str:
    """
    Header row plus one fully quoted row per record, newline-joined.

    Embedded quotes are doubled; missing values are empty strings.
    """
    output = io.StringIO()
    output.write(",".join(EXPORT_COLUMNS) + "\n")
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(
        [format_cell(column, getattr(record, column)) for column in EXPORT_COLUMNS]
        for record in records
    )
    # Rows are newline-joined, not newline-terminated
    return output.getvalue()[:-1]


def export_filename(today: date | None = None) -> str:
    today = today or datetime.now(UTC).date()
    return f"manuscripts_{today.isoformat()}.csv"


def export_size(total: int) -> int:
    return min(total, settings.EXPORT_MAX_ROWS)


def requires_confirmation(total: int) -> bool:
    return total > settings.EXPORT_MAX_ROWS


def export_results(
    state: SearchState,
    total: int,
    client: SearchClient | None = None,
    *,
    confirmed: bool = False,
    today: date | None = None,
) -> CsvExport:
    """
    Fetch up to EXPORT_MAX_ROWS rows of the committed search and render them.

    Raises:
        ExportConfirmationRequiredError: if `total` exceeds the export cap and
            the caller has not confirmed (no request is sent)
        ExportFailedError: on backend or response failure
    """
    if requires_confirmation(total) and not confirmed:
        raise ExportConfirmationRequiredError(total=total, limit=settings.EXPORT_MAX_ROWS)

    body = build_manuscripts_search_query(state, size=export_size(total), offset=0, include_aggs=False)
    client = client or get_search_client()

    try:
        data = client.search(body)
        rows, _, _ = parse_search_response(data)
    except SearchRequestError as e:
        logger.error("CSV export failed: %s", e)
        raise ExportFailedError() from e

    logger.info("CSV export rendered", extra={"rows": len(rows), "total": total})
    return CsvExport(filename=export_filename(today), content=render_csv(rows), row_count=len(rows))
