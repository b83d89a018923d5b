"""Catalogue session: pending edits, the committed search and its results.

The session is the single state object behind one search page. Edits land in
`pending`; only `submit_search` and `apply_filters` move them into
`committed`, and only `committed` is ever searched or written to the URL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from catalogue.schemas.manuscripts import Manuscript, ManuscriptView
from catalogue.search.csv_export import (
    CsvExport,
    ExportConfirmationRequiredError,
    ExportFailedError,
    export_results,
)
from catalogue.search.facets import FacetSources
from catalogue.search.manuscripts_query import ResultWindowExceededError
from catalogue.search.manuscripts_search_service import SearchOutcome, execute_search
from catalogue.search.search_client import SearchClient, SearchRequestError
from catalogue.search.state import (
    DEFAULT_PAGE,
    FIELD_ALL,
    MAX_SEARCH_TERMS,
    PER_PAGE_OPTIONS,
    FilterState,
    SearchState,
    SearchTerm,
    default_terms,
)
from catalogue.search.url_state import decode, encode

logger = logging.getLogger(__name__)

# Stand-in row shown while a search is outstanding
SKELETON_ROW = None


@dataclass
class PendingState:
    """Search boxes and filters as currently edited, not yet applied."""

    queries: list[SearchTerm] = field(default_factory=default_terms)
    filters: FilterState = field(default_factory=FilterState)


class CatalogueSession:
    """State store for one catalogue page."""

    def __init__(self, committed: SearchState | None = None, facets: FacetSources | None = None):
        self.committed = committed or SearchState()
        self.pending = PendingState(
            queries=list(self.committed.queries), filters=self.committed.filters.copy()
        )
        self.facets = facets or FacetSources()

        self.results: list[Manuscript] = []
        self.total_results = 0
        self.loading = False
        self.error: str | None = None
        self.failure: Exception | None = None
        self.url_query = encode(self.committed)
        self.export_confirmation_pending = False
        self._generation = 0

    @classmethod
    def from_url(cls, query_string: str, facets: FacetSources | None = None) -> CatalogueSession:
        return cls(committed=decode(query_string), facets=facets)

    # ------------------------------------------------------------------
    # Pending edits
    # ------------------------------------------------------------------

    def add_term(self) -> bool:
        if len(self.pending.queries) >= MAX_SEARCH_TERMS:
            return False
        self.pending.queries.append(SearchTerm())
        return True

    def remove_term(self, index: int) -> bool:
        """Remove an extra search box; the first box always stays."""
        if index <= 0 or index >= len(self.pending.queries):
            return False
        del self.pending.queries[index]
        return True

    def set_term(self, index: int, query: str | None = None, field: str | None = None) -> None:
        current = self.pending.queries[index]
        self.pending.queries[index] = SearchTerm(
            query=current.query if query is None else query,
            field=current.field if field is None else field,
        )

    def has_pending_filters(self) -> bool:
        return self.pending.filters != self.committed.filters

    def has_active_filters(self) -> bool:
        return not self.committed.filters.is_default()

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def submit_search(self) -> None:
        """Commit the pending search boxes, dropping empty ones."""
        terms = [term for term in self.pending.queries if term.query.strip()]
        if not terms:
            terms = [SearchTerm(query="", field=FIELD_ALL)]
        self.committed.queries = terms
        self.committed.page = DEFAULT_PAGE

    def apply_filters(self) -> None:
        self.committed.filters = self.pending.filters.copy()
        self.committed.page = DEFAULT_PAGE

    def clear_filters(self) -> None:
        """Reset pending and committed filters and forget aggregation buckets."""
        self.pending.filters = FilterState()
        self.committed.filters = FilterState()
        self.committed.page = DEFAULT_PAGE
        self.facets.reset()

    def clear_search(self) -> None:
        """Reset every search box to a single empty one; filters are kept."""
        self.pending.queries = default_terms()
        self.committed.queries = default_terms()
        self.committed.page = DEFAULT_PAGE

    def set_sort(self, sort_by: str) -> None:
        self.committed.sort_by = sort_by

    def set_page(self, page: int) -> None:
        self.committed.page = max(page, DEFAULT_PAGE)

    def set_per_page(self, per_page: int) -> None:
        if per_page not in PER_PAGE_OPTIONS:
            raise ValueError(f"per_page must be one of {PER_PAGE_OPTIONS}")
        self.committed.per_page = per_page
        self.committed.page = DEFAULT_PAGE

    # ------------------------------------------------------------------
    # Searching
    # ------------------------------------------------------------------

    def begin_search(self) -> int:
        """Mark a search as outstanding and return its generation tag."""
        self._generation += 1
        self.loading = True
        self.error = None
        self.failure = None
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def complete_search(self, generation: int, outcome: SearchOutcome) -> bool:
        """Apply a search reply unless a newer search has started since."""
        if not self.is_current(generation):
            logger.debug("Discarding stale search response (generation %d)", generation)
            return False

        self.results = outcome.rows
        self.total_results = outcome.total
        self.facets.apply_aggregations(outcome.aggregations)
        self.url_query = outcome.url_query
        self.loading = False
        return True

    def fail_search(self, generation: int, failure: Exception) -> bool:
        if not self.is_current(generation):
            logger.debug("Discarding stale search failure (generation %d)", generation)
            return False

        self.results = []
        self.error = str(failure)
        self.failure = failure
        self.loading = False
        return True

    def run_search(self, client: SearchClient | None = None) -> bool:
        """Execute the committed search. Returns True on success."""
        generation = self.begin_search()
        try:
            outcome = execute_search(self.committed.copy(), client)
        except (ResultWindowExceededError, SearchRequestError) as e:
            self.fail_search(generation, e)
            return False
        return self.complete_search(generation, outcome)

    def display_rows(self) -> list[ManuscriptView | None]:
        """Result views, or `per_page` skeleton rows while a search is outstanding."""
        if self.loading:
            return [SKELETON_ROW] * self.committed.per_page
        return [ManuscriptView.from_manuscript(row) for row in self.results]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_csv(
        self,
        client: SearchClient | None = None,
        *,
        confirmed: bool = False,
        today: date | None = None,
    ) -> CsvExport | None:
        """
        Export the committed search as CSV.

        Returns None when confirmation is needed (`export_confirmation_pending`
        is set) or the export failed (`error` is set).
        """
        try:
            export = export_results(
                self.committed.copy(), self.total_results, client, confirmed=confirmed, today=today
            )
        except ExportConfirmationRequiredError:
            self.export_confirmation_pending = True
            return None
        except ExportFailedError as e:
            self.export_confirmation_pending = False
            self.error = e.message
            return None

        self.export_confirmation_pending = False
        return export

    def cancel_export(self) -> None:
        self.export_confirmation_pending = False
