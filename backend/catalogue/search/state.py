"""Search state for the manuscript catalogue.

A `SearchState` is everything needed to rebuild one search: up to three
field-scoped terms, the facet and range filters, sort key and pagination.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

MAX_SEARCH_TERMS = 3

FIELD_ALL = "all"
FIELD_TITLE = "title"
FIELD_AUTHOR = "author"
FIELD_OPTIONS: dict[str, str] = {
    FIELD_ALL: "All Fields",
    FIELD_TITLE: "Title",
    FIELD_AUTHOR: "Author",
}

DEFAULT_SORT = "id"
SORT_OPTIONS: dict[str, str] = {
    "id": "Id (Default)",
    "date_asc": "Date (asc)",
    "date_desc": "Date (desc)",
    "title_tr_asc": "Title (tr) A-Z",
    "title_tr_desc": "Title (tr) Z-A",
    "title_ar_asc": "Title (ar) A-Z",
    "title_ar_desc": "Title (ar) Z-A",
    "author_tr_asc": "Author (tr) A-Z",
    "author_tr_desc": "Author (tr) Z-A",
    "author_ar_asc": "Author (ar) A-Z",
    "author_ar_desc": "Author (ar) Z-A",
}

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 25
PER_PAGE_OPTIONS: tuple[int, ...] = (25, 50, 100, 200)


@dataclass(frozen=True)
class SearchTerm:
    """One search box: text plus the field scope it searches."""

    query: str = ""
    field: str = FIELD_ALL

    @property
    def is_empty(self) -> bool:
        return not self.query


def default_terms() -> list[SearchTerm]:
    return [SearchTerm()]


@dataclass
class FilterState:
    """Facet, shelf-mark and date filters."""

    library: str = ""
    collection: list[str] = field(default_factory=list)
    subjects: list[str] = field(default_factory=list)
    authors: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    shelf_mark: str = ""
    date_from: int | None = None
    date_to: int | None = None
    include_undated: bool = True

    def copy(self) -> FilterState:
        return replace(
            self,
            collection=list(self.collection),
            subjects=list(self.subjects),
            authors=list(self.authors),
            languages=list(self.languages),
        )

    def is_default(self) -> bool:
        return self == FilterState()


@dataclass
class SearchState:
    """Terms, filters, sort and pagination of one (committed) search."""

    queries: list[SearchTerm] = field(default_factory=default_terms)
    filters: FilterState = field(default_factory=FilterState)
    sort_by: str = DEFAULT_SORT
    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE

    def copy(self) -> SearchState:
        return replace(self, queries=list(self.queries), filters=self.filters.copy())

    @property
    def active_terms(self) -> list[SearchTerm]:
        return [term for term in self.queries if not term.is_empty]
