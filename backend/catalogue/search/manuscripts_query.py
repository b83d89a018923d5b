"""Query builder for manuscript search."""

from typing import Any

from catalogue.core.config import settings
from catalogue.search.state import (
    FIELD_ALL,
    FIELD_AUTHOR,
    FIELD_TITLE,
    FilterState,
    SearchState,
    SearchTerm,
)

RESULT_WINDOW_MESSAGE = "Cannot access results beyond 10,000. Please refine your search criteria."

# Analyzed fields searched by query_string, per scope
ALL_TEXT_FIELDS: list[str] = [
    "title_turkish",
    "title_arabic",
    "author",
    "author_ar",
    "library",
    "collection",
    "physical_description",
    "shelf_mark",
    "previous_shelfmark",
    "alternative_titles",
    "bib_number.text",
]
SCOPED_TEXT_FIELDS: dict[str, list[str]] = {
    FIELD_TITLE: ["title_turkish", "title_arabic", "alternative_titles"],
    FIELD_AUTHOR: ["author", "author_ar"],
}

# Untokenized fields matched by wildcard clauses, per scope
ALL_WILDCARD_FIELDS: list[str] = [
    "title_turkish.keyword",
    "title_arabic.keyword",
    "alternative_titles.keyword",
    "author.keyword",
    "author_ar.keyword",
    "library",
    "collection",
    "physical_description",
    "shelf_mark",
    "previous_shelfmark",
]
SCOPED_WILDCARD_FIELDS: dict[str, list[str]] = {
    FIELD_TITLE: ["title_turkish.keyword", "title_arabic.keyword", "alternative_titles.keyword"],
    FIELD_AUTHOR: ["author.keyword", "author_ar.keyword"],
}

# sort key -> (field, order)
SORT_FIELDS: dict[str, tuple[str, str]] = {
    "date_asc": ("date_year", "asc"),
    "date_desc": ("date_year", "desc"),
    "title_tr_asc": ("title_turkish.keyword", "asc"),
    "title_tr_desc": ("title_turkish.keyword", "desc"),
    "title_ar_asc": ("title_arabic.keyword", "asc"),
    "title_ar_desc": ("title_arabic.keyword", "desc"),
    "author_tr_asc": ("author.keyword", "asc"),
    "author_tr_desc": ("author.keyword", "desc"),
    "author_ar_asc": ("author_ar.keyword", "asc"),
    "author_ar_desc": ("author_ar.keyword", "desc"),
}
DEFAULT_SORT_CLAUSE: list[dict[str, Any]] = [{"bib_number": {"order": "asc"}}]

# aggregation name -> (field, bucket cap)
FACET_AGGREGATIONS: dict[str, tuple[str, int]] = {
    "collections": ("collection", 300),
    "subjects": ("subject.keyword", 300),
    "authors": ("author.raw", 300),
    "languages": ("languages", 100),
}


class ResultWindowExceededError(Exception):
    """Raised when a page starts at or beyond the backend's result window."""

    def __init__(self, offset: int, limit: int):
        super().__init__(RESULT_WINDOW_MESSAGE)
        self.offset = offset
        self.limit = limit


def has_wildcard(text: str) -> bool:
    return "*" in text or "?" in text


def text_fields_for(field: str) -> list[str]:
    """Analyzed fields searched for a term scope."""
    if field == FIELD_ALL:
        return list(ALL_TEXT_FIELDS)
    return list(SCOPED_TEXT_FIELDS.get(field, [field]))


def wildcard_fields_for(field: str) -> list[str]:
    """Keyword fields matched by the wildcard branch for a term scope."""
    if field == FIELD_ALL:
        return list(ALL_WILDCARD_FIELDS)
    return list(SCOPED_WILDCARD_FIELDS.get(field, [field]))


def build_term_clause(term: SearchTerm) -> dict[str, Any]:
    """
    Build the clause for one search box.

    Plain text runs a query_string over the scope's analyzed fields with all
    tokens required. Text containing `*` or `?` additionally matches the raw
    lower-cased value of each keyword field; either branch may match.
    """
    query_string = {
        "query_string": {
            "query": term.query,
            "fields": text_fields_for(term.field),
            "default_operator": "AND",
        }
    }
    if not has_wildcard(term.query):
        return query_string

    pattern = term.query.lower()
    should: list[dict[str, Any]] = [
        {"wildcard": {field: {"value": pattern}}} for field in wildcard_fields_for(term.field)
    ]
    should.append(query_string)
    return {"bool": {"should": should, "minimum_should_match": 1}}


def build_shelf_mark_query(shelf_mark: str) -> dict[str, Any] | None:
    """Shelf mark as a wildcard; plain text means "contains"."""
    if not shelf_mark:
        return None
    if has_wildcard(shelf_mark):
        return {"wildcard": {"shelf_mark": shelf_mark}}
    return {"wildcard": {"shelf_mark": f"*{shelf_mark}*"}}


def build_date_filter(
    date_from: int | None, date_to: int | None, include_undated: bool
) -> dict[str, Any] | None:
    """Year range on date_year, optionally letting undated records through."""
    if date_from is None and date_to is None:
        if include_undated:
            return None
        return {"exists": {"field": "date_year"}}

    bounds: dict[str, int] = {}
    if date_from is not None:
        bounds["gte"] = date_from
    if date_to is not None:
        bounds["lte"] = date_to
    range_clause = {"range": {"date_year": bounds}}

    if not include_undated:
        return range_clause
    return {
        "bool": {
            "should": [
                range_clause,
                {"bool": {"must_not": {"exists": {"field": "date_year"}}}},
            ]
        }
    }


def build_filter_clauses(filters: FilterState) -> list[dict[str, Any]]:
    """Facet and date filters (non-scoring)."""
    filter_clauses: list[dict[str, Any]] = []

    if filters.library:
        filter_clauses.append({"term": {"library": filters.library}})
    if filters.collection:
        filter_clauses.append({"terms": {"collection": list(filters.collection)}})
    if filters.subjects:
        filter_clauses.append({"terms": {"subject.keyword": list(filters.subjects)}})
    if filters.authors:
        filter_clauses.append({"terms": {"author.keyword": list(filters.authors)}})
    if filters.languages:
        filter_clauses.append({"terms": {"languages": list(filters.languages)}})

    date_filter = build_date_filter(filters.date_from, filters.date_to, filters.include_undated)
    if date_filter is not None:
        filter_clauses.append(date_filter)

    return filter_clauses


def get_sort_clause(sort_by: str) -> list[dict[str, Any]]:
    """Sort clause for a sort key; unknown keys fall back to bib_number asc."""
    if sort_by not in SORT_FIELDS:
        return [dict(clause) for clause in DEFAULT_SORT_CLAUSE]
    field, order = SORT_FIELDS[sort_by]
    missing = "_last" if order == "asc" else "_first"
    return [{field: {"order": order, "missing": missing}}]


def build_aggregations() -> dict[str, Any]:
    return {
        name: {"terms": {"field": field, "size": size, "order": {"_count": "desc"}}}
        for name, (field, size) in FACET_AGGREGATIONS.items()
    }


def resolve_result_window(page: int, per_page: int, limit: int | None = None) -> tuple[int, int]:
    """
    Translate a page into (from, size) inside the backend's result window.

    Raises:
        ResultWindowExceededError: if the page starts at or beyond the window.
    """
    limit = settings.MAX_RESULT_WINDOW if limit is None else limit
    offset = (page - 1) * per_page
    if offset >= limit:
        raise ResultWindowExceededError(offset=offset, limit=limit)
    return offset, min(per_page, limit - offset)


def build_manuscripts_search_query(
    state: SearchState,
    *,
    size: int | None = None,
    offset: int | None = None,
    include_aggs: bool = True,
) -> dict[str, Any]:
    """
    Build the OpenSearch query document for a committed search state.

    Args:
        state: Committed search state
        size: Explicit window size (export); defaults to the state's page
        offset: Explicit window start (export); defaults to the state's page
        include_aggs: Request facet aggregations when anything is searched

    Returns:
        OpenSearch query DSL dictionary.

    Raises:
        ResultWindowExceededError: if the state's page lies beyond the result window.
    """
    must_clauses: list[dict[str, Any]] = [build_term_clause(term) for term in state.active_terms]

    shelf_mark_query = build_shelf_mark_query(state.filters.shelf_mark)
    if shelf_mark_query is not None:
        must_clauses.append(shelf_mark_query)

    filter_clauses = build_filter_clauses(state.filters)

    if size is None or offset is None:
        page_offset, page_size = resolve_result_window(state.page, state.per_page)
        offset = page_offset if offset is None else offset
        size = page_size if size is None else size

    query: dict[str, Any] = {
        "from": offset,
        "size": size,
        "track_total_hits": True,
        "sort": get_sort_clause(state.sort_by),
    }

    if must_clauses or filter_clauses:
        bool_query: dict[str, Any] = {}
        if must_clauses:
            bool_query["must"] = must_clauses
        if filter_clauses:
            bool_query["filter"] = filter_clauses
        query["query"] = {"bool": bool_query}
        if include_aggs:
            query["aggs"] = build_aggregations()
    else:
        query["query"] = {"match_all": {}}

    return query
