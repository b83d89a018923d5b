"""Query-string codec for shareable catalogue searches.

The query string is the only persisted state of a search. `encode` omits every
value that is at its default so that the browse-everything state is the empty
string, and `decode` never raises on hand-edited or truncated URLs.
"""

from collections.abc import Mapping
from urllib.parse import parse_qsl, urlencode

from catalogue.search.state import (
    DEFAULT_PAGE,
    DEFAULT_PER_PAGE,
    DEFAULT_SORT,
    FIELD_ALL,
    MAX_SEARCH_TERMS,
    PER_PAGE_OPTIONS,
    FilterState,
    SearchState,
    SearchTerm,
)

# Comma-joined list parameters and the FilterState attribute each one fills
LIST_PARAMS: dict[str, str] = {
    "collection": "collection",
    "subjects": "subjects",
    "authors": "authors",
    "languages": "languages",
}


def _as_params(source: str | Mapping[str, str]) -> dict[str, str]:
    """
    Normalize a raw query string or mapping to first-value-wins params.

    Multi-dicts such as Starlette's `QueryParams` expose `getlist`; their
    plain lookup returns the last value of a repeated key.
    """
    if isinstance(source, str):
        params: dict[str, str] = {}
        for key, value in parse_qsl(source.lstrip("?"), keep_blank_values=True):
            params.setdefault(key, value)
        return params
    if hasattr(source, "getlist"):
        return {key: source.getlist(key)[0] for key in source}
    return {key: source[key] for key in source}


def _parse_int(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _parse_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [item for item in raw.split(",") if item]


def _decode_terms(params: Mapping[str, str]) -> list[SearchTerm]:
    terms: list[SearchTerm] = []
    for i in range(1, MAX_SEARCH_TERMS + 1):
        query = params.get(f"q{i}")
        if query:
            terms.append(SearchTerm(query=query, field=params.get(f"f{i}") or FIELD_ALL))

    # Legacy single-box links: ?q=...&field=...
    if not terms and params.get("q"):
        terms.append(SearchTerm(query=params["q"], field=params.get("field") or FIELD_ALL))

    if not terms:
        terms.append(SearchTerm())
    return terms


def decode(source: str | Mapping[str, str]) -> SearchState:
    """Rebuild a SearchState from URL query parameters."""
    params = _as_params(source)

    filters = FilterState(
        library=params.get("library") or "",
        shelf_mark=params.get("shelf") or "",
        date_from=_parse_int(params.get("from")),
        date_to=_parse_int(params.get("to")),
        include_undated=params.get("undated") != "false",
    )
    for param, attr in LIST_PARAMS.items():
        setattr(filters, attr, _parse_list(params.get(param)))

    page = _parse_int(params.get("page"))
    if page is None or page < 1:
        page = DEFAULT_PAGE

    per_page = _parse_int(params.get("per"))
    if per_page not in PER_PAGE_OPTIONS:
        per_page = DEFAULT_PER_PAGE

    return SearchState(
        queries=_decode_terms(params),
        filters=filters,
        sort_by=params.get("sort") or DEFAULT_SORT,
        page=page,
        per_page=per_page,
    )


def encode(state: SearchState) -> str:
    """Serialize a SearchState to a minimal query string (no leading '?')."""
    params: list[tuple[str, str]] = []

    for i, term in enumerate(state.queries[:MAX_SEARCH_TERMS], start=1):
        if term.query:
            params.append((f"q{i}", term.query))
            if term.field != FIELD_ALL:
                params.append((f"f{i}", term.field))

    filters = state.filters
    if filters.library:
        params.append(("library", filters.library))
    for param, attr in LIST_PARAMS.items():
        values = getattr(filters, attr)
        if values:
            params.append((param, ",".join(values)))
    if filters.shelf_mark:
        params.append(("shelf", filters.shelf_mark))
    if filters.date_from is not None:
        params.append(("from", str(filters.date_from)))
    if filters.date_to is not None:
        params.append(("to", str(filters.date_to)))
    if not filters.include_undated:
        params.append(("undated", "false"))

    if state.sort_by != DEFAULT_SORT:
        params.append(("sort", state.sort_by))
    if state.page > DEFAULT_PAGE:
        params.append(("page", str(state.page)))
    if state.per_page != DEFAULT_PER_PAGE:
        params.append(("per", str(state.per_page)))

    return urlencode(params)
