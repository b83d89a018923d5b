"""Pydantic schemas for manuscript search endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

PLACEHOLDER = "-"
UNTITLED = "Untitled"
NO_RESULTS_MESSAGE = "No manuscripts found. Try adjusting your search criteria."


class Manuscript(BaseModel):
    """Flat manuscript record as stored in the index. Every field is optional."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    ys_id: int | str | None = None
    bib_number: int | str | None = None
    title_turkish: str | None = None
    title_arabic: str | None = None
    auto_title: int | str | None = None
    author: str | None = None
    author_ar: str | None = None
    auto_name: int | str | None = None
    classification_no: str | None = None
    subject: str | None = None
    classification_yazscrape: str | None = None
    library: str | None = None
    collection: str | None = None
    date_full: str | None = None
    date_year: int | None = None
    url: str | None = None
    language: str | None = None
    languages: list[str] | None = None
    physical_description: str | None = None
    shelf_mark: str | None = None
    previous_shelfmark: str | None = None
    type_of_material: str | None = None
    alternative_titles: str | None = None

    @field_validator(
        "title_turkish",
        "title_arabic",
        "author",
        "author_ar",
        "classification_no",
        "subject",
        "classification_yazscrape",
        "library",
        "collection",
        "date_full",
        "url",
        "language",
        "physical_description",
        "shelf_mark",
        "previous_shelfmark",
        "type_of_material",
        "alternative_titles",
        mode="before",
    )
    @classmethod
    def flatten_text(cls, value: Any) -> str | None:
        """Join list values; stringify anything else that is not text."""
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, list):
            parts = [str(item) for item in value if item is not None and item != ""]
            return ", ".join(parts) or None
        if isinstance(value, dict):
            return None
        return str(value)

    @field_validator("date_year", mode="before")
    @classmethod
    def parse_year(cls, value: Any) -> int | None:
        """Keep whole-number years; anything unparseable counts as undated."""
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None

    @field_validator("languages", mode="before")
    @classmethod
    def listify_languages(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        items = value if isinstance(value, list) else [value]
        languages = [str(item) for item in items if item is not None and item != ""]
        return languages or None


def _or_placeholder(value: Any) -> str:
    if value is None or value == "":
        return PLACEHOLDER
    return str(value)


class ManuscriptView(BaseModel):
    """Display form of a result row: placeholders instead of missing values."""

    ys_id: int | str | None
    url: str | None
    title: str
    author_arabic: str | None
    author_turkish: str | None
    alternative_titles: str | None
    library: str
    folios: str
    bibliographic_id: str
    collection: str
    subject: str
    shelf_mark: str
    date: str
    language: str

    @classmethod
    def from_manuscript(cls, record: Manuscript) -> "ManuscriptView":
        if record.title_arabic and record.title_turkish:
            title = f"{record.title_arabic} / {record.title_turkish}"
        else:
            title = record.title_arabic or record.title_turkish or UNTITLED

        return cls(
            ys_id=record.ys_id,
            url=record.url,
            title=title,
            author_arabic=record.author_ar or None,
            author_turkish=record.author or None,
            alternative_titles=record.alternative_titles or None,
            library=_or_placeholder(record.library),
            folios=_or_placeholder(record.physical_description),
            bibliographic_id=_or_placeholder(record.bib_number),
            collection=_or_placeholder(record.collection),
            subject=_or_placeholder(record.subject),
            shelf_mark=_or_placeholder(record.shelf_mark),
            date=_or_placeholder(record.date_full or record.date_year),
            language=", ".join(record.languages) if record.languages else PLACEHOLDER,
        )


class FacetBucketItem(BaseModel):
    """Aggregation bucket."""

    value: str
    count: int


class FacetOption(BaseModel):
    """Selectable facet candidate."""

    label: str
    value: str
    count: int | None = None
    selected: bool = False


class FacetListResponse(BaseModel):
    """Filtered facet candidates."""

    facet: str
    query: str
    total: int
    status: str
    items: list[FacetOption]


class PaginationInfo(BaseModel):
    """Pagination controls for the current page."""

    page: int
    per_page: int
    total_pages: int
    pages: list[int]
    leading_ellipsis: bool
    trailing_ellipsis: bool
    has_previous: bool
    has_next: bool
    summary: str | None = None


class ManuscriptSearchResponse(BaseModel):
    """Search response."""

    total: int
    page: int
    per_page: int
    sort_by: str
    url_query: str
    results: list[Manuscript]
    views: list[ManuscriptView]
    facets: dict[str, list[FacetBucketItem]] = Field(default_factory=dict)
    has_searched: bool = False
    visible_facets: list[str] = Field(default_factory=list)
    pagination: PaginationInfo
    message: str | None = None


class SearchOptionsResponse(BaseModel):
    """Static choices offered by the search form."""

    fields: dict[str, str]
    sort_options: dict[str, str]
    per_page_options: list[int]
    max_search_terms: int
    limits: dict[str, int]
