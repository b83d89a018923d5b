"""Facet candidate sources and the searchable multi-select picker.

Before any search has run, collection/subject/language candidates come from
static reference lists shipped with the app. Once a search returns
aggregation buckets those replace the static lists until filters are cleared.
"""

from __future__ import annotations

import bisect
import logging
import time
import unicodedata
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from catalogue.core.config import settings

logger = logging.getLogger(__name__)

FACET_COLLECTIONS = "collections"
FACET_SUBJECTS = "subjects"
FACET_AUTHORS = "authors"
FACET_LANGUAGES = "languages"
FACET_NAMES: tuple[str, ...] = (FACET_COLLECTIONS, FACET_SUBJECTS, FACET_AUTHORS, FACET_LANGUAGES)

# Facets with a static pre-search candidate list; authors only come from aggregations
REFERENCE_FILES: dict[str, str] = {
    FACET_COLLECTIONS: "collections.txt",
    FACET_SUBJECTS: "subjects.txt",
    FACET_LANGUAGES: "languages.txt",
}

FILTER_DEBOUNCE_SECONDS = 0.15

# Turkish letters that do not decompose under NFD
_TURKISH_FOLD = str.maketrans({"ı": "i", "ğ": "g", "ü": "u", "ş": "s", "ö": "o", "ç": "c"})


def normalize(text: str) -> str:
    """Case-, diacritic- and Turkish-insensitive form used for matching."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.translate(_TURKISH_FOLD)


@dataclass(frozen=True)
class FacetItem:
    """One selectable facet value."""

    label: str
    value: str
    count: int | None = None

    @property
    def key(self) -> str:
        return f"{self.value}-{self.label}"


@dataclass(frozen=True)
class FacetBucket:
    """Aggregation bucket: how many hits carry a facet value."""

    value: str
    count: int


def parse_reference_list(text: str) -> list[FacetItem]:
    """Parse a newline-delimited reference list into sorted items."""
    lines = {line.strip() for line in text.splitlines()}
    items = [FacetItem(label=line, value=line) for line in lines if line]
    return sorted(items, key=lambda item: (normalize(item.label), item.label))


@lru_cache(maxsize=None)
def _read_reference_list(path: str) -> tuple[FacetItem, ...]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to load facet reference list %s: %s", path, e)
        return ()
    return tuple(parse_reference_list(text))


def load_reference_list(facet: str) -> list[FacetItem]:
    """Static candidates for a facet, read once per process."""
    filename = REFERENCE_FILES.get(facet)
    if filename is None:
        return []
    return list(_read_reference_list(str(Path(settings.FACET_LISTS_DIR) / filename)))


def clear_reference_cache() -> None:
    _read_reference_list.cache_clear()


def items_from_buckets(buckets: Iterable[FacetBucket]) -> list[FacetItem]:
    """Aggregation buckets as items labelled with their counts."""
    return [
        FacetItem(label=f"{bucket.value} ({bucket.count:,})", value=bucket.value, count=bucket.count)
        for bucket in buckets
    ]


def buckets_from_aggregation(aggregation: dict) -> list[FacetBucket]:
    return [
        FacetBucket(value=str(bucket["key"]), count=int(bucket["doc_count"]))
        for bucket in aggregation.get("buckets", [])
    ]


class FacetSources:
    """Per-facet candidate source: static lists until a search yields buckets."""

    def __init__(self, loader: Callable[[str], list[FacetItem]] = load_reference_list):
        self._loader = loader
        self.has_searched = False
        self.aggregations: dict[str, list[FacetBucket]] = {}

    def apply_aggregations(self, aggregations: dict[str, list[FacetBucket]]) -> None:
        """Replace the candidates of every facet present in `aggregations`."""
        if not aggregations:
            return
        self.has_searched = True
        for facet, buckets in aggregations.items():
            self.aggregations[facet] = list(buckets)

    def reset(self) -> None:
        """Drop aggregation-derived candidates; facets revert to static lists."""
        self.has_searched = False
        self.aggregations = {}

    def items(self, facet: str) -> list[FacetItem]:
        if facet in self.aggregations:
            return items_from_buckets(self.aggregations[facet])
        if self.has_searched:
            return []
        return self._loader(facet)

    def is_visible(self, facet: str) -> bool:
        """Authors are only offered once a search has produced author buckets."""
        if facet == FACET_AUTHORS:
            return self.has_searched and facet in self.aggregations
        return True


def filter_items(items: Sequence[FacetItem], query: str) -> list[FacetItem]:
    """Items whose label or value contains the normalized query."""
    needle = normalize(query)
    if not needle:
        return list(items)
    return [
        item
        for item in items
        if needle in normalize(item.label) or needle in normalize(item.value)
    ]


class Debouncer:
    """Holds back a value until it has been stable for `delay` seconds."""

    def __init__(self, delay: float = FILTER_DEBOUNCE_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.delay = delay
        self._clock = clock
        self._settled = ""
        self._pending = ""
        self._changed_at: float | None = None

    def set(self, value: str) -> None:
        self._pending = value
        self._changed_at = self._clock()

    @property
    def value(self) -> str:
        if self._changed_at is not None and self._clock() - self._changed_at >= self.delay:
            self._settled = self._pending
            self._changed_at = None
        return self._settled


DEFAULT_ROW_HEIGHT = 36
LIST_MAX_HEIGHT = 240
OVERSCAN_COUNT = 2


class WindowedList:
    """
    Viewport-windowed list with variable, measured row heights.

    Rows start at DEFAULT_ROW_HEIGHT; a measured height is cached by item
    identity and only replaces the cached one when it differs by more than
    one pixel. Replacing the item list drops all measurements unless asked
    to keep them.
    """

    def __init__(
        self,
        items: Sequence[FacetItem] = (),
        *,
        viewport_height: int = LIST_MAX_HEIGHT,
        default_height: int = DEFAULT_ROW_HEIGHT,
        overscan: int = OVERSCAN_COUNT,
    ):
        self.viewport_height = viewport_height
        self.default_height = default_height
        self.overscan = overscan
        self._heights: dict[str, float] = {}
        self._items: list[FacetItem] = list(items)
        self._offsets: list[float] | None = None

    @property
    def items(self) -> list[FacetItem]:
        return self._items

    def set_items(self, items: Sequence[FacetItem], *, keep_measurements: bool = False) -> None:
        self._items = list(items)
        if not keep_measurements:
            self._heights = {}
        self._offsets = None

    def item_size(self, index: int) -> float:
        if not 0 <= index < len(self._items):
            return self.default_height
        return self._heights.get(self._items[index].key, self.default_height)

    def measure(self, index: int, height: float) -> bool:
        """Record a rendered row height. Returns True if the layout changed."""
        item = self._items[index]
        current = self._heights.get(item.key, self.default_height)
        if abs(current - height) <= 1:
            return False
        self._heights[item.key] = height
        self._offsets = None
        return True

    def _row_offsets(self) -> list[float]:
        if self._offsets is None:
            offsets = [0.0]
            for i in range(len(self._items)):
                offsets.append(offsets[-1] + self.item_size(i))
            self._offsets = offsets
        return self._offsets

    def offset_of(self, index: int) -> float:
        return self._row_offsets()[index]

    @property
    def total_height(self) -> float:
        return self._row_offsets()[-1]

    def visible_range(self, scroll_offset: float = 0) -> tuple[int, int]:
        """Half-open index range to render for a scroll position, overscan included."""
        count = len(self._items)
        if count == 0:
            return 0, 0
        offsets = self._row_offsets()
        first = max(bisect.bisect_right(offsets, scroll_offset) - 1, 0)
        last = max(bisect.bisect_left(offsets, scroll_offset + self.viewport_height), first + 1)
        return max(first - self.overscan, 0), min(last + self.overscan, count)


class FacetPicker:
    """Filterable checklist over one facet's candidates."""

    def __init__(
        self,
        items: Sequence[FacetItem] = (),
        selected: Iterable[str] = (),
        *,
        debouncer: Debouncer | None = None,
    ):
        self._items: list[FacetItem] = list(items)
        self.selected: list[str] = list(selected)
        self._debouncer = debouncer or Debouncer()
        self.query = ""
        self._filtered_for: str | None = None
        self._filtered: list[FacetItem] = []
        self.window = WindowedList(self._items)

    @property
    def items(self) -> list[FacetItem]:
        return self._items

    def set_items(self, items: Sequence[FacetItem]) -> None:
        """Swap the candidate source; row measurements no longer apply."""
        self._items = list(items)
        self._filtered_for = None
        self.window.set_items(self.filtered)

    def set_query(self, text: str) -> None:
        self.query = text
        self._debouncer.set(text)

    @property
    def filtered(self) -> list[FacetItem]:
        query = self._debouncer.value
        if query != self._filtered_for:
            self._filtered = filter_items(self._items, query)
            self._filtered_for = query
            self.window.set_items(self._filtered, keep_measurements=True)
        return self._filtered

    def toggle(self, value: str) -> None:
        """Check or uncheck one value; values hidden by the filter are untouched."""
        if value in self.selected:
            self.selected = [v for v in self.selected if v != value]
        else:
            self.selected = [*self.selected, value]

    def is_selected(self, value: str) -> bool:
        return value in self.selected

    @property
    def status_line(self) -> str:
        line = f"{len(self.filtered)} items"
        if self.query:
            line += f" (filtered from {len(self._items)})"
        if self.selected:
            line += f" • {len(self.selected)} selected"
        return line
