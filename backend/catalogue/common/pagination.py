"""Pagination helpers for result pages."""

from __future__ import annotations

import math

MAX_PAGE_BUTTONS = 10


def total_pages(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page > 0 else 0


def page_window(page: int, pages: int, max_buttons: int = MAX_PAGE_BUTTONS) -> tuple[int, int]:
    """
    First and last page button to show, centred on `page` where possible.

    Returns (start, end) inclusive; (1, 0) when there are no pages.
    """
    start = max(1, page - max_buttons // 2)
    end = min(pages, start + max_buttons - 1)
    if end - start < max_buttons - 1:
        start = max(1, end - max_buttons + 1)
    return start, end


def results_summary(page: int, per_page: int, total: int) -> str:
    """'Showing 26-50 of 1,234 results'."""
    first = (page - 1) * per_page + 1
    last = min(page * per_page, total)
    return f"Showing {first}-{last} of {total:,} results"
