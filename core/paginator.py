"""Display pagination over the filtered result set."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from core.models import SearchItem

#: Results shown per display page.
DISPLAY_PAGE_SIZE = 100
#: Most page buttons the selector shows at once.
MAX_PAGE_BUTTONS = 10


@dataclass
class DisplayPage:
    """One slice of the filtered results plus what the page selector needs."""

    items: list[SearchItem]
    page: int
    total_pages: int
    total_items: int
    window: list[int] = field(default_factory=list)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def show_pagination(self) -> bool:
        return self.total_pages > 1


def total_pages(item_count: int, page_size: int = DISPLAY_PAGE_SIZE) -> int:
    """Number of display pages needed for *item_count* results (0 when empty)."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(item_count / page_size)


def clamp_page(page: int, pages: int) -> int:
    """Clamp a requested page number into ``[1, max(pages, 1)]``."""
    return min(max(page, 1), max(pages, 1))


def page_window(current: int, pages: int, max_buttons: int = MAX_PAGE_BUTTONS) -> list[int]:
    """Page numbers for the selector buttons.

    The first ``max_buttons`` pages are shown until the current page passes
    the middle of the window; after that the window slides with the current
    page, stopping at the last page.

    Examples:
        >>> page_window(3, 20)
        [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
        >>> page_window(12, 20)
        [7, 8, 9, 10, 11, 12, 13, 14, 15, 16]
        >>> page_window(19, 20)
        [11, 12, 13, 14, 15, 16, 17, 18, 19, 20]
    """
    size = min(pages, max_buttons)
    if size <= 0:
        return []
    half = max_buttons // 2
    first = 1
    if current > half:
        first = max(1, min(current - half, pages - size + 1))
    return list(range(first, first + size))


def paginate(
    items: Sequence[SearchItem],
    current_page: int,
    page_size: int = DISPLAY_PAGE_SIZE,
) -> DisplayPage:
    """Slice *items* for *current_page*.

    Out-of-range page numbers are clamped to the nearest valid page rather
    than producing an empty slice.
    """
    pages = total_pages(len(items), page_size)
    page = clamp_page(current_page, pages)
    offset = (page - 1) * page_size
    return DisplayPage(
        items=list(items[offset:offset + page_size]),
        page=page,
        total_pages=pages,
        total_items=len(items),
        window=page_window(page, pages),
    )
