"""Local filtering of an aggregated result set.

Two predicates, composed by conjunction:

- sub-query: case-insensitive substring of the title or the description,
  markup included (``<b>`` tags are part of the searched text)
- recency: the item carries a publication date no older than N days

Both are pure, so the filtered view can be recomputed from scratch whenever
the aggregated set or a filter input changes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from core.models import SearchItem

#: Recency choices offered in the UI as ``(label, days)``; ``None`` is "all".
RECENCY_OPTIONS: list[tuple[str, Optional[int]]] = [
    ("전체", None),
    ("1일", 1),
    ("3일", 3),
    ("7일", 7),
]


def matches_sub_query(item: SearchItem, sub_query: str) -> bool:
    """Return True if *sub_query* occurs in the item's title or description.

    An empty sub-query matches everything.
    """
    if not sub_query:
        return True
    needle = sub_query.lower()
    return needle in item.title.lower() or needle in item.description.lower()


def is_recent(item: SearchItem, cutoff: datetime) -> bool:
    """Return True if the item was published at or after *cutoff*.

    Items without a publication date (cafe posts) are never recent.
    """
    return item.published_at is not None and item.published_at >= cutoff


def filter_items(
    items: Sequence[SearchItem],
    sub_query: str = "",
    recency_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[SearchItem]:
    """Apply the sub-query and recency filters to *items*.

    Args:
        items: The aggregated sequence; left untouched.
        sub_query: Free text searched within the results.
        recency_days: Keep only items published within this many days;
            ``None`` disables the filter.
        now: Reference time for the recency window; defaults to the current
            UTC time.

    Returns:
        A new list in the original order.
    """
    cutoff: Optional[datetime] = None
    if recency_days is not None:
        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        cutoff = reference - timedelta(days=recency_days)

    return [
        item
        for item in items
        if matches_sub_query(item, sub_query)
        and (cutoff is None or is_recent(item, cutoff))
    ]
