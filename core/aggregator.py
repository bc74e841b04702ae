"""Result aggregation across provider pages.

Responsibilities:
- Concatenate every fetched page into one sequence
- Preserve the provider's ranking: items keep their in-page order and pages
  keep their request order (ascending offset)
- Enforce the provider's addressable maximum when asked to

Duplicates are kept. If the corpus shifts between two page requests the
same article can appear on both pages; the aggregate reflects exactly what
the provider returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from itertools import chain
from typing import Optional

from core.models import SearchItem, SearchResultPage

logger = logging.getLogger(__name__)


def aggregate(
    pages: Iterable[SearchResultPage],
    max_results: Optional[int] = None,
) -> list[SearchItem]:
    """Merge provider pages into one ordered list.

    Args:
        pages: Pages in request order (first page first).
        max_results: Optional cap on the merged length.

    Returns:
        A new list; the input pages are not modified.

    Examples:
        >>> aggregate([page_1, page_2])  # 100 + 50 items
        [...]  # 150 items, page_1's first
    """
    merged = list(chain.from_iterable(page.items for page in pages))
    if max_results is not None and len(merged) > max_results:
        logger.info("Truncating %d aggregated items to %d", len(merged), max_results)
        merged = merged[:max_results]
    return merged
