"""Multi-page fetching from the search proxy.

The provider returns at most 100 results per request and will not address
anything past the 1000th. ``PageFetcher`` requests the first page, reads the
provider's total, then requests every remaining page concurrently and merges
them in offset order.

Flow
────
1. page 1 (start=1)            → total
2. min(total, 1000)            → number of remaining pages
3. pages 2..N concurrently     → asyncio.gather (request order kept)
4. aggregate(page 1 .. page N) → one ordered list

A failure anywhere aborts the whole fetch; nothing partial is returned.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from typing import Any, Optional, Protocol

import httpx
from pydantic import ValidationError

from core.aggregator import aggregate
from core.errors import NetworkError, ProxyError, QueryValidationError
from core.models import SearchItem, SearchResultPage, SearchType, SortMode
from core.proxy import NaverSearchProxy

logger = logging.getLogger(__name__)

#: Items requested per provider call.
PROVIDER_PAGE_SIZE = 100
#: Highest result rank the provider will serve.
PROVIDER_MAX_RESULTS = 1000


class PageSource(Protocol):
    """Anything that can return one page of provider results."""

    async def fetch_page(
        self,
        query: str,
        *,
        search_type: SearchType,
        sort: SortMode,
        start: int,
        display: int,
    ) -> SearchResultPage:
        ...


def _parse_page(payload: Any) -> SearchResultPage:
    try:
        return SearchResultPage.model_validate(payload)
    except ValidationError as exc:
        raise ProxyError(f"Malformed search response: {exc.error_count()} invalid field(s)") from exc


# ── Page sources ───────────────────────────────────────────────────────────


class LocalPageSource:
    """Calls a ``NaverSearchProxy`` in the same process."""

    def __init__(self, proxy: NaverSearchProxy) -> None:
        self.proxy = proxy

    async def fetch_page(
        self,
        query: str,
        *,
        search_type: SearchType,
        sort: SortMode,
        start: int,
        display: int,
    ) -> SearchResultPage:
        payload = await self.proxy.search(
            query, display=display, start=start, sort=sort, search_type=search_type,
        )
        return _parse_page(payload)


class RemotePageSource:
    """Calls the ``/api/search`` proxy endpoint over HTTP."""

    def __init__(
        self,
        proxy_url: str,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        timeout: float = 5.0,
    ) -> None:
        self.proxy_url = proxy_url
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=timeout))

    async def fetch_page(
        self,
        query: str,
        *,
        search_type: SearchType,
        sort: SortMode,
        start: int,
        display: int,
    ) -> SearchResultPage:
        params = {
            "query": query,
            "display": display,
            "start": start,
            "sort": sort.wire_value,
            "type": search_type.wire_value,
        }
        try:
            async with self._client_factory() as client:
                response = await client.get(self.proxy_url, params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Could not reach search proxy: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        error = payload.get("error") if isinstance(payload, dict) else None
        if not response.is_success or error or payload is None:
            raise ProxyError(
                error or f"API call failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return _parse_page(payload)


# ── Fetcher ────────────────────────────────────────────────────────────────


def remaining_pages(total: int, page_size: int = PROVIDER_PAGE_SIZE,
                    max_results: int = PROVIDER_MAX_RESULTS) -> int:
    """Number of requests still needed after the first page.

    Examples:
        >>> remaining_pages(80)
        0
        >>> remaining_pages(250)
        2
        >>> remaining_pages(50_000)
        9
    """
    capped = min(total, max_results)
    return max(0, math.ceil((capped - page_size) / page_size))


class PageFetcher:
    """Fetches every addressable page for a query and merges them."""

    def __init__(
        self,
        source: PageSource,
        page_size: int = PROVIDER_PAGE_SIZE,
        max_results: int = PROVIDER_MAX_RESULTS,
    ) -> None:
        self.source = source
        self.page_size = page_size
        self.max_results = max_results

    async def fetch_all(
        self,
        query: str,
        search_type: SearchType = SearchType.NEWS,
        sort: SortMode = SortMode.RELEVANCE,
    ) -> list[SearchItem]:
        """Return the aggregated results for *query*, up to ``max_results``.

        Raises:
            QueryValidationError: If the query is blank (no request is made).
            SearchError: If any page request fails.
        """
        if not query or not query.strip():
            raise QueryValidationError("Search query must not be empty.")

        def fetch(start: int):
            return self.source.fetch_page(
                query, search_type=search_type, sort=sort,
                start=start, display=self.page_size,
            )

        first = await fetch(1)
        extra = remaining_pages(first.total, self.page_size, self.max_results)
        logger.info(
            "Search query=%r type=%s sort=%s total=%d extra_pages=%d",
            query, search_type.value, sort.value, first.total, extra,
        )

        pages = [first]
        if extra > 0:
            starts = [self.page_size * i + 1 for i in range(1, extra + 1)]
            tasks = [asyncio.ensure_future(fetch(start)) for start in starts]
            try:
                pages.extend(await asyncio.gather(*tasks))
            except BaseException:
                # first failure wins; the other pages are cancelled and reaped
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        items = aggregate(pages, max_results=self.max_results)
        logger.info("Aggregated %d items from %d page(s)", len(items), len(pages))
        return items
