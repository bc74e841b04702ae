"""
Client-held search state.

A ``SearchSession`` owns the aggregated results of the current query and
the filter / page inputs the user changes while browsing them. The
aggregated list is only ever replaced as a whole; filters and the page
number change independently and are re-applied on every read.

Each call to ``handle_search`` takes a new generation number. Results are
committed only if no later search has started in the meantime, so a slow
search can never overwrite the results of a newer one.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from core.errors import SearchError
from core.fetcher import PageFetcher
from core.filters import filter_items
from core.models import SearchItem, SearchType, SortMode
from core.paginator import DISPLAY_PAGE_SIZE, DisplayPage, paginate, total_pages

logger = logging.getLogger(__name__)

MSG_EMPTY_QUERY = "검색어를 입력해주세요."
MSG_NO_RESULTS = "검색 결과가 없습니다."
MSG_API_ERROR = "API 호출 중 오류가 발생했습니다: {}"


class OutcomeStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"          # Search succeeded with zero results
    INVALID = "invalid"      # Blank query, nothing was sent
    ERROR = "error"          # A page request failed
    STALE = "stale"          # Superseded by a newer search; discarded


@dataclass
class SearchOutcome:
    """What a single ``handle_search`` call ended with."""

    status: OutcomeStatus
    item_count: int = 0
    message: Optional[str] = None


class SearchSession:
    """Search results plus the user's current filter and page inputs."""

    def __init__(self, fetcher: PageFetcher, page_size: int = DISPLAY_PAGE_SIZE) -> None:
        self.fetcher = fetcher
        self.page_size = page_size

        self.query = ""
        self.search_type = SearchType.NEWS
        self.sort = SortMode.RELEVANCE
        self.items: tuple[SearchItem, ...] = ()
        self.sub_query = ""
        self.recency_days: Optional[int] = None
        self.current_page = 1
        self.error: Optional[str] = None
        self.notice: Optional[str] = None
        self.loading = False
        self.last_outcome: Optional[SearchOutcome] = None

        self._generation = 0

    # ── Searching ──────────────────────────────────────────────────────────

    async def handle_search(
        self,
        query: Optional[str] = None,
        search_type: Optional[SearchType] = None,
        sort: Optional[SortMode] = None,
    ) -> SearchOutcome:
        """Run a new search and commit its results if it is still the latest.

        Any argument left as ``None`` keeps the session's current value.
        """
        query = self.query if query is None else query
        if not query.strip():
            # The committed search, and any search still in flight, stay as they are.
            self.error = MSG_EMPTY_QUERY
            return self._record(SearchOutcome(OutcomeStatus.INVALID, message=MSG_EMPTY_QUERY))

        self.query = query
        if search_type is not None:
            self.search_type = search_type
        if sort is not None:
            self.sort = sort

        self._generation += 1
        generation = self._generation

        self.loading = True
        self.error = None
        self.notice = None
        self.sub_query = ""
        self.recency_days = None
        self.current_page = 1
        self.items = ()

        try:
            items = await self.fetcher.fetch_all(query, self.search_type, self.sort)
        except SearchError as exc:
            if generation != self._generation:
                logger.info("Discarding failure of superseded search generation=%d", generation)
                return SearchOutcome(OutcomeStatus.STALE)
            logger.warning("Search failed for query=%r: %s", query, exc)
            self.loading = False
            self.error = MSG_API_ERROR.format(exc.message)
            return self._record(SearchOutcome(OutcomeStatus.ERROR, message=self.error))

        if generation != self._generation:
            logger.info(
                "Discarding %d results of superseded search generation=%d",
                len(items), generation,
            )
            return SearchOutcome(OutcomeStatus.STALE, item_count=len(items))

        self.loading = False
        self.items = tuple(items)
        if not items:
            self.notice = MSG_NO_RESULTS
            return self._record(SearchOutcome(OutcomeStatus.EMPTY, message=MSG_NO_RESULTS))
        return self._record(SearchOutcome(OutcomeStatus.OK, item_count=len(items)))

    def _record(self, outcome: SearchOutcome) -> SearchOutcome:
        self.last_outcome = outcome
        return outcome

    def answers(self, query: str, search_type: SearchType, sort: SortMode) -> bool:
        """True if the committed results already belong to this search.

        Only a successful search counts; after a failure or a rejected query
        the same search is worth running again.
        """
        return (
            self.last_outcome is not None
            and self.last_outcome.status in (OutcomeStatus.OK, OutcomeStatus.EMPTY)
            and self.error is None
            and query == self.query
            and search_type is self.search_type
            and sort is self.sort
        )

    # ── Filters ────────────────────────────────────────────────────────────

    def set_sub_query(self, sub_query: str) -> None:
        self.current_page = 1
        self.sub_query = sub_query

    def set_recency(self, days: Optional[int]) -> None:
        if days is not None and days < 0:
            raise ValueError("recency window must not be negative")
        self.current_page = 1
        self.recency_days = days

    def filtered_items(self, now: Optional[datetime] = None) -> list[SearchItem]:
        return filter_items(self.items, self.sub_query, self.recency_days, now=now)

    # ── Navigation ─────────────────────────────────────────────────────────

    def page_count(self, now: Optional[datetime] = None) -> int:
        return total_pages(len(self.filtered_items(now)), self.page_size)

    def go_to_page(self, page: int) -> None:
        self.current_page = page

    def next_page(self) -> None:
        self.current_page = min(max(self.page_count(), 1), self.current_page + 1)

    def previous_page(self) -> None:
        self.current_page = max(1, self.current_page - 1)

    def view(self, now: Optional[datetime] = None) -> DisplayPage:
        """The display page for the current filters and page number."""
        return paginate(self.filtered_items(now), self.current_page, self.page_size)


# ── Session store ──────────────────────────────────────────────────────────


class SessionStore:
    """In-memory sessions keyed by a browser token, least recently used evicted.

    Nothing outlives the process; the store only lets one browser page
    through and filter its own results without searching again.
    """

    def __init__(self, factory: Callable[[], SearchSession], max_sessions: int = 256) -> None:
        if max_sessions <= 0:
            raise ValueError("max_sessions must be positive")
        self._factory = factory
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, SearchSession] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, token: str) -> bool:
        return token in self._sessions

    def get(self, token: str) -> SearchSession:
        """Return the session for *token*, creating it on first use."""
        with self._lock:
            session = self._sessions.get(token)
            if session is not None:
                self._sessions.move_to_end(token)
                return session

            session = self._factory()
            self._sessions[token] = session
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Evicted search session %s", evicted)
            return session
