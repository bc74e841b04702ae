"""Credential-attaching proxy in front of the Naver search API.

Responsibilities:
- Hold the provider credentials injected at construction
- Forward one page request (query / display / start / sort) to the news or
  cafe endpoint with the credential headers attached
- Translate every failure into a ``SearchError`` carrying the status the
  proxy route answers with

The upstream body is returned untouched on success.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Optional

import httpx

from core.errors import ConfigurationError, NetworkError, QueryValidationError, UpstreamError
from core.models import SearchType, SortMode

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

#: Upstream endpoint per search type.
_ENDPOINTS: dict[SearchType, str] = {
    SearchType.NEWS: "news.json",
    SearchType.FORUM: "cafearticle.json",
}


def _mask(secret: str) -> str:
    """Describe a credential for the log without revealing it."""
    return f"yes, ends with ...{secret[-4:]}" if secret else "no"


class NaverSearchProxy:
    """Forwards page requests to Naver with the client id/secret headers.

    Credentials are checked once, when the proxy is built. A proxy built
    without them still answers, but every call fails with
    ``ConfigurationError`` before anything is sent upstream.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ) -> None:
        """Initialise the proxy.

        Args:
            settings: Application configuration holding the Naver credentials.
            client_factory: Builds the ``httpx.AsyncClient`` used for one call.
                Tests pass a factory wrapping ``httpx.MockTransport``.
        """
        self.settings = settings
        self._client_factory = client_factory or self._default_client
        self._missing = settings.missing_credentials()

        logger.info(
            "Naver credentials: client id loaded=%s, client secret loaded=%s",
            _mask(settings.naver_client_id),
            _mask(settings.naver_client_secret),
        )

    @property
    def configured(self) -> bool:
        return not self._missing

    def ensure_configured(self) -> None:
        """Raise ``ConfigurationError`` if the credentials were absent at startup."""
        if self._missing:
            raise ConfigurationError(
                "Naver API credentials are not set in environment variables."
            )

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout)

    def endpoint(self, search_type: SearchType) -> str:
        """Return the upstream URL for *search_type*."""
        return f"{self.settings.naver_api_base.rstrip('/')}/{_ENDPOINTS[search_type]}"

    async def search(
        self,
        query: str,
        *,
        display: int = 10,
        start: int = 1,
        sort: SortMode = SortMode.RELEVANCE,
        search_type: SearchType = SearchType.NEWS,
    ) -> dict[str, Any]:
        """Fetch one page from the provider.

        Args:
            query: Search expression, passed through unchanged (operators included).
            display: Page size requested from the provider.
            start: 1-based offset of the first result.
            sort: Relevance or date ordering.
            search_type: News or cafe index.

        Returns:
            The provider's JSON body, unmodified.

        Raises:
            ConfigurationError: Credentials were absent at construction time.
            QueryValidationError: The query is blank.
            UpstreamError: The provider answered with a non-success status.
            NetworkError: The provider could not be reached or sent garbage.
        """
        self.ensure_configured()
        if not query or not query.strip():
            raise QueryValidationError("Query parameter is required.")

        url = self.endpoint(search_type)
        params = {
            "query": query,
            "display": display,
            "start": start,
            "sort": sort.wire_value,
        }
        headers = {
            "X-Naver-Client-Id": self.settings.naver_client_id,
            "X-Naver-Client-Secret": self.settings.naver_client_secret,
        }

        try:
            async with self._client_factory() as client:
                response = await client.get(url, params=params, headers=headers)
                if not response.is_success:
                    raise UpstreamError(
                        f"Naver API error: {response.text}",
                        status_code=response.status_code,
                    )
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Upstream fetch failed for query=%r start=%d: %s", query, start, exc)
            raise NetworkError("Failed to fetch from Naver API.") from exc

        if not isinstance(data, dict):
            raise NetworkError("Failed to fetch from Naver API.")

        logger.debug(
            "Upstream page query=%r type=%s start=%d items=%d",
            query, search_type.value, start, len(data.get("items") or []),
        )
        return data
