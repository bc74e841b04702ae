"""
Pydantic models shared across the search core.

Field names follow Python conventions; the aliases are the provider's wire
names, so a Naver response validates directly into these models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.errors import QueryValidationError


class SearchType(str, Enum):
    """Which provider index a search runs against."""

    NEWS = "news"
    FORUM = "forum"

    @property
    def wire_value(self) -> str:
        """Value of the proxy's ``type`` parameter."""
        return "cafe" if self is SearchType.FORUM else "news"

    @classmethod
    def parse(cls, value: str | None) -> SearchType:
        """Accept either the session value (``forum``) or the wire value (``cafe``)."""
        if not value:
            return cls.NEWS
        value = value.strip().lower()
        if value == "cafe":
            return cls.FORUM
        try:
            return cls(value)
        except ValueError:
            raise QueryValidationError(f"Unknown search type: {value!r}") from None


class SortMode(str, Enum):
    """Result ordering requested from the provider."""

    RELEVANCE = "relevance"
    DATE = "date"

    @property
    def wire_value(self) -> str:
        """Value of the provider's ``sort`` parameter."""
        return "sim" if self is SortMode.RELEVANCE else "date"

    @classmethod
    def parse(cls, value: str | None) -> SortMode:
        if not value:
            return cls.RELEVANCE
        value = value.strip().lower()
        if value == "sim":
            return cls.RELEVANCE
        try:
            return cls(value)
        except ValueError:
            raise QueryValidationError(f"Unknown sort mode: {value!r}") from None


def _parse_pub_date(value: Any) -> Optional[datetime]:
    """Parse an RFC 2822 or ISO-8601 timestamp; anything unreadable is ``None``."""
    if value is None or isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SearchItem(BaseModel):
    """One result entry from the news or cafe index.

    ``title`` and ``description`` are rich text: the provider wraps matched
    terms in ``<b>`` tags. They are kept verbatim here and sanitised only
    when rendered.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    original_link: Optional[str] = Field(default=None, alias="originallink")
    link: str = ""
    description: str = ""
    #: News results only.
    published_at: Optional[datetime] = Field(default=None, alias="pubDate")
    #: Cafe results only.
    source_name: Optional[str] = Field(default=None, alias="cafename")
    source_url: Optional[str] = Field(default=None, alias="cafeurl")

    @field_validator("published_at", mode="before")
    @classmethod
    def _coerce_pub_date(cls, value: Any) -> Optional[datetime]:
        return _parse_pub_date(value)

    @field_validator("original_link", "source_name", "source_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SearchResultPage(BaseModel):
    """One provider response: a page of items plus the provider's total estimate."""

    items: list[SearchItem] = Field(default_factory=list)
    total: int = 0
    start: int = 1
    display: int = 0
