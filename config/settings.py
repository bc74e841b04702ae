"""Application settings — all configuration loaded from environment variables.

Usage:
    from config.settings import Settings
    settings = Settings()
    settings.validate()   # raises ConfigurationError if Naver credentials are missing
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from typing import Optional

from core.errors import ConfigurationError


@dataclass
class Settings:
    """Centralised application configuration.

    All values are read from environment variables at instantiation time
    so that tests can override them by patching ``os.environ`` or by passing
    keyword arguments directly.
    """

    # ── API Keys ────────────────────────────────────────────────────────────
    naver_client_id: str = field(
        default_factory=lambda: os.environ.get("NAVER_CLIENT_ID", "")
    )
    naver_client_secret: str = field(
        default_factory=lambda: os.environ.get("NAVER_CLIENT_SECRET", "")
    )

    # ── Flask ───────────────────────────────────────────────────────────────
    debug: bool = field(
        default_factory=lambda: os.environ.get("FLASK_DEBUG", "0") == "1"
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("PORT", "5001"))
    )
    #: Signs the cookie holding the browser's search-session token.
    secret_key: str = field(
        default_factory=lambda: os.environ.get("FLASK_SECRET_KEY") or secrets.token_hex(32)
    )
    #: Browser sessions whose results are kept in memory at once.
    max_sessions: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SEARCH_SESSIONS", "256"))
    )

    # ── Search ──────────────────────────────────────────────────────────────
    naver_api_base: str = field(
        default_factory=lambda: os.environ.get(
            "NAVER_API_BASE", "https://openapi.naver.com/v1/search"
        )
    )
    #: Remote proxy endpoint; when unset the UI calls the proxy in process.
    search_proxy_url: Optional[str] = field(
        default_factory=lambda: os.environ.get("SEARCH_PROXY_URL") or None
    )
    http_timeout: float = field(
        default_factory=lambda: float(os.environ.get("HTTP_TIMEOUT", "5.0"))
    )

    def missing_credentials(self) -> list[str]:
        """Return the names of credential variables that are not set."""
        missing = []
        if not self.naver_client_id:
            missing.append("NAVER_CLIENT_ID")
        if not self.naver_client_secret:
            missing.append("NAVER_CLIENT_SECRET")
        return missing

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if any required setting is missing."""
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} not set. "
                "Copy .env.example to .env and add your Naver API credentials."
            )
