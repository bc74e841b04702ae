"""
Flask web server for the Naver search browser.

Routes
──────
GET  /                       Search + browse UI
GET  /api/browse?q=...       The same view as JSON
GET  /api/search?query=...   Credential-attaching proxy for one provider page

Each browser gets a search session, held in memory and found through a
token in the signed Flask session cookie. Only a new query, type or sort
searches again; sub-query, recency and page changes work on the results
already held. Nothing is written to disk.
"""

from __future__ import annotations

import html
import logging
import os
import secrets
import sys
from datetime import datetime
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, render_template, request, url_for
from flask import session as browser_session
from markupsafe import Markup, escape
from werkzeug.datastructures import MultiDict

# Allow running as `python web/app.py` from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

from config.settings import Settings
from core.errors import QueryValidationError, SearchError
from core.fetcher import LocalPageSource, PageFetcher, RemotePageSource
from core.filters import RECENCY_OPTIONS
from core.models import SearchType, SortMode
from core.proxy import NaverSearchProxy
from core.session import SearchOutcome, SearchSession, SessionStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

#: Tags the provider uses to highlight matched terms; the only markup let through.
_HIGHLIGHT_TAGS = {"&lt;b&gt;": "<b>", "&lt;/b&gt;": "</b>"}
#: Key of the search-session token in the Flask session cookie.
_TOKEN_KEY = "search_token"


# ── Rendering helpers ──────────────────────────────────────────────────────

def highlight(text: Optional[str]) -> Markup:
    """Render provider rich text safely, keeping only ``<b>`` highlights."""
    escaped = str(escape(html.unescape(text or "")))
    for entity, tag in _HIGHLIGHT_TAGS.items():
        escaped = escaped.replace(entity, tag)
    return Markup(escaped)


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


# ── Request parsing ────────────────────────────────────────────────────────

def _int_arg(args: MultiDict, name: str, default: int) -> int:
    raw = args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise QueryValidationError(f"{name} must be an integer.") from None


def _recency_arg(args: MultiDict) -> Optional[int]:
    raw = (args.get("days") or "").strip().lower()
    if raw in ("", "all"):
        return None
    days = _int_arg(args, "days", 0)
    if days < 0:
        raise QueryValidationError("days must not be negative.")
    return days


# ── App factory ────────────────────────────────────────────────────────────

def create_app(
    settings: Optional[Settings] = None,
    proxy: Optional[NaverSearchProxy] = None,
) -> Flask:
    """Build the Flask app around an explicit configuration.

    Args:
        settings: Application configuration; read from the environment if omitted.
        proxy: Pre-built proxy (tests inject one with a mock transport).
    """
    settings = settings or Settings()
    proxy = proxy or NaverSearchProxy(settings)

    if settings.search_proxy_url:
        source = RemotePageSource(settings.search_proxy_url, timeout=settings.http_timeout)
        logger.info("Fetching pages through remote proxy %s", settings.search_proxy_url)
    else:
        source = LocalPageSource(proxy)
    fetcher = PageFetcher(source)
    sessions = SessionStore(lambda: SearchSession(fetcher), max_sessions=settings.max_sessions)

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.secret_key = settings.secret_key
    app.extensions["search_sessions"] = sessions
    app.jinja_env.filters["highlight"] = highlight
    app.jinja_env.filters["datetime"] = format_datetime

    @app.errorhandler(SearchError)
    def handle_search_error(exc: SearchError):
        return jsonify(exc.to_payload()), exc.status_code

    def current_session() -> SearchSession:
        """The search session of the browser making this request."""
        token = browser_session.get(_TOKEN_KEY)
        if token is None:
            token = secrets.token_urlsafe(16)
            browser_session[_TOKEN_KEY] = token
        return sessions.get(token)

    async def browse(args: MultiDict) -> dict[str, Any]:
        """Apply *args* to the browser's session and build the view state.

        A changed ``q`` / ``type`` / ``sort``, or the search button
        (``search``), runs a new search. ``sub``,
        ``days`` and ``page`` only move the filters and the page over the
        results already held. Absent parameters leave their value unchanged.
        """
        session = current_session()
        outcome: Optional[SearchOutcome] = None

        try:
            search_type = SearchType.parse(args["type"]) if "type" in args else session.search_type
            sort = SortMode.parse(args["sort"]) if "sort" in args else session.sort
            days = _recency_arg(args) if "days" in args else None
            page = _int_arg(args, "page", session.current_page)
        except QueryValidationError as exc:
            return {"search": session, "view": session.view(), "outcome": None,
                    "request_error": exc.message}

        if "q" in args:
            query = args.get("q", "")
            if "search" in args or not session.answers(query, search_type, sort):
                outcome = await session.handle_search(query, search_type, sort)

        if session.items:
            filters_changed = False
            if "sub" in args and args["sub"] != session.sub_query:
                session.set_sub_query(args["sub"])
                filters_changed = True
            if "days" in args and days != session.recency_days:
                session.set_recency(days)
                filters_changed = True
            if "page" in args and not filters_changed:
                session.go_to_page(page)

        return {"search": session, "view": session.view(), "outcome": outcome,
                "request_error": None}

    # ── UI ─────────────────────────────────────────────────────────────────

    @app.route("/")
    async def index():
        state = await browse(request.args)
        session = state["search"]

        def page_url(page: int, **overrides: Any) -> str:
            params = {
                "q": session.query,
                "type": session.search_type.value,
                "sort": session.sort.value,
                "sub": session.sub_query,
                "days": session.recency_days if session.recency_days is not None else "all",
                "page": page,
            }
            params.update(overrides)
            return url_for("index", **params)

        return render_template(
            "index.html",
            recency_options=RECENCY_OPTIONS,
            search_types=list(SearchType),
            sort_modes=list(SortMode),
            page_url=page_url,
            **state,
        )

    @app.route("/api/browse")
    async def browse_json():
        """Return one display page of filtered results as JSON."""
        state = await browse(request.args)
        session: SearchSession = state["search"]
        view = state["view"]

        if state["request_error"]:
            status, message = "invalid", state["request_error"]
        else:
            outcome: Optional[SearchOutcome] = state["outcome"] or session.last_outcome
            status = outcome.status.value if outcome else "idle"
            message = session.error or session.notice

        body = {
            "query": session.query,
            "type": session.search_type.value,
            "sort": session.sort.value,
            "status": status,
            "message": message,
            "aggregated": len(session.items),
            "total_items": view.total_items,
            "page": view.page,
            "total_pages": view.total_pages,
            "window": view.window if view.show_pagination else [],
            "items": [item.model_dump(mode="json", by_alias=True) for item in view.items],
        }
        code = {"invalid": 400, "error": 502}.get(status, 200)
        return jsonify(body), code

    # ── Proxy ──────────────────────────────────────────────────────────────

    @app.route("/api/search")
    async def search_proxy():
        """Forward one page request to Naver with credentials attached.

        Query params:
          query    (required) — search expression
          display  page size (default 10)
          start    1-based offset (default 1)
          sort     sim | date (default sim)
          type     news | cafe (default news)
        """
        proxy.ensure_configured()
        args = request.args
        data = await proxy.search(
            args.get("query", ""),
            display=_int_arg(args, "display", 10),
            start=_int_arg(args, "start", 1),
            sort=SortMode.parse(args.get("sort")),
            search_type=SearchType.parse(args.get("type")),
        )
        return jsonify(data)

    return app


app = create_app()


# ── Entry point ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    settings: Settings = app.config["SETTINGS"]
    app.run(debug=settings.debug, host="0.0.0.0", port=settings.port)
