"""
Tests for web/app.py — proxy route, JSON browse route and the HTML page.

The Naver API is replaced by an ``httpx.MockTransport`` injected through
the proxy's client factory.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from config.settings import Settings
from core.proxy import NaverSearchProxy
from web.app import create_app, highlight


class FakeNaver:
    """Serves a corpus of *total* news items, 100 per page at most."""

    def __init__(self, total: int = 250, status: int = 200, title: str = "<b>test</b> item {n}"):
        self.total = total
        self.status = status
        self.title = title
        self.requests: list[httpx.Request] = []
        self.now = datetime.now(timezone.utc)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, text="upstream says no")
        start = int(request.url.params["start"])
        display = int(request.url.params["display"])
        capped = min(self.total, 1000)
        count = max(0, min(display, capped - start + 1))
        items = []
        for n in range(start, start + count):
            published = self.now - timedelta(days=n - 1, hours=1)
            items.append({
                "title": self.title.format(n=n),
                "originallink": f"https://press.example/{n}",
                "link": f"https://n.news.naver.com/{n}",
                "description": "even" if n % 2 == 0 else "odd",
                "pubDate": format_datetime(published),
            })
        return httpx.Response(200, json={
            "total": self.total, "start": start, "display": count, "items": items,
        })

    @property
    def starts(self) -> list[int]:
        return sorted(int(r.url.params["start"]) for r in self.requests)


def make_app(naver: FakeNaver, **overrides):
    values = {
        "naver_client_id": "test-id",
        "naver_client_secret": "test-secret",
        "naver_api_base": "https://naver.test/v1/search",
        "search_proxy_url": None,
    }
    values.update(overrides)
    settings = Settings(**values)
    transport = httpx.MockTransport(naver)
    proxy = NaverSearchProxy(settings, client_factory=lambda: httpx.AsyncClient(transport=transport))
    app = create_app(settings, proxy)
    app.config["TESTING"] = True
    return app


def make_client(naver: FakeNaver, **overrides):
    return make_app(naver, **overrides).test_client()


# ── /api/search ────────────────────────────────────────────────────────────────


class TestProxyRoute:
    def test_passes_body_through(self):
        naver = FakeNaver(total=3)
        resp = make_client(naver).get("/api/search?query=test&display=100&start=1&sort=sim&type=news")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["total"] == 3
        assert len(data["items"]) == 3
        assert naver.requests[0].headers["X-Naver-Client-Id"] == "test-id"

    def test_missing_query_is_400(self):
        resp = make_client(FakeNaver()).get("/api/search?display=100")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Query parameter is required."}

    def test_missing_credentials_is_500(self):
        naver = FakeNaver()
        resp = make_client(naver, naver_client_id="").get("/api/search?query=test")

        assert resp.status_code == 500
        assert "credentials" in resp.get_json()["error"]
        assert naver.requests == []

    def test_credentials_checked_before_parameters(self):
        naver = FakeNaver()
        resp = make_client(naver, naver_client_id="").get("/api/search?query=x&start=abc&type=bogus")

        assert resp.status_code == 500
        assert "credentials" in resp.get_json()["error"]
        assert naver.requests == []

    def test_upstream_status_forwarded(self):
        resp = make_client(FakeNaver(status=429)).get("/api/search?query=test")
        assert resp.status_code == 429
        assert resp.get_json()["error"] == "Naver API error: upstream says no"

    def test_bad_paging_param_is_400(self):
        resp = make_client(FakeNaver()).get("/api/search?query=test&start=abc")
        assert resp.status_code == 400

    def test_cafe_type_hits_cafe_endpoint(self):
        naver = FakeNaver(total=1)
        make_client(naver).get("/api/search?query=test&type=cafe")
        assert naver.requests[0].url.path.endswith("/cafearticle.json")


# ── /api/browse ────────────────────────────────────────────────────────────────


class TestBrowseRoute:
    def test_scenario_total_250(self):
        naver = FakeNaver(total=250)
        resp = make_client(naver).get("/api/browse?q=test")

        body = resp.get_json()
        assert resp.status_code == 200
        assert naver.starts == [1, 101, 201]
        assert body["aggregated"] == 250
        assert body["total_pages"] == 3
        assert len(body["items"]) == 100
        assert body["window"] == [1, 2, 3]

    def test_scenario_total_0(self):
        resp = make_client(FakeNaver(total=0)).get("/api/browse?q=test")

        body = resp.get_json()
        assert body["status"] == "empty"
        assert body["message"] == "검색 결과가 없습니다."
        assert body["items"] == []
        assert body["window"] == []

    def test_sub_query_matching_nothing(self):
        resp = make_client(FakeNaver(total=250)).get("/api/browse?q=test&sub=zzz&page=2")

        body = resp.get_json()
        assert body["total_items"] == 0
        assert body["items"] == []
        assert body["page"] == 1
        assert body["window"] == []

    def test_sub_query_and_recency_combine(self):
        resp = make_client(FakeNaver(total=250)).get("/api/browse?q=test&sub=ODD&days=3")

        body = resp.get_json()
        # items 1..3 are within three days; of those 1 and 3 are odd
        assert body["total_items"] == 2
        assert [i["link"] for i in body["items"]] == [
            "https://n.news.naver.com/1", "https://n.news.naver.com/3",
        ]

    def test_page_number_is_clamped(self):
        resp = make_client(FakeNaver(total=250)).get("/api/browse?q=test&page=99")

        body = resp.get_json()
        assert body["page"] == 3
        assert len(body["items"]) == 50

    def test_missing_credentials_stops_after_first_request(self):
        naver = FakeNaver(total=900)
        resp = make_client(naver, naver_client_secret="").get("/api/browse?q=test")

        body = resp.get_json()
        assert resp.status_code == 502
        assert body["status"] == "error"
        assert "credentials" in body["message"]
        assert naver.requests == []

    def test_upstream_failure_is_error(self):
        resp = make_client(FakeNaver(status=500)).get("/api/browse?q=test")
        assert resp.get_json()["status"] == "error"

    def test_blank_query_is_invalid(self):
        naver = FakeNaver()
        resp = make_client(naver).get("/api/browse?q=")

        assert resp.status_code == 400
        assert resp.get_json()["message"] == "검색어를 입력해주세요."
        assert naver.requests == []

    def test_without_query_nothing_happens(self):
        naver = FakeNaver()
        body = make_client(naver).get("/api/browse").get_json()
        assert body["status"] == "idle"
        assert naver.requests == []


# ── Browsing a held search ─────────────────────────────────────────────────────


class TestBrowseSession:
    def test_page_and_filter_changes_do_not_search_again(self):
        naver = FakeNaver(total=1000)
        client = make_client(naver)

        client.get("/api/browse?q=test")
        assert len(naver.requests) == 10

        page2 = client.get("/api/browse?q=test&page=2").get_json()
        odd = client.get("/api/browse?q=test&sub=odd").get_json()
        recent = client.get("/api/browse?q=test&days=1").get_json()

        assert len(naver.requests) == 10
        assert page2["page"] == 2
        assert page2["items"][0]["link"] == "https://n.news.naver.com/101"
        assert odd["total_items"] == 500
        assert odd["page"] == 1
        # sub=odd is still applied; only item 1 is within a day
        assert recent["total_items"] == 1
        assert recent["aggregated"] == 1000

    def test_parameters_left_out_keep_their_value(self):
        naver = FakeNaver(total=250)
        client = make_client(naver)
        client.get("/api/browse?q=test&sub=odd")

        body = client.get("/api/browse?page=2").get_json()

        assert len(naver.requests) == 3
        assert body["query"] == "test"
        assert body["total_items"] == 125
        assert body["page"] == 2
        assert body["status"] == "ok"

    def test_new_sort_searches_again(self):
        naver = FakeNaver(total=250)
        client = make_client(naver)
        client.get("/api/browse?q=test&sort=relevance")

        client.get("/api/browse?q=test&sort=relevance&page=2")
        assert len(naver.requests) == 3
        client.get("/api/browse?q=test&sort=date")

        assert len(naver.requests) == 6
        assert naver.requests[-1].url.params["sort"] == "date"

    def test_search_button_runs_the_same_search_again(self):
        naver = FakeNaver(total=250)
        client = make_client(naver)
        client.get("/api/browse?q=test&sub=odd")

        body = client.get("/api/browse?q=test&search=1").get_json()

        assert len(naver.requests) == 6
        assert body["total_items"] == 250

    def test_new_query_clears_previous_filters(self):
        naver = FakeNaver(total=250)
        client = make_client(naver)
        client.get("/api/browse?q=test&sub=odd&days=1")

        body = client.get("/api/browse?q=other").get_json()

        assert body["query"] == "other"
        assert body["total_items"] == 250
        assert body["page"] == 1

    def test_bad_filter_value_keeps_results(self):
        naver = FakeNaver(total=250)
        client = make_client(naver)
        client.get("/api/browse?q=test")

        resp = client.get("/api/browse?q=test&days=-1")

        assert resp.status_code == 400
        assert resp.get_json()["status"] == "invalid"
        assert resp.get_json()["aggregated"] == 250
        assert len(naver.requests) == 3

    def test_browsers_do_not_share_results(self):
        naver = FakeNaver(total=250)
        app = make_app(naver)
        first, second = app.test_client(), app.test_client()
        first.get("/api/browse?q=test")

        body = second.get("/api/browse?page=2").get_json()

        assert body["status"] == "idle"
        assert body["aggregated"] == 0
        assert len(app.extensions["search_sessions"]) == 2

    def test_html_page_links_reuse_the_held_results(self):
        naver = FakeNaver(total=250)
        client = make_client(naver)
        client.get("/?q=test&type=news&sort=relevance&search=1")

        page = client.get("/?q=test&type=news&sort=relevance&sub=&days=all&page=3").get_data(as_text=True)

        assert len(naver.requests) == 3
        assert "<b>test</b> item 201" in page


# ── HTML page ──────────────────────────────────────────────────────────────────


class TestIndexPage:
    def test_placeholder_without_query(self):
        resp = make_client(FakeNaver()).get("/")
        assert resp.status_code == 200
        assert "Search results will appear here." in resp.get_data(as_text=True)

    def test_renders_results_and_pagination(self):
        resp = make_client(FakeNaver(total=250)).get("/?q=test&type=news&sort=relevance")
        page = resp.get_data(as_text=True)

        assert "<b>test</b> item 1" in page
        assert "Read on Naver" in page
        assert "Read Original" in page
        assert "page=3" in page
        assert "250" in page

    def test_provider_markup_is_sanitised(self):
        naver = FakeNaver(total=1, title="<b>hit</b><script>alert(1)</script> {n}")
        page = make_client(naver).get("/?q=test").get_data(as_text=True)

        assert "<b>hit</b>" in page
        assert "<script>alert(1)</script>" not in page
        assert "&lt;script&gt;" in page

    def test_error_message_shown(self):
        page = make_client(FakeNaver(status=500)).get("/?q=test").get_data(as_text=True)
        assert "API 호출 중 오류가 발생했습니다" in page


class TestHighlight:
    def test_keeps_bold_only(self):
        assert str(highlight("<b>a</b> <i>b</i>")) == "<b>a</b> &lt;i&gt;b&lt;/i&gt;"

    def test_decodes_provider_entities(self):
        assert str(highlight("&quot;AI&quot; &amp; more")) == "&#34;AI&#34; &amp; more"

    def test_none_is_empty(self):
        assert str(highlight(None)) == ""
