"""
Naver search browser core package.

Modules
───────
models      — Pydantic data models (SearchItem, SearchResultPage) and enums
errors      — SearchError hierarchy, each kind carrying its HTTP status
proxy       — credential-attaching call to the Naver search API (httpx)
fetcher     — first page + concurrent remaining pages, page sources
aggregator  — order-preserving merge of provider pages
filters     — sub-query and recency filtering
paginator   — display pages and the page-number window
session     — client-held search state with stale-search guard
"""
