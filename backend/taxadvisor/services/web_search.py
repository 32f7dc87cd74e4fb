# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  网络检索服务 - 针对荷兰官方税务网站的检索，带请求间隔限制与逐来源错误收集。
  Web search service - searches Dutch official tax sites with a minimum delay
  between requests; per-source failures are collected, not raised.
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote_plus

import requests

from taxadvisor.config import SearchConfig, get_search_config
from taxadvisor.exceptions import SearchProviderError
from taxadvisor.schemas.web_search import WebSearchResult, WebSearchResults
from taxadvisor.utils.logger import get_logger
from taxadvisor.utils.timeutil import utc_now

logger = get_logger(__name__)

DISABLED_MESSAGE = "Web search is disabled in configuration"

# source -> (url template, title template, snippet template, relevance)
LINK_SOURCES: Dict[str, tuple] = {
    "belastingdienst.nl": (
        "https://www.belastingdienst.nl/zoeken?q={q}",
        'Search results for "{query}" on Belastingdienst',
        "Information about {query} from the Dutch Tax Authority",
        0.8,
    ),
    "wetten.nl": (
        "https://wetten.overheid.nl/zoeken?q={q}",
        "Legal information: {query}",
        "Dutch tax legislation related to {query}",
        0.7,
    ),
    "rijksoverheid.nl": (
        "https://www.rijksoverheid.nl/zoeken?q={q}",
        "Government information: {query}",
        "Official Dutch government information about {query}",
        0.75,
    ),
}


class WebSearchService:
    """
    荷兰税务网络检索

    Without ``search.endpoint`` each configured source yields a single
    search-page link. With an endpoint configured, every source is queried
    through it with ``requests`` in a worker thread; the endpoint must
    answer with a JSON list of ``{title, url, snippet, content?, relevance?}``.

    Attributes:
        config: ``search:`` section of config.yaml
    """

    def __init__(
        self,
        search_config: Optional[SearchConfig] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.config = search_config or get_search_config()
        self._monotonic = monotonic
        self._last_request: Optional[float] = None
        self._rate_lock = asyncio.Lock()
        self._headers = {"User-Agent": "TaxAdvisor/1.0 (knowledge cache)", "Accept": "application/json"}

    async def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        sources: Optional[Sequence[str]] = None,
    ) -> WebSearchResults:
        """
        检索

        Query every source, then sort by relevance, truncate to
        ``max_results`` and drop hits under ``min_relevance``.
        """
        sources = list(sources or self.config.sources)
        if not self.config.enabled:
            return WebSearchResults(query=query, sources=[], errors=[DISABLED_MESSAGE])

        await self._enforce_rate_limit()

        limit = max_results or self.config.max_results
        collected: List[WebSearchResult] = []
        errors: List[str] = []
        for source in sources:
            try:
                collected.extend(await self._search_source(source, query, limit))
            except SearchProviderError as exc:
                logger.warning("Web search failed source=%s query=%s err=%s", source, query, exc)
                errors.append(f"Failed to search {source}: {exc}")

        ranked = sorted(collected, key=lambda r: r.relevance, reverse=True)[:limit]
        return WebSearchResults(
            query=query,
            results=[r for r in ranked if r.relevance >= self.config.min_relevance],
            sources=sources,
            total_found=len(collected),
            errors=errors,
        )

    async def _enforce_rate_limit(self) -> None:
        delay = self.config.rate_limit_delay_ms / 1000
        async with self._rate_lock:
            if self._last_request is not None and delay > 0:
                waited = self._monotonic() - self._last_request
                if waited < delay:
                    await asyncio.sleep(delay - waited)
            self._last_request = self._monotonic()

    async def _search_source(self, source: str, query: str, max_results: int) -> List[WebSearchResult]:
        if self.config.endpoint:
            return await asyncio.to_thread(self._query_endpoint, source, query, max_results)
        return self._link_results(source, query)[:max_results]

    def _link_results(self, source: str, query: str) -> List[WebSearchResult]:
        template = LINK_SOURCES.get(source)
        if template is None:
            return []
        url, title, snippet, relevance = template
        return [
            WebSearchResult(
                title=title.format(query=query),
                url=url.format(q=quote_plus(query)),
                snippet=snippet.format(query=query),
                source=source,
                relevance=relevance,
                last_updated=utc_now(),
            )
        ]

    def _query_endpoint(self, source: str, query: str, max_results: int) -> List[WebSearchResult]:
        try:
            resp = requests.get(
                self.config.endpoint,
                params={"q": query, "site": source, "limit": max_results},
                headers=self._headers,
                timeout=self.config.timeout_seconds,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise SearchProviderError(str(exc)) from exc

        if not isinstance(data, list):
            raise SearchProviderError("Unexpected response payload")

        results = []
        for item in data[:max_results]:
            if not isinstance(item, dict) or not item.get("url"):
                continue
            results.append(self._from_payload(source, item))
        return results

    @staticmethod
    def _from_payload(source: str, item: Dict[str, Any]) -> WebSearchResult:
        try:
            relevance = float(item.get("relevance", 0.5))
        except (TypeError, ValueError):
            relevance = 0.5
        return WebSearchResult(
            title=str(item.get("title") or item["url"]).strip(),
            url=str(item["url"]).strip(),
            snippet=str(item.get("snippet") or "").strip(),
            source=source,
            relevance=min(1.0, max(0.0, relevance)),
            content=item.get("content") or None,
            last_updated=utc_now(),
        )


class MockWebSearchService(WebSearchService):
    """Returns preset results and remembers the queries it was asked."""

    def __init__(self, results: Optional[List[WebSearchResult]] = None):
        super().__init__(SearchConfig(rate_limit_delay_ms=0))
        self.results = list(results or [])
        self.queries: List[str] = []

    def set_results(self, results: List[WebSearchResult]) -> None:
        self.results = list(results)

    async def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        sources: Optional[Sequence[str]] = None,
    ) -> WebSearchResults:
        self.queries.append(query)
        return WebSearchResults(
            query=query,
            results=list(self.results),
            sources=list(sources or ["mock"]),
            total_found=len(self.results),
        )
