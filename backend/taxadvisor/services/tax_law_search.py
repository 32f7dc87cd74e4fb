# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  税法检索编排 - 先查本地知识缓存，未命中再联网检索，并把结果写回缓存（替换过期条目）。
  Tax law search orchestration - local cache first, web search on a miss, and the
  web answer cached back, superseding the stale entry it replaces.
"""

from typing import List, Optional

from taxadvisor.config import KnowledgeConfig, get_knowledge_config
from taxadvisor.exceptions import CorruptIndexError
from taxadvisor.schemas.knowledge import (
    CacheOptions,
    Confidence,
    KnowledgeSearchQuery,
    KnowledgeSearchResult,
    SourceInput,
)
from taxadvisor.schemas.web_search import TaxLawSearchResponse, WebSearchResult
from taxadvisor.services.knowledge_cache import KnowledgeCacheService
from taxadvisor.services.knowledge_refresh import CATEGORY_EXPIRY_DAYS, assess_confidence
from taxadvisor.services.web_search import WebSearchService
from taxadvisor.utils.logger import get_logger

logger = get_logger(__name__)

CACHE_DISCLAIMER = "Information from cached knowledge base. Tax laws may have changed."
WEB_DISCLAIMER = "Information from web search. Always verify with official tax authorities."
SITE_RESTRICTION = "site:belastingdienst.nl OR site:wetten.nl OR site:rijksoverheid.nl"
DEFAULT_CATEGORY = "general"

_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


def _from_cache_hit(hit: KnowledgeSearchResult) -> WebSearchResult:
    entry = hit.entry
    first = entry.sources[0] if entry.sources else None
    return WebSearchResult(
        title=entry.title,
        url=first.url if first else "",
        snippet=entry.summary or hit.excerpt,
        source=first.title if first and first.title else "cache",
        relevance=hit.relevance,
        last_updated=entry.updated_at,
    )


def _content_from_results(results: List[WebSearchResult]) -> str:
    sections = []
    for r in results:
        body = r.content or r.snippet
        sections.append(f"## {r.title}\n\n{body}\n\nSource: {r.url}\n")
    return "\n".join(sections)


class TaxLawSearchService:
    """
    税法检索服务

    Cache-first search. Only cache hits that match the query text count;
    popularity alone does not make an entry an answer. A corrupt index makes
    the cache unavailable for the request and the search goes to the web.
    """

    def __init__(
        self,
        cache: KnowledgeCacheService,
        web_search: WebSearchService,
        knowledge_config: Optional[KnowledgeConfig] = None,
    ):
        self.cache = cache
        self.web_search = web_search
        self.config = knowledge_config or get_knowledge_config()

    async def search(
        self,
        query: str,
        category: Optional[str] = None,
        year: Optional[int] = None,
        force_refresh: bool = False,
        max_results: int = 5,
    ) -> TaxLawSearchResponse:
        cache_usable = self.config.enabled
        stale_id: Optional[str] = None

        if cache_usable:
            try:
                if not force_refresh:
                    hits = await self._matching(query, category, year, max_results, include_expired=False)
                    if hits:
                        return TaxLawSearchResponse(
                            query=query,
                            results=[_from_cache_hit(h) for h in hits],
                            from_cache=True,
                            cache_id=hits[0].entry.id,
                            disclaimer=CACHE_DISCLAIMER,
                        )
                stale = await self._matching(query, category, year, 1, include_expired=True)
                if stale:
                    stale_id = stale[0].entry.id
            except CorruptIndexError as exc:
                logger.error("Knowledge cache unavailable, searching the web: %s", exc)
                cache_usable = False

        found = await self.web_search.search(f"{query} {SITE_RESTRICTION}", max_results=max_results)
        response = TaxLawSearchResponse(
            query=query,
            results=found.results,
            disclaimer=WEB_DISCLAIMER,
            errors=found.errors,
        )

        if found.results and cache_usable and self.config.auto_cache:
            response.cached_entry_id = await self._cache_results(query, category, year, found.results, stale_id)
        return response

    async def _matching(
        self,
        query: str,
        category: Optional[str],
        year: Optional[int],
        limit: int,
        include_expired: bool,
    ) -> List[KnowledgeSearchResult]:
        hits = await self.cache.search_local(
            KnowledgeSearchQuery(
                query=query,
                category=category,
                tax_year=year,
                include_expired=include_expired,
                max_results=limit,
            )
        )
        return [h for h in hits if h.matched_fields]

    async def _cache_results(
        self,
        query: str,
        category: Optional[str],
        year: Optional[int],
        results: List[WebSearchResult],
        stale_id: Optional[str],
    ) -> Optional[str]:
        best = results[0]
        confidence = assess_confidence(best)
        minimum = Confidence(self.config.min_confidence)
        if _CONFIDENCE_RANK[confidence] < _CONFIDENCE_RANK[minimum]:
            logger.info("Not caching %r: confidence %s below %s", query, confidence.value, minimum.value)
            return None

        if len(await self.cache.get_all_entries()) >= self.config.max_entries and not stale_id:
            logger.warning("Knowledge cache holds %s entries or more, not caching %r", self.config.max_entries, query)
            return None

        category = category or DEFAULT_CATEGORY
        outcome = await self.cache.cache_entry(
            query,
            _content_from_results(results),
            best.snippet,
            [SourceInput(url=r.url, title=r.title) for r in results],
            CacheOptions(
                category=category,
                applicable_years=[year] if year else None,
                expires_in_days=CATEGORY_EXPIRY_DAYS.get(category, self.config.default_expiry_days),
                confidence=confidence,
                supersedes=stale_id,
            ),
        )
        if not outcome.success:
            logger.warning("Could not cache web results for %r: %s", query, outcome.error)
            return None
        return outcome.entry_id
