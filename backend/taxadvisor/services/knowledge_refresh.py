# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  知识刷新服务 - 逐条重新检索过期条目并原地更新内容、来源、置信度和过期时间。
  Knowledge refresh service - re-searches expired entries one by one and updates
  their content, sources, confidence and expiry in place.
"""

from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional

from taxadvisor.config import KnowledgeConfig, get_knowledge_config
from taxadvisor.schemas.knowledge import (
    Confidence,
    EntryUpdate,
    IndexEntry,
    KnowledgeSource,
    RefreshDetail,
    RefreshOptions,
    RefreshResult,
)
from taxadvisor.schemas.web_search import WebSearchResult
from taxadvisor.services.knowledge_cache import KnowledgeCacheService
from taxadvisor.services.web_search import WebSearchService
from taxadvisor.utils.logger import get_logger

logger = get_logger(__name__)

Notifier = Callable[[RefreshResult], Awaitable[None]]

REFRESH_SEARCH_RESULTS = 3
KEPT_OLD_SOURCES = 2
SITE_RESTRICTION = "site:belastingdienst.nl OR site:rijksoverheid.nl"

CATEGORY_TERMS = {
    "income_tax": "inkomstenbelasting",
    "btw": "BTW omzetbelasting",
    "box3": "box 3 vermogensrendementsheffing",
    "self_employment": "zelfstandig ondernemer",
    "deductions": "aftrekposten",
    "credits": "heffingskorting",
    "deadlines": "aangifte deadline",
    "general": "belastingdienst",
}

CATEGORY_EXPIRY_DAYS = {
    "deadlines": 30,
    "income_tax": 365,
    "btw": 90,
    "self_employment": 180,
    "general": 90,
}


def build_web_query(query: str, category: str, year: Optional[int]) -> str:
    parts = [query, CATEGORY_TERMS.get(category, ""), str(year) if year else "", SITE_RESTRICTION]
    return " ".join(p for p in parts if p)


def assess_confidence(result: WebSearchResult) -> Confidence:
    """belastingdienst.nl / rijksoverheid.nl are high, other ``.nl`` medium, the rest low."""
    where = (result.url or result.source or "").lower()
    if "belastingdienst.nl" in where or "rijksoverheid.nl" in where:
        return Confidence.HIGH
    if ".nl" in where:
        return Confidence.MEDIUM
    return Confidence.LOW


class KnowledgeRefreshService:
    """
    知识刷新服务

    Sequential batch refresh. One entry failing never stops the batch and
    ``refresh()`` itself does not raise.
    """

    def __init__(
        self,
        cache: KnowledgeCacheService,
        web_search: WebSearchService,
        knowledge_config: Optional[KnowledgeConfig] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.cache = cache
        self.web_search = web_search
        self.config = knowledge_config or get_knowledge_config()
        self.notifier = notifier

    def expiry_for(self, category: str, now: datetime) -> datetime:
        days = CATEGORY_EXPIRY_DAYS.get(category, self.config.default_expiry_days)
        return now + timedelta(days=days)

    async def _targets(self, options: RefreshOptions) -> List[str]:
        if options.entry_id:
            return [options.entry_id]
        if options.expired_only:
            entries = await self.cache.get_expired_entries()
        else:
            entries = await self.cache.get_all_entries()
        if options.category:
            entries = [e for e in entries if e.category == options.category]
        return [e.id for e in entries[:options.max_entries]]

    async def refresh(self, options: Optional[RefreshOptions] = None) -> RefreshResult:
        """
        刷新知识条目

        Refresh a single entry (``entry_id``), the expired entries, or every
        entry when ``expired_only`` is off; ``category`` narrows the batch
        and ``max_entries`` caps it.
        """
        options = options or RefreshOptions()
        result = RefreshResult()

        try:
            targets = await self._targets(options)
        except Exception as exc:
            logger.error("Could not list entries to refresh: %s", exc)
            result.failed = 1
            result.details.append(RefreshDetail(id=options.entry_id or "*", status="failed", reason=str(exc)))
            return result

        for entry_id in targets:
            try:
                detail = await self._refresh_entry(entry_id, options.force)
            except Exception as exc:
                logger.error("Refresh of %s failed: %s", entry_id, exc)
                detail = RefreshDetail(id=entry_id, status="failed", reason=str(exc))
            result.details.append(detail)
            if detail.status in ("refreshed", "unchanged"):
                result.refreshed += 1
            elif detail.status == "skipped":
                result.skipped += 1
            else:
                result.failed += 1

        logger.info(
            "Knowledge refresh done: %s refreshed, %s failed, %s skipped",
            result.refreshed, result.failed, result.skipped,
        )

        if result.refreshed and self.notifier is not None:
            try:
                await self.notifier(result)
            except Exception as exc:
                logger.warning("Refresh notifier failed: %s", exc)
        return result

    async def _refresh_entry(self, entry_id: str, force: bool) -> RefreshDetail:
        entry = await self.cache.load_entry(entry_id)
        if entry is None:
            return RefreshDetail(id=entry_id, status="failed", reason="Entry not found")

        now = self.cache.now()
        if not entry.is_expired(now) and not force:
            return RefreshDetail(
                id=entry_id,
                status="skipped",
                reason="Entry not expired (use force to refresh anyway)",
            )

        year = entry.applicable_years[0] if entry.applicable_years else None
        query = build_web_query(entry.original_query or entry.title, entry.category, year)
        found = await self.web_search.search(query, max_results=REFRESH_SEARCH_RESULTS)
        if not found.results:
            reason = "No web results found to refresh with"
            if found.errors:
                reason = f"{reason} ({'; '.join(found.errors)})"
            return RefreshDetail(id=entry_id, status="failed", reason=reason)

        best = found.results[0]
        new_content = best.content or best.snippet
        changes = self.cache.detect_changes(entry, new_content)
        sources = [KnowledgeSource(url=best.url, title=best.title, accessed_at=now)]
        sources.extend(entry.sources[:KEPT_OLD_SOURCES])

        updated: Optional[IndexEntry] = await self.cache.update_entry(
            entry_id,
            EntryUpdate(
                content=new_content,
                summary=best.snippet,
                sources=sources,
                confidence=assess_confidence(best),
                expires_at=self.expiry_for(entry.category, now),
            ),
        )
        if updated is None:
            return RefreshDetail(id=entry_id, status="failed", reason="Entry disappeared during refresh")

        return RefreshDetail(
            id=entry_id,
            status="refreshed" if changes else "unchanged",
            changes=changes,
            previous_expires_at=entry.expires_at,
            new_expires_at=updated.expires_at,
        )
