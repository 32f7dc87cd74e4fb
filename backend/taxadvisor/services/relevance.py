# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  相关度排序 - 对索引条目做过滤、子串打分和稳定排序，不读取正文。
  Relevance ranking - filters, substring scoring and stable ordering over index
  entries; never touches entry content.

打分规则 / Scoring:
  title 命中 +0.4, summary 命中 +0.3, 每个命中的 tag +0.1, 热度 ×0.2，上限 1.0。
  空查询只看热度。
  Title hit +0.4, summary hit +0.3, +0.1 per matching tag, +0.2 × popularity/100,
  capped at 1.0. An empty query scores by popularity alone.
"""

from datetime import datetime
from typing import Iterable, List

from taxadvisor.schemas.knowledge import IndexEntry, KnowledgeSearchQuery, KnowledgeSearchResult
from taxadvisor.utils.text import excerpt_around

TITLE_WEIGHT = 0.4
SUMMARY_WEIGHT = 0.3
TAG_WEIGHT = 0.1
POPULARITY_WEIGHT = 0.2
EXCERPT_LENGTH = 150


def calculate_relevance(entry: IndexEntry, query: str) -> float:
    """Score *entry* against *query* in ``[0, 1]``."""
    if not query:
        return entry.popularity_score / 100

    needle = query.lower()
    score = 0.0
    if needle in entry.title.lower():
        score += TITLE_WEIGHT
    if needle in entry.summary.lower():
        score += SUMMARY_WEIGHT
    score += TAG_WEIGHT * sum(1 for tag in entry.tags if needle in tag.lower())
    score += POPULARITY_WEIGHT * (entry.popularity_score / 100)
    return min(1.0, score)


def matched_fields(entry: IndexEntry, query: str) -> List[str]:
    """Names of the fields the query hits, in ``title, summary, tags`` order."""
    if not query:
        return []

    needle = query.lower()
    fields = []
    if needle in entry.title.lower():
        fields.append("title")
    if needle in entry.summary.lower():
        fields.append("summary")
    if any(needle in tag.lower() for tag in entry.tags):
        fields.append("tags")
    return fields


def filter_entries(
    entries: Iterable[IndexEntry],
    query: KnowledgeSearchQuery,
    now: datetime,
) -> List[IndexEntry]:
    """Apply category, year, tag and expiry filters, in that order."""
    results = list(entries)
    if query.category:
        results = [e for e in results if e.category == query.category]
    if query.tax_year is not None:
        results = [e for e in results if query.tax_year in e.applicable_years]
    if query.tags:
        wanted = set(query.tags)
        results = [e for e in results if wanted.intersection(e.tags)]
    if not query.include_expired:
        results = [e for e in results if not e.is_expired(now)]
    return results


def rank_entries(
    entries: Iterable[IndexEntry],
    query: KnowledgeSearchQuery,
    now: datetime,
) -> List[KnowledgeSearchResult]:
    """
    过滤、打分、排序

    Filter, score and sort entries. Ties keep their index order (``sorted``
    is stable), so identical inputs always give identical output. An empty
    list is a normal outcome.
    """
    scored = [
        KnowledgeSearchResult(
            entry=entry,
            relevance=calculate_relevance(entry, query.query),
            matched_fields=matched_fields(entry, query.query),
            excerpt=excerpt_around(entry.summary, query.query, EXCERPT_LENGTH),
            is_expired=entry.is_expired(now),
        )
        for entry in filter_entries(entries, query, now)
    ]
    scored = [r for r in scored if r.relevance >= query.min_relevance]
    scored = sorted(scored, key=lambda r: r.relevance, reverse=True)
    return scored[:query.max_results]
