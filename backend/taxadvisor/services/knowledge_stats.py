# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  知识库统计 - 基于索引一次遍历得出分类、置信度、过期、年龄分布等汇总。
  Knowledge statistics - single pass over the index producing category, confidence,
  expiry and age summaries, plus maintenance recommendations.
"""

from datetime import datetime
from typing import Dict, List, Optional

from taxadvisor.schemas.knowledge import Confidence, IndexEntry, KnowledgeIndex, KnowledgeStats
from taxadvisor.utils.timeutil import age_in_days

RECENT_DAYS = 30
MOST_ACCESSED_LIMIT = 5
UNKNOWN_SIZE = "Unknown"

AGE_BUCKETS = ("<7d", "7-30d", "30-90d", ">90d")


def format_size(num_bytes: Optional[int]) -> str:
    """Human readable byte count (``B``/``KB``/``MB``); ``Unknown`` for ``None``."""
    if num_bytes is None:
        return UNKNOWN_SIZE
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.1f} MB"


def _age_bucket(days: float) -> str:
    if days < 7:
        return "<7d"
    if days < 30:
        return "7-30d"
    if days < 90:
        return "30-90d"
    return ">90d"


def _recommendations(stats: KnowledgeStats) -> List[str]:
    tips = []
    if stats.expired_entries:
        tips.append(
            f"{stats.expired_entries} entries are expired. Run: python scripts/knowledge_refresh.py --expired"
        )
    if stats.expiring_within_7_days > 5:
        tips.append(
            f"{stats.expiring_within_7_days} entries expire within 7 days. Consider running a refresh."
        )
    low = stats.entries_by_confidence.get(Confidence.LOW.value, 0)
    if stats.total_entries and low > stats.total_entries * 0.2:
        tips.append(f"{low} entries have low confidence. Consider reviewing their sources.")
    return tips


def build_stats(index: KnowledgeIndex, now: datetime, storage_bytes: Optional[int]) -> KnowledgeStats:
    """
    汇总统计

    Build :class:`KnowledgeStats` from the index alone. Confidence is read
    from the index mirror, so no content file is opened.
    """
    entries = index.entries
    by_category: Dict[str, int] = {}
    by_confidence: Dict[str, int] = {c.value: 0 for c in Confidence}
    age_distribution: Dict[str, int] = {bucket: 0 for bucket in AGE_BUCKETS}
    expired = recent = expiring_7 = expiring_30 = 0
    total_age = 0.0

    for entry in entries:
        by_category[entry.category] = by_category.get(entry.category, 0) + 1
        by_confidence[entry.confidence.value] = by_confidence.get(entry.confidence.value, 0) + 1

        if entry.is_expired(now):
            expired += 1
        elif entry.expires_at is not None:
            days_left = -age_in_days(entry.expires_at, now)
            if days_left <= 7:
                expiring_7 += 1
            if days_left <= 30:
                expiring_30 += 1

        if age_in_days(entry.updated_at, now) < RECENT_DAYS:
            recent += 1

        age = age_in_days(entry.created_at, now)
        total_age += age
        age_distribution[_age_bucket(age)] += 1

    by_date: List[IndexEntry] = sorted(entries, key=lambda e: e.created_at)

    stats = KnowledgeStats(
        total_entries=len(entries),
        entries_by_category=by_category,
        entries_by_confidence=by_confidence,
        expired_entries=expired,
        recently_updated=recent,
        average_age_days=round(total_age / len(entries)) if entries else 0,
        age_distribution=age_distribution,
        expiring_within_7_days=expiring_7,
        expiring_within_30_days=expiring_30,
        most_accessed=sorted(entries, key=lambda e: e.popularity_score, reverse=True)[:MOST_ACCESSED_LIMIT],
        oldest_entry=by_date[0] if by_date else None,
        newest_entry=by_date[-1] if by_date else None,
        storage_size=format_size(storage_bytes),
        storage_bytes=storage_bytes,
    )
    stats.recommendations = _recommendations(stats)
    return stats
