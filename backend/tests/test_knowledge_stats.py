"""Statistics aggregation tests."""
from datetime import timedelta

import pytest
from taxadvisor.schemas.knowledge import CacheOptions, Confidence, KnowledgeIndex
from taxadvisor.services.knowledge_stats import build_stats, format_size

from conftest import START


class TestFormatSize:
    def test_bytes(self):
        assert format_size(512) == "512 B"

    def test_kilobytes(self):
        assert format_size(2048) == "2.0 KB"

    def test_megabytes(self):
        assert format_size(3 * 1024 * 1024) == "3.0 MB"

    def test_unknown(self):
        assert format_size(None) == "Unknown"


def test_empty_index():
    stats = build_stats(KnowledgeIndex(last_updated=START), START, 0)
    assert stats.total_entries == 0
    assert stats.entries_by_confidence == {"low": 0, "medium": 0, "high": 0}
    assert stats.average_age_days == 0
    assert stats.oldest_entry is None and stats.newest_entry is None
    assert stats.recommendations == []


def test_build_stats_counts(make_entry):
    now = START + timedelta(days=100)
    index = KnowledgeIndex(
        last_updated=now,
        entries=[
            make_entry("old", category="box3", confidence=Confidence.LOW, popularity_score=5,
                       expires_at=now - timedelta(days=1)),
            make_entry("mid", category="box3", popularity_score=50, created_at=now - timedelta(days=20),
                       updated_at=now - timedelta(days=20), expires_at=now - timedelta(days=3)),
            make_entry("new", category="btw", confidence=Confidence.HIGH, popularity_score=50,
                       created_at=now - timedelta(days=2), updated_at=now - timedelta(days=2),
                       expires_at=now + timedelta(days=5)),
        ],
    )
    stats = build_stats(index, now, 4096)

    assert stats.total_entries == 3
    assert sum(stats.entries_by_category.values()) == stats.total_entries
    assert stats.entries_by_category == {"box3": 2, "btw": 1}
    assert stats.entries_by_confidence == {"low": 1, "medium": 1, "high": 1}
    assert stats.expired_entries == 2
    assert stats.expiring_within_7_days == 1
    assert stats.expiring_within_30_days == 1
    assert stats.recently_updated == 2
    assert stats.average_age_days == round((100 + 20 + 2) / 3)
    assert stats.age_distribution == {"<7d": 1, "7-30d": 1, "30-90d": 0, ">90d": 1}
    assert [e.id for e in stats.most_accessed] == ["mid", "new", "old"]
    assert stats.oldest_entry.id == "old"
    assert stats.newest_entry.id == "new"
    assert stats.storage_size == "4.0 KB"
    assert any("expired" in tip for tip in stats.recommendations)
    assert any("low confidence" in tip for tip in stats.recommendations)


@pytest.mark.asyncio
async def test_cache_stats_three_entries_two_expired(cache, clock):
    for query, days in (("box 3 sparen", 1), ("btw tarief", 1), ("heffingskorting", 365)):
        result = await cache.cache_entry(
            query, "inhoud", "", [], CacheOptions(category="general", expires_in_days=days)
        )
        assert result.success
    clock.advance(days=2)

    stats = await cache.get_stats()
    assert stats.expired_entries == 2
    assert stats.total_entries == 3
    assert sum(stats.entries_by_category.values()) == 3
    assert stats.storage_bytes is not None and stats.storage_bytes > 0
    assert stats.entries_by_confidence["high"] == 3
