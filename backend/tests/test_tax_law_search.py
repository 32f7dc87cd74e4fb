"""Cache-first tax law search tests."""
import pytest
from taxadvisor.config import KnowledgeConfig
from taxadvisor.schemas.knowledge import CacheOptions, Confidence
from taxadvisor.schemas.web_search import WebSearchResult
from taxadvisor.services.knowledge_cache import KnowledgeCacheService
from taxadvisor.services.tax_law_search import (
    CACHE_DISCLAIMER,
    WEB_DISCLAIMER,
    TaxLawSearchService,
)
from taxadvisor.services.web_search import MockWebSearchService
from taxadvisor.storage.knowledge_index import INDEX_FILE_NAME

KOR = WebSearchResult(
    title="Kleineondernemersregeling",
    url="https://www.belastingdienst.nl/kor",
    snippet="De KOR geldt bij een omzet tot 20.000 euro",
    source="belastingdienst.nl",
    relevance=0.8,
)


def _service(cache, results=(KOR,), **config):
    web = MockWebSearchService(list(results))
    return TaxLawSearchService(cache, web, KnowledgeConfig(**config)), web


async def _cache_kor(cache, days=30):
    result = await cache.cache_entry(
        "kor drempel",
        "Omzetgrens",
        "KOR omzetgrens",
        [{"url": "https://www.belastingdienst.nl/kor", "title": "Belastingdienst"}],
        CacheOptions(category="btw", expires_in_days=days),
    )
    return result.entry_id


@pytest.mark.asyncio
async def test_fresh_cache_hit_skips_web(cache):
    entry_id = await _cache_kor(cache)
    service, web = _service(cache)

    response = await service.search("kor")
    assert response.from_cache is True
    assert response.cache_id == entry_id
    assert response.disclaimer == CACHE_DISCLAIMER
    assert response.results[0].url == "https://www.belastingdienst.nl/kor"
    assert response.results[0].snippet == "KOR omzetgrens"
    assert web.queries == []


@pytest.mark.asyncio
async def test_miss_searches_web_and_caches(cache):
    service, web = _service(cache)

    response = await service.search("kleineondernemersregeling", category="btw", year=2025)
    assert response.from_cache is False
    assert response.disclaimer == WEB_DISCLAIMER
    assert response.results == [KOR]
    assert web.queries[0].startswith("kleineondernemersregeling site:")

    entry = await cache.load_entry(response.cached_entry_id)
    assert entry.category == "btw"
    assert entry.applicable_years == [2025]
    assert entry.confidence == Confidence.HIGH
    assert "Kleineondernemersregeling" in entry.content
    assert [s.url for s in entry.sources] == ["https://www.belastingdienst.nl/kor"]


@pytest.mark.asyncio
async def test_expired_hit_is_superseded(cache, clock):
    stale_id = await _cache_kor(cache, days=1)
    clock.advance(days=2)
    service, web = _service(cache)

    response = await service.search("kor")
    assert response.from_cache is False
    assert len(web.queries) == 1

    entries = await cache.get_all_entries()
    assert [e.id for e in entries] == [response.cached_entry_id]
    assert entries[0].supersedes == stale_id


@pytest.mark.asyncio
async def test_force_refresh_bypasses_fresh_hit(cache):
    old_id = await _cache_kor(cache)
    service, web = _service(cache)

    response = await service.search("kor", force_refresh=True)
    assert response.from_cache is False
    assert web.queries
    [entry] = await cache.get_all_entries()
    assert entry.supersedes == old_id


@pytest.mark.asyncio
async def test_popularity_alone_is_not_a_hit(cache):
    await _cache_kor(cache)
    service, web = _service(cache)

    response = await service.search("hypotheekrenteaftrek")
    assert response.from_cache is False
    assert web.queries


@pytest.mark.asyncio
async def test_auto_cache_off(cache):
    service, _ = _service(cache, auto_cache=False)
    response = await service.search("kor")
    assert response.cached_entry_id is None
    assert await cache.get_all_entries() == []


@pytest.mark.asyncio
async def test_low_confidence_not_cached(cache):
    blog = WebSearchResult(title="Blog", url="https://blog.example.com/kor", snippet="iets", relevance=0.9)
    service, _ = _service(cache, results=(blog,), min_confidence="medium")
    response = await service.search("kor")
    assert response.results == [blog]
    assert response.cached_entry_id is None


@pytest.mark.asyncio
async def test_corrupt_index_falls_back_to_web(knowledge_dir, clock):
    knowledge_dir.mkdir(parents=True)
    (knowledge_dir / INDEX_FILE_NAME).write_text("garbage", encoding="utf-8")
    cache = KnowledgeCacheService(str(knowledge_dir), now=clock)
    service, web = _service(cache)

    response = await service.search("kor")
    assert response.from_cache is False
    assert response.results == [KOR]
    assert response.cached_entry_id is None
    assert (knowledge_dir / INDEX_FILE_NAME).read_text(encoding="utf-8") == "garbage"


@pytest.mark.asyncio
async def test_knowledge_disabled_goes_straight_to_web(cache):
    await _cache_kor(cache)
    service, web = _service(cache, enabled=False)
    response = await service.search("kor")
    assert response.from_cache is False
    assert web.queries
    assert len(await cache.get_all_entries()) == 1
