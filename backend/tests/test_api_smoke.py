"""Smoke tests for FastAPI endpoints."""
import pytest
from httpx import AsyncClient, ASGITransport
from taxadvisor.dependencies import get_knowledge_cache, get_web_search
from taxadvisor.main import app
from taxadvisor.schemas.web_search import WebSearchResult
from taxadvisor.services.knowledge_cache import KnowledgeCacheService
from taxadvisor.services.web_search import MockWebSearchService
from taxadvisor.storage.knowledge_index import INDEX_FILE_NAME

WEB_HIT = WebSearchResult(
    title="Arbeidskorting",
    url="https://www.belastingdienst.nl/arbeidskorting",
    snippet="Arbeidskorting 2025",
    source="belastingdienst.nl",
    relevance=0.8,
)


@pytest.fixture
async def client(cache):
    app.dependency_overrides[get_knowledge_cache] = lambda: cache
    app.dependency_overrides[get_web_search] = lambda: MockWebSearchService([WEB_HIT])
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create(client, **overrides):
    body = {
        "query": "Box 3 deemed return 2024",
        "content": "# Box 3\n",
        "summary": "box 3 rendement",
        "sources": [{"url": "https://www.belastingdienst.nl/box3", "title": "Box 3"}],
        "category": "box3",
        "expires_in_days": 90,
    }
    body.update(overrides)
    return await client.post("/knowledge/entries", json=body)


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_create_get_and_search(client):
    resp = await _create(client)
    assert resp.status_code == 200
    entry_id = resp.json()["entry_id"]

    resp = await client.get(f"/knowledge/entries/{entry_id}")
    assert resp.status_code == 200
    assert resp.json()["content"] == "# Box 3\n"
    assert resp.json()["popularity_score"] == 1

    resp = await client.get("/api/knowledge/search", params={"query": "box 3"})
    assert resp.status_code == 200
    assert [r["entry"]["id"] for r in resp.json()] == [entry_id]


@pytest.mark.asyncio
async def test_create_validation_error(client):
    resp = await _create(client, category="")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_unknown_entry_404(client):
    resp = await client.get("/knowledge/entries/does-not-exist")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_invalidate_and_expired(client):
    entry_id = (await _create(client)).json()["entry_id"]

    resp = await client.post(f"/knowledge/entries/{entry_id}/invalidate")
    assert resp.json() == {"success": True, "invalidated": True}

    resp = await client.get("/knowledge/expired")
    assert [e["id"] for e in resp.json()] == [entry_id]


@pytest.mark.asyncio
async def test_stats(client):
    await _create(client)
    resp = await client.get("/knowledge/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_entries"] == 1
    assert data["entries_by_category"] == {"box3": 1}


@pytest.mark.asyncio
async def test_refresh_endpoint(client, clock):
    await _create(client, expires_in_days=1)
    clock.advance(days=2)
    resp = await client.post("/knowledge/refresh", json={})
    assert resp.status_code == 200
    assert resp.json()["refreshed"] == 1


@pytest.mark.asyncio
async def test_tax_law_search(client):
    resp = await client.post("/tax-law/search", json={"query": "arbeidskorting"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["from_cache"] is False
    assert data["results"][0]["url"] == WEB_HIT.url

    resp = await client.post("/tax-law/search", json={"query": "arbeidskorting"})
    assert resp.json()["from_cache"] is True


@pytest.mark.asyncio
async def test_corrupt_index_is_503(knowledge_dir, clock):
    knowledge_dir.mkdir(parents=True)
    (knowledge_dir / INDEX_FILE_NAME).write_text("{", encoding="utf-8")
    broken = KnowledgeCacheService(str(knowledge_dir), now=clock)
    app.dependency_overrides[get_knowledge_cache] = lambda: broken
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/knowledge/stats")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_unknown_route_404(client):
    resp = await client.get("/api/nonexistent")
    assert resp.status_code in (404, 405)


@pytest.mark.asyncio
async def test_create_on_corrupt_index_is_503(knowledge_dir, clock):
    knowledge_dir.mkdir(parents=True)
    (knowledge_dir / INDEX_FILE_NAME).write_text("{not json", encoding="utf-8")
    broken = KnowledgeCacheService(str(knowledge_dir), now=clock)
    app.dependency_overrides[get_knowledge_cache] = lambda: broken
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await _create(ac)
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Knowledge cache unavailable"
