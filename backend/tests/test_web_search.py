"""Web search service tests (no network: link-only sources and a patched requests.get)."""
import pytest
import requests
from taxadvisor.config import SearchConfig
from taxadvisor.schemas.web_search import WebSearchResult
from taxadvisor.services import web_search as web_search_module
from taxadvisor.services.web_search import DISABLED_MESSAGE, MockWebSearchService, WebSearchService


def _config(**overrides):
    data = {"rate_limit_delay_ms": 0}
    data.update(overrides)
    return SearchConfig(**data)


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


@pytest.mark.asyncio
async def test_disabled_returns_error():
    service = WebSearchService(_config(enabled=False))
    found = await service.search("box 3")
    assert found.results == []
    assert found.errors == [DISABLED_MESSAGE]


@pytest.mark.asyncio
async def test_link_sources_sorted_and_filtered():
    service = WebSearchService(_config(min_relevance=0.72))
    found = await service.search("box 3")
    assert [r.source for r in found.results] == ["belastingdienst.nl", "rijksoverheid.nl"]
    assert found.total_found == 3
    assert found.results[0].url == "https://www.belastingdienst.nl/zoeken?q=box+3"
    assert found.errors == []


@pytest.mark.asyncio
async def test_max_results_truncates_before_threshold():
    service = WebSearchService(_config(min_relevance=0.0))
    found = await service.search("btw", max_results=1)
    assert len(found.results) == 1
    assert found.results[0].relevance == 0.8


@pytest.mark.asyncio
async def test_unknown_source_yields_nothing():
    service = WebSearchService(_config(sources=["example.com"]))
    found = await service.search("btw")
    assert found.results == []
    assert found.sources == ["example.com"]


@pytest.mark.asyncio
async def test_endpoint_results(monkeypatch):
    calls = []

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.append(params)
        return _FakeResponse([
            {"title": "Box 3", "url": f"https://www.{params['site']}/box3", "snippet": "Sparen en beleggen",
             "content": "Volledige tekst", "relevance": 0.9},
            {"title": "zonder url"},
        ])

    monkeypatch.setattr(web_search_module.requests, "get", fake_get)
    service = WebSearchService(_config(endpoint="https://search.local/api", sources=["belastingdienst.nl"]))
    found = await service.search("box 3")

    assert calls == [{"q": "box 3", "site": "belastingdienst.nl", "limit": 5}]
    [hit] = found.results
    assert hit.url == "https://www.belastingdienst.nl/box3"
    assert hit.content == "Volledige tekst"
    assert hit.relevance == 0.9


@pytest.mark.asyncio
async def test_endpoint_failures_are_collected(monkeypatch):
    def fake_get(url, params=None, headers=None, timeout=None):
        if params["site"] == "wetten.nl":
            raise requests.ConnectionError("connection refused")
        return _FakeResponse({"not": "a list"})

    monkeypatch.setattr(web_search_module.requests, "get", fake_get)
    service = WebSearchService(_config(endpoint="https://search.local/api", sources=["wetten.nl", "rijksoverheid.nl"]))
    found = await service.search("btw")

    assert found.results == []
    assert len(found.errors) == 2
    assert found.errors[0].startswith("Failed to search wetten.nl")
    assert "Unexpected response payload" in found.errors[1]


@pytest.mark.asyncio
async def test_rate_limit_waits_between_requests(monkeypatch):
    ticks = iter([100.0, 100.2, 100.2])
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(web_search_module.asyncio, "sleep", fake_sleep)
    service = WebSearchService(_config(rate_limit_delay_ms=1000), monotonic=lambda: next(ticks))
    await service.search("eerste")
    await service.search("tweede")

    assert sleeps == [pytest.approx(0.8)]


@pytest.mark.asyncio
async def test_mock_service_records_queries():
    preset = [WebSearchResult(title="KOR", url="https://www.belastingdienst.nl/kor", snippet="Kleineondernemersregeling")]
    service = MockWebSearchService(preset)
    found = await service.search("kor")
    assert found.results == preset
    assert service.queries == ["kor"]
