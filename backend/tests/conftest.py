"""Pytest configuration for TaxAdvisor backend tests."""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the backend package is importable
backend_root = Path(__file__).resolve().parent.parent
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

from taxadvisor.schemas.knowledge import CacheOptions, IndexEntry  # noqa: E402
from taxadvisor.services.knowledge_cache import KnowledgeCacheService  # noqa: E402

START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def knowledge_dir(tmp_path):
    return tmp_path / "knowledge"


@pytest.fixture
def cache(knowledge_dir, clock):
    return KnowledgeCacheService(str(knowledge_dir), now=clock)


@pytest.fixture
def make_entry():
    def _make(entry_id="entry", **overrides):
        data = {
            "id": entry_id,
            "content_location": f"general/{entry_id}.md",
            "title": entry_id.replace("-", " ").title(),
            "category": "general",
            "created_at": START,
            "updated_at": START,
        }
        data.update(overrides)
        return IndexEntry(**data)

    return _make


@pytest.fixture
def cache_box3(cache):
    """Cache the canonical box 3 entry and return its id."""

    async def _cache(**options):
        opts = {"category": "box3", "expires_in_days": 90}
        opts.update(options)
        result = await cache.cache_entry(
            "Box 3 deemed return 2024",
            "# Box 3\n\nDeemed return on savings and investments.\n",
            "Deemed return rates for box 3 in 2024",
            [{"url": "https://www.belastingdienst.nl/box3", "title": "Box 3"}],
            CacheOptions(**opts),
        )
        assert result.success, result.error
        return result.entry_id

    return _cache
