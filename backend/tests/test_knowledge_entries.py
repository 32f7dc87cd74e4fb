"""Knowledge entry file tests (markdown + YAML front matter)."""
import pytest
from taxadvisor.exceptions import CorruptEntryError, EntryNotFoundError
from taxadvisor.storage.knowledge_entries import (
    KnowledgeEntryStorage,
    dump_front_matter,
    parse_front_matter,
)


@pytest.fixture
def entry_store(knowledge_dir):
    return KnowledgeEntryStorage(str(knowledge_dir))


class TestFrontMatter:
    def test_round_trip(self):
        metadata = {"id": "box3-x", "tags": ["box3", "sparen"], "applicable_years": [2024]}
        text = dump_front_matter(metadata, "# Box 3\n\n--- not a delimiter ---\n")
        assert parse_front_matter(text) == (metadata, "# Box 3\n\n--- not a delimiter ---\n")

    def test_plain_markdown_has_no_metadata(self):
        assert parse_front_matter("# Just text\n") == ({}, "# Just text\n")

    def test_unterminated_block(self):
        with pytest.raises(ValueError):
            parse_front_matter("---\nid: x\nno closing line\n")

    def test_non_mapping_block(self):
        with pytest.raises(ValueError):
            parse_front_matter("---\n- a\n- b\n---\nbody")


def test_location_is_grouped_by_category(entry_store):
    assert entry_store.location_for("box3", "box3-deemed-abc") == "box3/box3-deemed-abc.md"


def test_location_sanitizes_traversal(entry_store):
    location = entry_store.location_for("../etc", "../../passwd")
    assert ".." not in location
    assert location.count("/") == 1


@pytest.mark.asyncio
async def test_write_then_read(entry_store, knowledge_dir):
    location = entry_store.location_for("btw", "btw-rates-1")
    await entry_store.write(location, "Tarieven 21% en 9%.\n", {"id": "btw-rates-1", "confidence": "high"})

    assert (knowledge_dir / "btw" / "btw-rates-1.md").exists()
    metadata, content = await entry_store.read(location)
    assert metadata == {"id": "btw-rates-1", "confidence": "high"}
    assert content == "Tarieven 21% en 9%.\n"


@pytest.mark.asyncio
async def test_read_missing_raises_not_found(entry_store):
    with pytest.raises(EntryNotFoundError):
        await entry_store.read("box3/missing.md")


@pytest.mark.asyncio
async def test_read_malformed_front_matter(entry_store, knowledge_dir):
    (knowledge_dir / "box3").mkdir(parents=True)
    (knowledge_dir / "box3" / "bad.md").write_text("---\nid: [unclosed\n---\nbody", encoding="utf-8")
    with pytest.raises(CorruptEntryError):
        await entry_store.read("box3/bad.md")


@pytest.mark.asyncio
async def test_storage_size_counts_bytes(entry_store, knowledge_dir):
    assert entry_store.storage_size() in (0, None)
    await entry_store.write("general/a.md", "x" * 100, {"id": "a"})
    size = entry_store.storage_size()
    assert size is not None and size > 100
