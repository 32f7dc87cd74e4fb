# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  知识缓存服务 - 条目的创建、替换、失效、读取计数、本地检索与统计。
  Knowledge cache service - creates, supersedes, invalidates and reads entries,
  tracks popularity, searches the local index and reports statistics.

并发 / Concurrency:
  索引整体读-改-写，同一进程内由 AsyncFileLock 串行化；不支持多进程同时写入。
  The index is rewritten as a whole on every change. Writers inside one process
  are serialized by AsyncFileLock; several writer processes are not supported.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from taxadvisor.exceptions import CorruptEntryError, CorruptIndexError, EntryNotFoundError, StorageError
from taxadvisor.schemas.knowledge import (
    CacheOptions,
    CacheResult,
    Confidence,
    DetectedChange,
    EntryUpdate,
    IndexEntry,
    KnowledgeEntry,
    KnowledgeIndex,
    KnowledgeSearchQuery,
    KnowledgeSearchResult,
    KnowledgeSource,
    KnowledgeStats,
    RecentKnowledge,
    SourceInput,
)
from taxadvisor.services.knowledge_stats import build_stats
from taxadvisor.services.relevance import rank_entries
from taxadvisor.storage.file_lock import AsyncFileLock
from taxadvisor.storage.knowledge_entries import KnowledgeEntryStorage
from taxadvisor.storage.knowledge_index import KnowledgeIndexStorage
from taxadvisor.utils.logger import get_logger
from taxadvisor.utils.path_safety import sanitize_id
from taxadvisor.utils.text import slugify, tags_from_query, title_from_query
from taxadvisor.utils.timeutil import Clock, age_in_days, utc_now

logger = get_logger(__name__)

MAX_POPULARITY = 100
MAX_RELATED_ENTRIES = 5
CHANGE_EXCERPT_LENGTH = 100

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

SourceLike = Union[SourceInput, Mapping[str, Any]]


def _base36(value: int) -> str:
    digits = ""
    while value:
        value, remainder = divmod(value, 36)
        digits = _BASE36_DIGITS[remainder] + digits
    return digits or "0"


def _front_matter(entry: IndexEntry) -> Dict[str, Any]:
    """Metadata written at the top of the entry file."""
    return entry.model_dump(
        mode="json",
        include={
            "id",
            "title",
            "category",
            "tags",
            "sources",
            "created_at",
            "updated_at",
            "expires_at",
            "applicable_years",
            "confidence",
            "supersedes",
            "original_query",
        },
        exclude_none=True,
    )


class KnowledgeCacheService:
    """
    知识缓存服务

    Local, file-backed cache of tax knowledge.

    Construct one instance per knowledge directory and pass it to whoever
    needs it. ``initialize()`` loads or creates the index; other operations
    call it themselves when it has not run yet.

    Attributes:
        index_storage: 索引存储 / Index store
        entry_storage: 条目存储 / Entry content store
    """

    def __init__(self, base_path: Optional[str] = None, now: Clock = utc_now):
        self.index_storage = KnowledgeIndexStorage(base_path)
        self.entry_storage = KnowledgeEntryStorage(base_path)
        self._now = now
        self._index: Optional[KnowledgeIndex] = None
        self._file_lock = AsyncFileLock()

    @property
    def base_path(self) -> Path:
        return self.index_storage.root_dir

    def now(self) -> datetime:
        return self._now()

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> KnowledgeIndex:
        """
        初始化缓存

        Load the index, creating an empty one on first use.

        Raises:
            CorruptIndexError: the existing index cannot be read
        """
        self._index = await self.index_storage.initialize(self._now())
        return self._index

    async def _ensure_initialized(self) -> KnowledgeIndex:
        if self._index is None:
            return await self.initialize()
        return self._index

    async def _save(self, index: KnowledgeIndex) -> None:
        await self.index_storage.save(index, self._now())

    def _write_lock(self):
        return self._file_lock.lock(self.index_storage.index_path)

    # ------------------------------------------------------------------
    # Creating entries
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(query: str, options: CacheOptions) -> Optional[str]:
        if not query or not query.strip():
            return "Query must not be empty"
        if not options.category or not options.category.strip():
            return "Category is required"
        try:
            sanitize_id(options.category)
        except ValueError:
            return f"Invalid category: {options.category!r}"
        if options.expires_in_days is not None and options.expires_in_days <= 0:
            return "expires_in_days must be a positive number of days"
        return None

    def _generate_id(self, query: str, category: str, index: KnowledgeIndex) -> str:
        """``<category>-<query slug>-<base36 ms timestamp>``, bumped until unused."""
        prefix = f"{sanitize_id(category)}-{slugify(query) or 'entry'}"
        stamp = int(self._now().timestamp() * 1000)
        while True:
            entry_id = f"{prefix}-{_base36(stamp)}"
            location = self.entry_storage.location_for(category, entry_id)
            if index.find(entry_id) is None and not self.entry_storage.exists(location):
                return entry_id
            stamp += 1

    async def cache_entry(
        self,
        query: str,
        content: str,
        summary: str,
        sources: Sequence[SourceLike],
        options: CacheOptions,
    ) -> CacheResult:
        """
        缓存新条目

        Store a new entry and index it. When ``options.supersedes`` is set,
        the superseded id leaves the index in the same save that adds the new
        entry.

        Returns:
            ``CacheResult`` with the new id, or with ``failure`` set to
            ``"validation"`` (nothing was written) or ``"io"``
        """
        problem = self._validate(query, options)
        if problem:
            logger.warning("Rejected knowledge entry for query %r: %s", query, problem)
            return CacheResult(success=False, error=problem, failure="validation")

        try:
            async with self._write_lock():
                index = await self._ensure_initialized()
                now = self._now()
                entry_id = self._generate_id(query, options.category, index)
                entry = IndexEntry(
                    id=entry_id,
                    content_location=self.entry_storage.location_for(options.category, entry_id),
                    title=title_from_query(query.strip()),
                    category=options.category,
                    tags=options.tags if options.tags is not None else tags_from_query(query),
                    sources=[
                        KnowledgeSource(url=s.url, title=s.title, accessed_at=now)
                        for s in (SourceInput.model_validate(src) for src in sources)
                    ],
                    created_at=now,
                    updated_at=now,
                    expires_at=now + timedelta(days=options.expires_in_days)
                    if options.expires_in_days is not None
                    else None,
                    supersedes=options.supersedes,
                    popularity_score=0,
                    applicable_years=options.applicable_years
                    if options.applicable_years is not None
                    else [now.year],
                    summary=summary or "",
                    confidence=options.confidence,
                    original_query=query.strip(),
                )

                await self.entry_storage.write(entry.content_location, content, _front_matter(entry))

                previous = list(index.entries)
                if entry.supersedes:
                    index.entries = [e for e in index.entries if e.id != entry.supersedes]
                index.entries.append(entry)
                try:
                    await self._save(index)
                except Exception:
                    index.entries = previous
                    raise
        except CorruptIndexError:
            raise
        except (StorageError, OSError, ValueError) as exc:
            logger.error("Failed to cache knowledge entry for query %r: %s", query, exc)
            return CacheResult(success=False, error=str(exc), failure="io")

        if entry.supersedes:
            logger.info("Cached knowledge entry %s (supersedes %s)", entry_id, entry.supersedes)
        else:
            logger.info("Cached knowledge entry %s", entry_id)
        return CacheResult(success=True, entry_id=entry_id)

    # ------------------------------------------------------------------
    # Reading entries
    # ------------------------------------------------------------------

    async def load_entry(self, entry_id: str) -> Optional[KnowledgeEntry]:
        """
        Full entry without recording an access. ``None`` when the id is not
        indexed or its content file is gone or unreadable.
        """
        index = await self._ensure_initialized()
        index_entry = index.find(entry_id)
        if index_entry is None:
            return None

        try:
            metadata, content = await self.entry_storage.read(index_entry.content_location)
        except EntryNotFoundError:
            logger.warning("Knowledge entry %s content unavailable at %s", entry_id, index_entry.content_location)
            return None
        except CorruptEntryError as exc:
            logger.error("Knowledge entry %s content unreadable: %s", entry_id, exc)
            return None

        try:
            confidence = Confidence(metadata.get("confidence", index_entry.confidence))
        except ValueError:
            confidence = index_entry.confidence

        data = index_entry.model_dump()
        data["confidence"] = confidence
        return KnowledgeEntry(
            **data,
            content=content,
            related_entries=self.find_related_entries(index_entry),
        )

    async def get_entry(self, entry_id: str) -> Optional[KnowledgeEntry]:
        """
        获取条目（计入访问）

        Full entry by id, or ``None``. A successful read raises the entry's
        popularity by one (capped at 100) and persists the index.
        """
        entry = await self.load_entry(entry_id)
        if entry is None:
            return None

        popularity = await self.record_access(entry_id)
        if popularity is not None:
            entry.popularity_score = popularity
        return entry

    async def record_access(self, entry_id: str) -> Optional[int]:
        """Bump popularity by one, capped at 100. Returns the new score."""
        async with self._write_lock():
            index = await self._ensure_initialized()
            entry = index.find(entry_id)
            if entry is None:
                return None
            entry.popularity_score = min(MAX_POPULARITY, entry.popularity_score + 1)
            await self._save(index)
            return entry.popularity_score

    async def get_all_entries(self) -> List[IndexEntry]:
        index = await self._ensure_initialized()
        return [e.model_copy(deep=True) for e in index.entries]

    def find_related_entries(self, entry: IndexEntry) -> List[str]:
        """Ids sharing the category or a tag with *entry*, index order, at most 5."""
        if self._index is None:
            return []
        related = []
        tags = set(entry.tags)
        for other in self._index.entries:
            if other.id == entry.id:
                continue
            if other.category == entry.category or tags.intersection(other.tags):
                related.append(other.id)
                if len(related) == MAX_RELATED_ENTRIES:
                    break
        return related

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_local(self, query: KnowledgeSearchQuery) -> List[KnowledgeSearchResult]:
        """
        本地检索

        Rank index entries against *query*. Never raises for "no results".
        """
        index = await self._ensure_initialized()
        results = rank_entries(index.entries, query, self._now())
        for result in results:
            result.entry = result.entry.model_copy(deep=True)
        return results

    async def has_recent_knowledge(self, query: str, max_age_days: int = 30) -> RecentKnowledge:
        """
        Whether the best local match is fresh: updated within *max_age_days*
        and not expired.
        """
        results = await self.search_local(
            KnowledgeSearchQuery(query=query, max_results=1, include_expired=True)
        )
        if not results:
            return RecentKnowledge(found=False)

        top = results[0]
        fresh = age_in_days(top.entry.updated_at, self._now()) <= max_age_days
        return RecentKnowledge(found=fresh and not top.is_expired, entry=top.entry, is_expired=top.is_expired)

    # ------------------------------------------------------------------
    # Expiry and refresh support
    # ------------------------------------------------------------------

    async def invalidate_entry(self, entry_id: str) -> bool:
        """
        使条目失效

        Mark an entry expired as of now. The content stays readable but
        default searches skip it. Unknown ids are a no-op (returns False).
        """
        async with self._write_lock():
            index = await self._ensure_initialized()
            entry = index.find(entry_id)
            if entry is None:
                return False
            entry.expires_at = self._now()
            await self._save(index)
        logger.info("Invalidated knowledge entry %s", entry_id)
        return True

    async def get_expired_entries(self) -> List[IndexEntry]:
        index = await self._ensure_initialized()
        now = self._now()
        return [e.model_copy(deep=True) for e in index.entries if e.is_expired(now)]

    async def update_entry(self, entry_id: str, update: EntryUpdate) -> Optional[IndexEntry]:
        """
        原地刷新条目

        Replace content/summary/sources/confidence/expiry of an existing entry,
        bump ``updated_at`` and rewrite both the entry file and the index.
        ``None`` when the id is unknown.
        """
        async with self._write_lock():
            index = await self._ensure_initialized()
            entry = index.find(entry_id)
            if entry is None:
                return None

            try:
                _metadata, previous_content = await self.entry_storage.read(entry.content_location)
            except EntryNotFoundError:
                previous_content = None
            content = update.content if update.content is not None else (previous_content or "")

            before = entry.model_copy(deep=True)
            if update.summary is not None:
                entry.summary = update.summary
            if update.sources is not None:
                entry.sources = list(update.sources)
            if update.confidence is not None:
                entry.confidence = update.confidence
            if update.expires_at is not None:
                entry.expires_at = update.expires_at
            entry.updated_at = self._now()

            try:
                await self.entry_storage.write(entry.content_location, content, _front_matter(entry))
                await self._save(index)
            except Exception:
                index.entries = [before if e.id == entry_id else e for e in index.entries]
                await self._restore_entry_file(before, previous_content)
                raise

        logger.info("Updated knowledge entry %s", entry_id)
        return entry.model_copy(deep=True)

    async def _restore_entry_file(self, entry: IndexEntry, content: Optional[str]) -> None:
        """Put the entry file back the way it was before a failed update."""
        try:
            if content is None:
                self.entry_storage.resolve(entry.content_location).unlink(missing_ok=True)
            else:
                await self.entry_storage.write(entry.content_location, content, _front_matter(entry))
        except (StorageError, OSError) as exc:
            logger.error("Could not restore knowledge entry %s after failed update: %s", entry.id, exc)

    @staticmethod
    def detect_changes(old_entry: KnowledgeEntry, new_content: str) -> List[DetectedChange]:
        """
        Coarse diff: one ``content`` change of medium significance when the
        text differs at all. No semantic comparison is attempted.
        """
        if old_entry.content == new_content:
            return []
        return [
            DetectedChange(
                field="content",
                old_excerpt=old_entry.content[:CHANGE_EXCERPT_LENGTH] + "...",
                new_excerpt=new_content[:CHANGE_EXCERPT_LENGTH] + "...",
                significance="medium",
            )
        ]

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def get_stats(self) -> KnowledgeStats:
        index = await self._ensure_initialized()
        return build_stats(index.model_copy(deep=True), self._now(), self.entry_storage.storage_size())
