"""
Knowledge cache data models.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from taxadvisor.utils.timeutil import ensure_utc

INDEX_FORMAT_VERSION = "1.0"


class Confidence(str, Enum):
    """How much an entry's source can be trusted."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class KnowledgeSource(BaseModel):
    """Provenance of cached information."""

    url: str = Field(..., description="Source URL")
    title: str = Field(default="", description="Source title")
    accessed_at: datetime = Field(..., description="When the source was fetched")


class SourceInput(BaseModel):
    """Source as supplied by a caller; ``accessed_at`` is stamped on caching."""

    url: str
    title: str = ""


class IndexEntry(BaseModel):
    """Entry metadata as kept in the index (no content)."""

    id: str = Field(..., description="Immutable entry id")
    content_location: str = Field(..., description="Path of the content file, relative to the cache root")
    title: str
    category: str
    tags: List[str] = Field(default_factory=list)
    sources: List[KnowledgeSource] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    expires_at: Optional[datetime] = Field(default=None, description="None means the entry never expires")
    supersedes: Optional[str] = Field(default=None, description="Id of the entry this one replaced")
    popularity_score: int = Field(default=0, ge=0, le=100)
    applicable_years: List[int] = Field(default_factory=list)
    summary: str = ""
    confidence: Confidence = Confidence.MEDIUM
    original_query: str = ""

    @field_validator("created_at", "updated_at", "expires_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        return list(dict.fromkeys(tags))

    @field_validator("applicable_years")
    @classmethod
    def _dedupe_years(cls, years: List[int]) -> List[int]:
        return list(dict.fromkeys(years))

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class KnowledgeEntry(IndexEntry):
    """Full entry: index metadata plus content."""

    content: str = ""
    related_entries: List[str] = Field(default_factory=list)


class KnowledgeIndex(BaseModel):
    """Root record of the cache."""

    version: str = INDEX_FORMAT_VERSION
    last_updated: datetime
    entries: List[IndexEntry] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    total_entries: int = 0

    def find(self, entry_id: str) -> Optional[IndexEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None


class KnowledgeSearchQuery(BaseModel):
    """Free-text query plus optional filters for the local cache."""

    query: str = ""
    category: Optional[str] = None
    tax_year: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    include_expired: bool = False
    min_relevance: float = Field(default=0.0, ge=0.0, le=1.0)
    max_results: int = Field(default=10, gt=0)


class KnowledgeSearchResult(BaseModel):
    """Ranked search hit."""

    entry: IndexEntry
    relevance: float = Field(..., ge=0.0, le=1.0)
    matched_fields: List[str] = Field(default_factory=list)
    excerpt: str = ""
    is_expired: bool = False


class CacheOptions(BaseModel):
    """Options for caching a new entry."""

    category: str = ""
    tags: Optional[List[str]] = None
    applicable_years: Optional[List[int]] = None
    expires_in_days: Optional[int] = None
    confidence: Confidence = Confidence.HIGH
    supersedes: Optional[str] = None


class CacheResult(BaseModel):
    """Outcome of ``cache_entry``."""

    success: bool
    entry_id: Optional[str] = None
    error: Optional[str] = None
    failure: Optional[Literal["validation", "io"]] = None


class EntryUpdate(BaseModel):
    """Fields a refresh may replace in place."""

    content: Optional[str] = None
    summary: Optional[str] = None
    sources: Optional[List[KnowledgeSource]] = None
    confidence: Optional[Confidence] = None
    expires_at: Optional[datetime] = None


class DetectedChange(BaseModel):
    """Coarse change between cached and fresh content."""

    field: str
    old_excerpt: str
    new_excerpt: str
    significance: Literal["low", "medium", "high"] = "medium"


class RecentKnowledge(BaseModel):
    """Answer of ``has_recent_knowledge``."""

    found: bool
    entry: Optional[IndexEntry] = None
    is_expired: bool = False


class RefreshOptions(BaseModel):
    """Which entries a refresh pass should revalidate."""

    entry_id: Optional[str] = None
    category: Optional[str] = None
    expired_only: bool = True
    force: bool = False
    max_entries: int = Field(default=100, gt=0)


class RefreshDetail(BaseModel):
    """Per-entry refresh outcome."""

    id: str
    status: Literal["refreshed", "unchanged", "failed", "skipped"]
    reason: Optional[str] = None
    changes: List[DetectedChange] = Field(default_factory=list)
    previous_expires_at: Optional[datetime] = None
    new_expires_at: Optional[datetime] = None


class RefreshResult(BaseModel):
    """Aggregated outcome of a refresh pass."""

    refreshed: int = 0
    failed: int = 0
    skipped: int = 0
    details: List[RefreshDetail] = Field(default_factory=list)


class KnowledgeStats(BaseModel):
    """Summary of the cache contents."""

    total_entries: int = 0
    entries_by_category: Dict[str, int] = Field(default_factory=dict)
    entries_by_confidence: Dict[str, int] = Field(default_factory=dict)
    expired_entries: int = 0
    recently_updated: int = Field(default=0, description="Updated within the last 30 days")
    average_age_days: int = 0
    age_distribution: Dict[str, int] = Field(default_factory=dict)
    expiring_within_7_days: int = 0
    expiring_within_30_days: int = 0
    most_accessed: List[IndexEntry] = Field(default_factory=list)
    oldest_entry: Optional[IndexEntry] = None
    newest_entry: Optional[IndexEntry] = None
    storage_size: str = "Unknown"
    storage_bytes: Optional[int] = None
    recommendations: List[str] = Field(default_factory=list)
