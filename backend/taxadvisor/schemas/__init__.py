"""
Pydantic Data Models / Pydantic 数据模型
Define data structures for API and internal use / 定义 API 和内部使用的数据结构
"""

from .knowledge import (
    Confidence,
    KnowledgeSource,
    SourceInput,
    IndexEntry,
    KnowledgeEntry,
    KnowledgeIndex,
    KnowledgeSearchQuery,
    KnowledgeSearchResult,
    CacheOptions,
    CacheResult,
    EntryUpdate,
    DetectedChange,
    RecentKnowledge,
    RefreshOptions,
    RefreshDetail,
    RefreshResult,
    KnowledgeStats,
)
from .web_search import WebSearchResult, WebSearchResults, TaxLawSearchResponse

__all__ = [
    "Confidence",
    "KnowledgeSource",
    "SourceInput",
    "IndexEntry",
    "KnowledgeEntry",
    "KnowledgeIndex",
    "KnowledgeSearchQuery",
    "KnowledgeSearchResult",
    "CacheOptions",
    "CacheResult",
    "EntryUpdate",
    "DetectedChange",
    "RecentKnowledge",
    "RefreshOptions",
    "RefreshDetail",
    "RefreshResult",
    "KnowledgeStats",
    "WebSearchResult",
    "WebSearchResults",
    "TaxLawSearchResponse",
]
