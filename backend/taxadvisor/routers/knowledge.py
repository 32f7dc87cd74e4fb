# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  知识库路由 - 检索、读取、缓存、失效、过期列表、统计与刷新 API，以及缓存优先的税法检索。
  Knowledge router - search, read, cache, invalidate, expired list, stats and refresh
  endpoints, plus the cache-first tax law search.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from taxadvisor.config import get_knowledge_config
from taxadvisor.dependencies import get_knowledge_cache, get_refresh_service, get_tax_law_search
from taxadvisor.exceptions import ValidationError
from taxadvisor.schemas.knowledge import (
    CacheOptions,
    CacheResult,
    Confidence,
    IndexEntry,
    KnowledgeEntry,
    KnowledgeSearchQuery,
    KnowledgeSearchResult,
    KnowledgeStats,
    RefreshOptions,
    RefreshResult,
    SourceInput,
)
from taxadvisor.schemas.web_search import TaxLawSearchResponse
from taxadvisor.services.knowledge_cache import KnowledgeCacheService
from taxadvisor.services.knowledge_refresh import KnowledgeRefreshService
from taxadvisor.services.tax_law_search import TaxLawSearchService

router = APIRouter(prefix="/knowledge", tags=["knowledge"])
tax_law_router = APIRouter(prefix="/tax-law", tags=["tax-law"])


class CacheEntryRequest(BaseModel):
    """Request body for caching a knowledge entry."""

    query: str = Field(..., description="Question the content answers")
    content: str = Field(..., description="Markdown body")
    summary: str = ""
    sources: List[SourceInput] = Field(default_factory=list)
    category: str = Field(..., description="Tax category, e.g. income_tax, btw, box3")
    tags: Optional[List[str]] = None
    applicable_years: Optional[List[int]] = None
    expires_in_days: Optional[int] = None
    confidence: Confidence = Confidence.HIGH
    supersedes: Optional[str] = None


class TaxLawSearchRequest(BaseModel):
    """Request body for the cache-first tax law search."""

    query: str = Field(..., min_length=1)
    category: Optional[str] = None
    year: Optional[int] = None
    force_refresh: bool = False
    max_results: int = Field(default=5, gt=0, le=20)


@router.get("/search", response_model=List[KnowledgeSearchResult])
async def search_knowledge(
    query: str = "",
    category: Optional[str] = None,
    year: Optional[int] = None,
    tags: Optional[List[str]] = Query(default=None),
    include_expired: bool = False,
    limit: int = Query(default=10, gt=0, le=100),
    min_relevance: float = Query(default=0.0, ge=0.0, le=1.0),
    cache: KnowledgeCacheService = Depends(get_knowledge_cache),
):
    """Search the local knowledge cache."""
    return await cache.search_local(
        KnowledgeSearchQuery(
            query=query,
            category=category,
            tax_year=year,
            tags=tags or [],
            include_expired=include_expired,
            max_results=limit,
            min_relevance=min_relevance,
        )
    )


@router.get("/entries/{entry_id}", response_model=KnowledgeEntry)
async def get_knowledge_entry(entry_id: str, cache: KnowledgeCacheService = Depends(get_knowledge_cache)):
    """Get a full knowledge entry; counts as an access."""
    entry = await cache.get_entry(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Knowledge entry not found")
    return entry


@router.post("/entries", response_model=CacheResult)
async def cache_knowledge_entry(
    request: CacheEntryRequest,
    cache: KnowledgeCacheService = Depends(get_knowledge_cache),
):
    """Cache a new knowledge entry."""
    result = await cache.cache_entry(
        request.query,
        request.content,
        request.summary,
        request.sources,
        CacheOptions(
            category=request.category,
            tags=request.tags,
            applicable_years=request.applicable_years,
            expires_in_days=request.expires_in_days,
            confidence=request.confidence,
            supersedes=request.supersedes,
        ),
    )
    if result.failure == "validation":
        raise ValidationError(result.error)
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to store knowledge entry")
    return result


@router.post("/entries/{entry_id}/invalidate")
async def invalidate_knowledge_entry(entry_id: str, cache: KnowledgeCacheService = Depends(get_knowledge_cache)):
    """Mark an entry expired as of now."""
    invalidated = await cache.invalidate_entry(entry_id)
    return {"success": True, "invalidated": invalidated}


@router.get("/expired", response_model=List[IndexEntry])
async def list_expired_entries(cache: KnowledgeCacheService = Depends(get_knowledge_cache)):
    """List entries whose expiry has passed."""
    return await cache.get_expired_entries()


@router.get("/stats", response_model=KnowledgeStats)
async def knowledge_stats(cache: KnowledgeCacheService = Depends(get_knowledge_cache)):
    """Knowledge cache statistics."""
    return await cache.get_stats()


@router.post("/refresh", response_model=RefreshResult)
async def refresh_knowledge(
    options: RefreshOptions,
    service: KnowledgeRefreshService = Depends(get_refresh_service),
):
    """Re-fetch expired (or selected) entries from the web."""
    if not get_knowledge_config().enabled:
        raise HTTPException(status_code=503, detail="Knowledge base is disabled in configuration")
    return await service.refresh(options)


@tax_law_router.post("/search", response_model=TaxLawSearchResponse)
async def search_tax_law(
    request: TaxLawSearchRequest,
    service: TaxLawSearchService = Depends(get_tax_law_search),
):
    """Search Dutch tax law: local cache first, then the web."""
    return await service.search(
        request.query,
        category=request.category,
        year=request.year,
        force_refresh=request.force_refresh,
        max_results=request.max_results,
    )
