"""
Web search models.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class WebSearchResult(BaseModel):
    """Single hit from the external search provider."""

    title: str
    url: str
    snippet: str = ""
    source: str = ""
    relevance: float = Field(default=0.0, ge=0.0, le=1.0)
    content: Optional[str] = Field(default=None, description="Full page text when the provider has it")
    last_updated: Optional[datetime] = None


class WebSearchResults(BaseModel):
    """Search response with per-source errors collected, not raised."""

    query: str
    results: List[WebSearchResult] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    total_found: int = 0
    errors: List[str] = Field(default_factory=list)


class TaxLawSearchResponse(BaseModel):
    """Cache-first search answer."""

    query: str
    results: List[WebSearchResult] = Field(default_factory=list)
    from_cache: bool = False
    cache_id: Optional[str] = None
    cached_entry_id: Optional[str] = Field(default=None, description="Id of the entry written from web results")
    disclaimer: str = ""
    errors: List[str] = Field(default_factory=list)
