# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  依赖注入工厂 - FastAPI Depends() 工厂函数，统一管理服务实例创建
  Dependency Injection - FastAPI Depends() factories for centralized service instance management.

设计原则 / Design Principles:
  所有Router应通过 Depends() 获取服务实例，而非模块级实例化。
  Tests replace them with ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from taxadvisor.config import get_knowledge_config, get_search_config
from taxadvisor.services.knowledge_cache import KnowledgeCacheService
from taxadvisor.services.knowledge_refresh import KnowledgeRefreshService
from taxadvisor.services.tax_law_search import TaxLawSearchService
from taxadvisor.services.web_search import WebSearchService


@lru_cache(maxsize=1)
def get_knowledge_cache() -> KnowledgeCacheService:
    """
    获取或创建KnowledgeCacheService的单例实例

    Get or create singleton KnowledgeCacheService instance.

    Returns:
        KnowledgeCacheService实例 / KnowledgeCacheService instance
    """
    return KnowledgeCacheService()


@lru_cache(maxsize=1)
def get_web_search() -> WebSearchService:
    """
    获取或创建WebSearchService的单例实例

    Get or create singleton WebSearchService instance.
    """
    return WebSearchService(get_search_config())


def get_refresh_service(
    cache: KnowledgeCacheService = Depends(get_knowledge_cache),
    web_search: WebSearchService = Depends(get_web_search),
) -> KnowledgeRefreshService:
    return KnowledgeRefreshService(cache, web_search, get_knowledge_config())


def get_tax_law_search(
    cache: KnowledgeCacheService = Depends(get_knowledge_cache),
    web_search: WebSearchService = Depends(get_web_search),
) -> TaxLawSearchService:
    return TaxLawSearchService(cache, web_search, get_knowledge_config())
