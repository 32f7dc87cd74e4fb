# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  应用级异常层次 - 定义业务逻辑层异常的完整继承树
  Application-level Exception Hierarchy - Business logic exception definitions.
"""


class TaxAdvisorError(Exception):
    """
    TaxAdvisor 业务错误的基类

    Base exception for all TaxAdvisor business errors.
    """


class StorageError(TaxAdvisorError):
    """
    存储操作失败异常

    Raised when a storage operation fails (read/write/delete).
    """


class CorruptIndexError(StorageError):
    """
    知识索引损坏

    Raised when the knowledge index file is unreadable or malformed.

    Fatal for the cache, not for the process: callers may treat the cache as
    unavailable and fall back to direct web search.
    """


class EntryNotFoundError(StorageError):
    """
    条目内容文件不存在

    Raised by the entry store when a content file does not exist.
    The cache service turns this into a ``None`` result.
    """


class CorruptEntryError(StorageError):
    """Raised when an entry file exists but its front matter cannot be parsed."""


class ValidationError(TaxAdvisorError):
    """
    数据验证失败异常

    Raised when input validation fails beyond Pydantic checks.

    Note: Pydantic ValidationError 由框架自动处理，不需要手动抛出此异常。
    """


class SearchProviderError(TaxAdvisorError):
    """
    外部搜索失败异常

    Raised when the external search provider fails (network, bad payload).
    """
