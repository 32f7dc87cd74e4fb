# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  文本工具 - 查询 slug、标题和标签推导、摘录截取
  Text Utilities - query slugs, derived titles/tags and excerpts.
"""

import re
from typing import List

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str, max_length: int = 30) -> str:
    """
    Lowercase slug of *text*: runs of non-alphanumerics collapse to one hyphen.

    Example:
        >>> slugify("Box 3 deemed return 2024")
        "box-3-deemed-return-2024"
    """
    slug = _SLUG_RE.sub("-", (text or "").lower()).strip("-")
    return slug[:max_length].rstrip("-")


def title_from_query(query: str) -> str:
    """Capitalize the first letter of every space-separated word."""
    return " ".join(w[:1].upper() + w[1:] for w in (query or "").split(" "))


def tags_from_query(query: str) -> List[str]:
    """Words longer than three characters, lowercased, de-duplicated in order."""
    words = [w for w in (query or "").lower().split() if len(w) > 3]
    return list(dict.fromkeys(words))


def excerpt_around(text: str, query: str, max_length: int = 150) -> str:
    """
    截取围绕首次命中的摘录

    Excerpt of *text* centred on the first case-insensitive occurrence of
    *query*: 50 characters before the hit, 100 after it, ``...`` where cut.
    Without a hit the head of the text is returned. Text that already fits
    is returned unchanged.
    """
    if len(text) <= max_length:
        return text

    if query:
        index = text.lower().find(query.lower())
        if index != -1:
            start = max(0, index - 50)
            end = min(len(text), index + len(query) + 100)
            excerpt = text[start:end]
            if start > 0:
                excerpt = "..." + excerpt
            if end < len(text):
                excerpt = excerpt + "..."
            return excerpt

    return text[:max_length] + "..."
