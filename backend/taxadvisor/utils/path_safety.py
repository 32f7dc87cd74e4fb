# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  路径安全工具 - 在把分类名、条目 ID 拼入知识库路径之前进行清理和验证
  Path Safety Utilities - Sanitize category names and entry ids before they become
  paths inside the knowledge directory.
"""

import re
from pathlib import Path

# Anything outside word characters and hyphens becomes '_'
_UNSAFE_CHARS_RE = re.compile(r"[^\w\-]", re.UNICODE)


def sanitize_id(raw: str, max_length: int = 64) -> str:
    """
    清理标识符以安全用于文件路径

    Sanitize an identifier (category, entry id) for safe use in file paths.

    Sanitization rules:
    - Replace spaces and unsafe characters with '_'
    - Reject empty input and traversal-only input
    - Truncate to max_length

    Args:
        raw: 原始输入 / Raw input
        max_length: 最大长度 / Maximum length

    Returns:
        清理后的标识符 / Sanitized identifier

    Raises:
        ValueError: 如果输入无法清理为有效ID / If input cannot be sanitized to valid ID

    Example:
        >>> sanitize_id("income_tax")
        "income_tax"
        >>> sanitize_id("../../box3")
        "box3"
    """
    if not raw or not isinstance(raw, str):
        raise ValueError("ID must be a non-empty string")

    text = raw.strip()
    if not text:
        raise ValueError("ID must be a non-empty string")

    text = text.replace(" ", "_")
    text = text.replace("..", "").replace("/", "").replace("\\", "")
    text = _UNSAFE_CHARS_RE.sub("_", text)
    text = text.lstrip("._")
    text = re.sub(r"_+", "_", text)
    text = text[:max_length]
    text = text.rstrip("._")

    if not text:
        raise ValueError(f"Cannot sanitize ID from input: {raw!r}")

    return text


def validate_path_within(child: Path, parent: Path) -> Path:
    """
    验证child路径在parent目录内

    Validate that *child* resolves to a path inside *parent*.

    Args:
        child: 子路径 / Child path
        parent: 父路径 / Parent path

    Returns:
        解析后的子路径 / Resolved child path

    Raises:
        ValueError: 如果子路径逃逸出父目录 / If the child escapes the parent directory
    """
    resolved_parent = parent.resolve()
    resolved_child = child.resolve()

    if resolved_child != resolved_parent and resolved_parent not in resolved_child.parents:
        raise ValueError(f"Path escapes knowledge directory: {child}")

    return resolved_child
