# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  知识条目存储 - 每个条目一个带 YAML front matter 的 Markdown 文件，按分类分目录。
  Knowledge entry storage - one markdown file with YAML front matter per entry,
  grouped in one directory per category.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from taxadvisor.exceptions import CorruptEntryError, EntryNotFoundError, StorageError
from taxadvisor.storage.base import BaseStorage
from taxadvisor.utils.logger import get_logger
from taxadvisor.utils.path_safety import sanitize_id

logger = get_logger(__name__)

FRONT_MATTER_DELIMITER = "---"


def dump_front_matter(metadata: Dict[str, Any], content: str) -> str:
    """Render metadata as a YAML block between ``---`` lines, followed by the body."""
    block = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True)
    return f"{FRONT_MATTER_DELIMITER}\n{block}{FRONT_MATTER_DELIMITER}\n{content}"


def parse_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    拆分 front matter 与正文

    Split a markdown document into ``(metadata, body)``. A document without
    an opening ``---`` line has empty metadata.

    Raises:
        ValueError: the block is unterminated or is not a YAML mapping
    """
    opening = FRONT_MATTER_DELIMITER + "\n"
    if not text.startswith(opening):
        return {}, text

    closing = "\n" + FRONT_MATTER_DELIMITER + "\n"
    end = text.find(closing, len(opening) - 1)
    if end == -1:
        raise ValueError("Unterminated front matter block")

    metadata = yaml.safe_load(text[len(opening):end + 1]) or {}
    if not isinstance(metadata, dict):
        raise ValueError("Front matter is not a mapping")
    return metadata, text[end + len(closing):]


class KnowledgeEntryStorage(BaseStorage):
    """
    知识条目内容存储

    Content store keyed by ``<category>/<entry id>.md`` relative to the root.
    """

    def location_for(self, category: str, entry_id: str) -> str:
        return f"{sanitize_id(category)}/{sanitize_id(entry_id, max_length=128)}.md"

    def exists(self, location: str) -> bool:
        return self.resolve(location).is_file()

    async def write(self, location: str, content: str, metadata: Dict[str, Any]) -> Path:
        """
        写入条目

        Write one entry file; the category directory is created when absent.
        """
        path = self.resolve(location)
        self.ensure_dir(path.parent)
        await self.write_text(path, dump_front_matter(metadata, content))
        logger.debug("Wrote knowledge entry %s", location)
        return path

    async def read(self, location: str) -> Tuple[Dict[str, Any], str]:
        """
        读取条目

        Returns:
            ``(metadata, content)``

        Raises:
            EntryNotFoundError: no file at *location*
            CorruptEntryError: the front matter cannot be parsed
        """
        path = self.resolve(location)
        if not path.is_file():
            raise EntryNotFoundError(f"Knowledge entry content not found: {location}")

        try:
            text = await self.read_text(path)
        except OSError as exc:
            raise StorageError(f"Failed to read knowledge entry {location}: {exc}") from exc

        try:
            return parse_front_matter(text)
        except (ValueError, yaml.YAMLError) as exc:
            raise CorruptEntryError(f"Malformed front matter in {location}: {exc}") from exc

    def storage_size(self) -> Optional[int]:
        """
        统计存储占用

        Recursive byte total of everything under the root, or ``None`` when
        any part of the tree cannot be read.
        """
        total = 0

        def _raise(exc: OSError) -> None:
            raise exc

        try:
            for dirpath, _dirnames, filenames in os.walk(self.root_dir, onerror=_raise):
                for name in filenames:
                    total += os.stat(os.path.join(dirpath, name)).st_size
        except OSError as exc:
            logger.warning("Could not compute knowledge storage size: %s", exc)
            return None
        return total
