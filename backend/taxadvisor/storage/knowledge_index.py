# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  知识索引存储 - 单个 JSON 文件保存所有条目的元数据（不含正文），整体读写。
  Knowledge index storage - one JSON document holding every entry's metadata
  (no content), always read and written as a whole.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from taxadvisor.exceptions import CorruptIndexError
from taxadvisor.schemas.knowledge import INDEX_FORMAT_VERSION, KnowledgeIndex
from taxadvisor.storage.base import BaseStorage
from taxadvisor.utils.logger import get_logger
from taxadvisor.utils.timeutil import utc_now

logger = get_logger(__name__)

INDEX_FILE_NAME = ".index.json"


class KnowledgeIndexStorage(BaseStorage):
    """
    知识索引存储层

    Durable, whole-index storage at ``<root>/.index.json``.
    """

    @property
    def index_path(self) -> Path:
        return self.root_dir / INDEX_FILE_NAME

    def create_empty(self, now: Optional[datetime] = None) -> KnowledgeIndex:
        return KnowledgeIndex(version=INDEX_FORMAT_VERSION, last_updated=now or utc_now())

    async def initialize(self, now: Optional[datetime] = None) -> KnowledgeIndex:
        """
        初始化索引（幂等）

        Ensure the root directory exists, then load the index, creating and
        persisting an empty one when none exists yet. Safe to call repeatedly.

        Raises:
            CorruptIndexError: an index exists but cannot be read
        """
        self.ensure_dir(self.root_dir)
        if self.index_path.exists():
            return await self.load()

        index = self.create_empty(now)
        await self.save(index, now)
        logger.info("Created empty knowledge index at %s", self.index_path)
        return index

    async def load(self) -> KnowledgeIndex:
        """
        Load the index.

        Raises:
            CorruptIndexError: the file is missing, unreadable, not JSON, or
                does not match the index schema
        """
        try:
            data = await self.read_json(self.index_path)
            return KnowledgeIndex.model_validate(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError) as exc:
            logger.error("Failed to load knowledge index %s: %s", self.index_path, exc)
            raise CorruptIndexError(f"Failed to load knowledge index {self.index_path}: {exc}") from exc

    async def save(self, index: KnowledgeIndex, now: Optional[datetime] = None) -> KnowledgeIndex:
        """
        保存索引

        Recompute the derived fields (``last_updated``, ``total_entries``,
        ``categories``) and replace the whole file atomically.
        """
        index.last_updated = now or utc_now()
        index.total_entries = len(index.entries)
        index.categories = list(dict.fromkeys(entry.category for entry in index.entries))
        await self.write_json(self.index_path, index.model_dump(mode="json"))
        return index
