# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  文件存储基类 - 异步文本/JSON 读写与原子写入
  Base file storage - async text/JSON reads and writes with atomic replace.
"""

import json
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from taxadvisor.config import settings
from taxadvisor.utils.path_safety import validate_path_within


class BaseStorage:
    """
    文件存储基类

    Base class for file-backed storage rooted at one directory.

    Attributes:
        root_dir: 存储根目录 / Storage root directory
        encoding: 文件编码 / File encoding
    """

    encoding = "utf-8"

    def __init__(self, root_dir: Optional[str] = None):
        self.root_dir = Path(root_dir or settings.knowledge_dir).resolve()

    def ensure_dir(self, path: Path) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        return path

    def resolve(self, relative: str) -> Path:
        """Resolve a relative location inside the root; raises ValueError on escape."""
        return validate_path_within(self.root_dir / relative, self.root_dir)

    async def _atomic_write(self, file_path: Path, payload: str) -> None:
        """
        原子写入：先写临时文件再替换

        Write *payload* to a temp file next to *file_path*, then ``os.replace``
        it into place so readers never observe a partial file.
        """
        self.ensure_dir(file_path.parent)
        tmp_path = file_path.with_name(f".{file_path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding=self.encoding, newline="") as f:
                await f.write(payload)
            os.replace(tmp_path, file_path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    async def read_text(self, file_path: Path) -> str:
        """Read a text file; line endings are returned as stored."""
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        async with aiofiles.open(file_path, "r", encoding=self.encoding, newline="") as f:
            return await f.read()

    async def write_text(self, file_path: Path, content: str) -> None:
        """Write a text file atomically."""
        await self._atomic_write(file_path, content)

    async def read_json(self, file_path: Path) -> Any:
        """Read a JSON file."""
        raw = await self.read_text(file_path)
        return json.loads(raw)

    async def write_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write a JSON file atomically."""
        payload = json.dumps(data, ensure_ascii=False, indent=2)
        await self._atomic_write(file_path, payload)
