# -*- coding: utf-8 -*-
"""
税务顾问 TaxAdvisor - 个人税务知识助手
TaxAdvisor - Personal Tax Knowledge Assistant

Copyright © 2025-2026 TaxAdvisor Team
License: PolyForm Noncommercial License 1.0.0

模块说明 / Module Description:
  文件锁管理器 - 进程内异步文件锁，串行化知识索引的读-改-写
  File Lock Manager - In-process async locks serializing knowledge index read-modify-write.

实现方式 / Implementation:
  使用asyncio.Lock实现进程内的文件锁定。仅保证单进程内的串行化；
  多个进程同时写同一个知识库仍然是不安全的。

  Uses asyncio.Lock per file path. Only serializes work inside one process;
  two processes writing the same knowledge directory are still unsafe.
"""

import asyncio
from pathlib import Path
from typing import Dict, Optional
from contextlib import asynccontextmanager


class AsyncFileLock:
    """
    异步文件锁 - 基于asyncio.Lock实现的进程内文件锁定

    Per-path asyncio.Lock registry.

    Attributes:
        _locks (Dict[str, asyncio.Lock]): 文件路径到锁的映射 / Mapping from file path to lock
        _global_lock (asyncio.Lock): 保护_locks字典本身的全局锁 / Global lock protecting _locks dict
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()

    async def _get_lock(self, file_path: str) -> asyncio.Lock:
        async with self._global_lock:
            if file_path not in self._locks:
                self._locks[file_path] = asyncio.Lock()
            return self._locks[file_path]

    @asynccontextmanager
    async def lock(self, file_path: Path, timeout: Optional[float] = 30.0):
        """
        获取文件锁（上下文管理器）

        Acquire the lock for *file_path*.

        Args:
            file_path: 文件路径 / File path
            timeout: 超时时间（秒），None表示无限等待 / Timeout in seconds, None for infinite

        Raises:
            asyncio.TimeoutError: 如果在timeout秒内无法获取锁 / If lock cannot be acquired within timeout

        Example:
            >>> async with file_lock.lock(Path(".index.json")):
            ...     index = await store.load()
            ...     await store.save(index)
        """
        path_str = str(file_path.resolve())
        lock = await self._get_lock(path_str)

        if timeout is not None:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
        try:
            yield
        finally:
            lock.release()

    def get_stats(self) -> Dict[str, int]:
        """
        获取锁统计信息

        Returns:
            total_locks / locked / unlocked counts
        """
        locked_count = sum(1 for lock in self._locks.values() if lock.locked())
        return {
            "total_locks": len(self._locks),
            "locked": locked_count,
            "unlocked": len(self._locks) - locked_count,
        }
