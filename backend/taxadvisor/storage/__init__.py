"""
Storage Module / 存储模块
File-based storage for the knowledge index and entry files
基于文件的存储操作（知识索引、知识条目）
"""

from .file_lock import AsyncFileLock
from .knowledge_entries import KnowledgeEntryStorage
from .knowledge_index import KnowledgeIndexStorage

__all__ = [
    "AsyncFileLock",
    "KnowledgeEntryStorage",
    "KnowledgeIndexStorage",
]
