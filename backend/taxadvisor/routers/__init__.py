"""
API Routers / API 路由
"""

from .knowledge import router as knowledge_router
from .knowledge import tax_law_router

__all__ = [
    "knowledge_router",
    "tax_law_router",
]
