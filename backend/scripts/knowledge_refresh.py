#!/usr/bin/env python3
"""
Knowledge cache refresh tool.
Re-fetches expired (default) or all entries from the configured web sources.

Examples:
    python scripts/knowledge_refresh.py --expired
    python scripts/knowledge_refresh.py --all
    python scripts/knowledge_refresh.py --category=box3
    python scripts/knowledge_refresh.py --category=btw --force
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional


def _resolve_backend_dir() -> Path:
    return Path(__file__).resolve().parents[1]


def _ensure_sys_path(backend_dir: Path) -> None:
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="TaxAdvisor knowledge cache refresh tool")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--all", action="store_true", help="Refresh all entries (ignores expiry)")
    scope.add_argument("--expired", action="store_true", help="Refresh only expired entries (default)")
    parser.add_argument("--category", default="", help="Refresh only entries in this category")
    parser.add_argument("--force", action="store_true", help="Refresh even if not expired")
    parser.add_argument("--max-entries", type=int, default=100, help="Maximum entries to refresh")
    parser.add_argument("--knowledge-dir", default="", help="Knowledge directory (optional)")
    return parser.parse_args(argv)


def build_options(args: argparse.Namespace):
    from taxadvisor.schemas.knowledge import RefreshOptions

    return RefreshOptions(
        category=args.category or None,
        expired_only=not args.all,
        force=args.force or args.all,
        max_entries=args.max_entries,
    )


def render_summary(result) -> str:
    attempted = result.refreshed + result.failed
    rate = (result.refreshed / attempted * 100) if attempted else 0.0
    lines = []
    for detail in result.details:
        mark = {"refreshed": "OK", "unchanged": "OK (unchanged)", "skipped": "SKIP"}.get(detail.status, "FAIL")
        suffix = f" ({detail.reason})" if detail.reason else ""
        lines.append(f"  {detail.id}: {mark}{suffix}")
    lines.extend([
        "",
        "Refresh Summary:",
        f"   Refreshed: {result.refreshed}",
        f"   Failed: {result.failed}",
        f"   Skipped: {result.skipped}",
        f"   Success rate: {rate:.1f}%",
    ])
    return "\n".join(lines)


async def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    _ensure_sys_path(_resolve_backend_dir())

    from taxadvisor.config import get_knowledge_config, get_search_config
    from taxadvisor.exceptions import CorruptIndexError
    from taxadvisor.services.knowledge_cache import KnowledgeCacheService
    from taxadvisor.services.knowledge_refresh import KnowledgeRefreshService
    from taxadvisor.services.web_search import WebSearchService

    knowledge_config = get_knowledge_config()
    if not knowledge_config.enabled:
        print("Knowledge cache is disabled in configuration", file=sys.stderr)
        return 1

    cache = KnowledgeCacheService(args.knowledge_dir or None)
    try:
        entries = await cache.get_all_entries()
    except CorruptIndexError as exc:
        print(f"Knowledge index unreadable: {exc}", file=sys.stderr)
        return 1
    print(f"Total entries in cache: {len(entries)}")

    service = KnowledgeRefreshService(cache, WebSearchService(get_search_config()), knowledge_config)
    result = await service.refresh(build_options(args))
    if not result.details:
        print("No entries to refresh")
        return 0

    print(render_summary(result))
    return 0 if result.failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
