#!/usr/bin/env python3
"""
Knowledge cache statistics report.
Prints overview, category/confidence breakdowns, expiry status, most accessed
entries, age distribution and recommendations.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List

RULE = "=" * 40


def _resolve_backend_dir() -> Path:
    return Path(__file__).resolve().parents[1]


def _ensure_sys_path(backend_dir: Path) -> None:
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def _section(lines: List[str], title: str) -> None:
    lines.extend([RULE, f"  {title}", RULE])


def _percent(count: int, total: int) -> str:
    return f"{(count / total * 100):.1f}%" if total else "0.0%"


def render_report(stats) -> str:
    total = stats.total_entries
    lines: List[str] = ["Knowledge Cache Statistics", ""]

    _section(lines, "OVERVIEW")
    lines.append(f"  Total Entries:        {total}")
    lines.append(f"  Storage Size:         {stats.storage_size}")
    lines.append(f"  Average Age:          {stats.average_age_days} days")
    lines.append(f"  Updated (30 days):    {stats.recently_updated}")
    lines.append("")

    _section(lines, "BY CATEGORY")
    for category, count in sorted(stats.entries_by_category.items(), key=lambda kv: kv[1], reverse=True):
        lines.append(f"  {category:<20} {count} ({_percent(count, total)})")
    lines.append("")

    _section(lines, "BY CONFIDENCE LEVEL")
    for level, count in sorted(stats.entries_by_confidence.items(), key=lambda kv: kv[1], reverse=True):
        lines.append(f"  {level:<20} {count} ({_percent(count, total)})")
    lines.append("")

    _section(lines, "EXPIRY STATUS")
    lines.append(f"  Expired:              {stats.expired_entries}")
    lines.append(f"  Expiring in 7 days:   {stats.expiring_within_7_days}")
    lines.append(f"  Expiring in 30 days:  {stats.expiring_within_30_days}")
    lines.append("")

    if stats.most_accessed:
        _section(lines, "MOST ACCESSED")
        for rank, entry in enumerate(stats.most_accessed, start=1):
            lines.append(f"  {rank}. {entry.title} [{entry.category}] popularity {entry.popularity_score}")
        lines.append("")

    _section(lines, "AGE DISTRIBUTION")
    for bucket, count in stats.age_distribution.items():
        lines.append(f"  {bucket:<20} {count} ({_percent(count, total)})")
    lines.append("")

    if stats.recommendations:
        _section(lines, "RECOMMENDATIONS")
        for tip in stats.recommendations:
            lines.append(f"  - {tip}")
        lines.append("")

    return "\n".join(lines)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="TaxAdvisor knowledge cache statistics")
    parser.add_argument("--knowledge-dir", default="", help="Knowledge directory (optional)")
    parser.add_argument("--json", action="store_true", help="Print raw JSON instead of the report")
    return parser.parse_args()


async def main() -> int:
    args = _parse_args()
    _ensure_sys_path(_resolve_backend_dir())

    from taxadvisor.config import get_knowledge_config
    from taxadvisor.exceptions import CorruptIndexError
    from taxadvisor.services.knowledge_cache import KnowledgeCacheService

    if not get_knowledge_config().enabled:
        print("Knowledge cache is disabled in configuration", file=sys.stderr)
        return 1

    cache = KnowledgeCacheService(args.knowledge_dir or None)
    try:
        stats = await cache.get_stats()
    except CorruptIndexError as exc:
        print(f"Knowledge index unreadable: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(stats.model_dump(mode="json"), ensure_ascii=False, indent=2))
    else:
        print(render_report(stats))
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
