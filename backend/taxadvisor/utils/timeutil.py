"""
Time helpers / 时间工具

All knowledge timestamps are timezone-aware UTC.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (hand-edited index files) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def age_in_days(then: datetime, now: datetime) -> float:
    return (ensure_utc(now) - ensure_utc(then)).total_seconds() / SECONDS_PER_DAY
