"""Ordering helpers for optional timestamps.

A missing timestamp always ranks as the earliest possible instant, under both
ascending and descending orders.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def time_key(value: Optional[datetime]) -> datetime:
    """Return a comparable timestamp, mapping ``None`` to ``EARLIEST``."""
    if value is None:
        return EARLIEST
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_earlier(left: Optional[datetime], right: Optional[datetime]) -> bool:
    """Strict ``left < right`` with ``None`` treated as the earliest instant."""
    return time_key(left) < time_key(right)


def latest(items: Iterable[T], timestamp: Callable[[T], Optional[datetime]]) -> Optional[T]:
    """Return the item with the greatest timestamp; the first one wins ties."""
    return max(items, key=lambda item: time_key(timestamp(item)), default=None)


def sort_by_time(
    items: Iterable[T],
    timestamp: Callable[[T], Optional[datetime]],
    descending: bool = False,
) -> List[T]:
    """Stable sort of ``items`` by an optional timestamp."""
    return sorted(items, key=lambda item: time_key(timestamp(item)), reverse=descending)
