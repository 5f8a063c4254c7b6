"""Time-to-live cache for upstream API results.

Entries expire on read; nothing runs in the background. Concurrent misses for
the same key may both call the producer, so producers must be idempotent reads.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENVIRONMENTS_TTL = timedelta(minutes=10)
VARIABLE_GROUPS_TTL = timedelta(minutes=15)
DEPLOYMENT_RECORDS_TTL = timedelta(minutes=5)
BUILD_TTL = timedelta(minutes=30)
PIPELINE_BRANCHES_TTL = timedelta(minutes=5)
COMMITS_TTL = timedelta(minutes=10)


class Cache(Protocol):
    """Get-or-create cache contract injected into the aggregators."""

    def get_or_create(
        self, key: str, ttl: timedelta, size: int, producer: Callable[[], T]
    ) -> T:
        ...

    def clear(self) -> None:
        ...


@dataclass(slots=True)
class _Entry:
    value: Any
    expires_at: float
    size: int


class TtlCache:
    """In-process cache keyed by logical resource identity.

    Args:
        size_limit: Optional upper bound on the summed entry weights. When an
            insert would exceed it, expired entries are purged first; if the
            bound still cannot be met the value is returned without caching.
        clock: Monotonic seconds source, injectable for tests.
    """

    def __init__(
        self,
        size_limit: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._size_limit = size_limit
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def total_size(self) -> int:
        with self._lock:
            return sum(entry.size for entry in self._entries.values())

    def get_or_create(
        self, key: str, ttl: timedelta, size: int, producer: Callable[[], T]
    ) -> T:
        """Return the cached value for ``key`` or populate it from ``producer``.

        A ``None`` result is cached like any other value. Exceptions raised by
        the producer propagate and leave the cache unchanged.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if entry.expires_at > now:
                    return entry.value
                del self._entries[key]

        logger.info("Cache miss", extra={"cache_key": key})
        value = producer()
        self._store(key, value, self._clock() + ttl.total_seconds(), size)
        return value

    def _store(self, key: str, value: Any, expires_at: float, size: int) -> None:
        with self._lock:
            self._entries.pop(key, None)
            if self._size_limit is not None:
                used = sum(entry.size for entry in self._entries.values())
                if used + size > self._size_limit:
                    self._purge_expired_locked()
                    used = sum(entry.size for entry in self._entries.values())
                if used + size > self._size_limit:
                    logger.debug(
                        "Cache size limit reached; value not cached",
                        extra={"cache_key": key, "size_limit": self._size_limit},
                    )
                    return
            self._entries[key] = _Entry(value=value, expires_at=expires_at, size=size)

    def _purge_expired_locked(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        """Remove every entry regardless of expiry."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cache cleared", extra={"entries_removed": count})
