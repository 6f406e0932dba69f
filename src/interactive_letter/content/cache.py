"""
TTL-based cache for resolved content.

Stores resolved nodes and letters under string keys such as
"node:home:en" or "letter:services:ar". All keys share one TTL fixed at
construction. Invalidation is by substring so a whole family of keys
("letter", ":fa") can be dropped at once.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("interactive-letter")


DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheEntry:
    """Single cache entry.

    Attributes:
        key: Cache key identifier.
        value: The cached value, replaced wholesale on every set.
        fetched_at: Clock reading when the value was stored.
    """
    key: str
    value: Any
    fetched_at: float


@dataclass
class ContentCacheStats:
    """Statistics for the content cache.

    Attributes:
        total_entries: Number of entries currently held (expired included).
        hit_count: Number of successful lookups.
        miss_count: Number of failed lookups.
        expired_count: Number of lookups that found an expired entry.
        invalidated_count: Number of entries removed by invalidation.
        hit_rate: Ratio of hits to total lookups (0.0-1.0).
        ttl_seconds: TTL shared by every entry.
    """
    total_entries: int
    hit_count: int
    miss_count: int
    expired_count: int
    invalidated_count: int
    hit_rate: float
    ttl_seconds: float


class ContentCache:
    """TTL-based key-value cache for resolved content.

    Each get/set/invalidate is atomic under an internal lock. There are no
    multi-key transactions.

    Usage:
        cache = ContentCache(ttl=300)

        cache.set("node:home:en", node)
        node = cache.get("node:home:en")

        # Drop every letter entry
        cache.invalidate("letter")

        # Drop everything
        cache.invalidate()
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: Time to live in seconds for every entry.
            clock: Monotonic time source, injectable for tests.
        """
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl = float(ttl)
        self._clock = clock
        self._hit_count = 0
        self._miss_count = 0
        self._expired_count = 0
        self._invalidated_count = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired.

        Expired entries are left in place; they are only dropped by
        purge_expired(), invalidate() or a later set().
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._miss_count += 1
                return None
            if self._is_expired(entry):
                self._expired_count += 1
                self._miss_count += 1
                logger.debug(f"Content cache: entry '{key}' expired")
                return None
            self._hit_count += 1
        logger.debug(f"Content cache: hit for key '{key}'")
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any existing entry for the key."""
        entry = CacheEntry(key=key, value=value, fetched_at=self._clock())
        with self._lock:
            self._entries[key] = entry
        logger.debug(f"Content cache: stored key '{key}'")

    def invalidate(self, pattern: str | None = None) -> int:
        """Remove entries whose keys contain pattern, or all entries.

        Args:
            pattern: Substring to match against keys. None clears the cache.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            if pattern is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                matching = [key for key in self._entries if pattern in key]
                for key in matching:
                    del self._entries[key]
                removed = len(matching)
            self._invalidated_count += removed

        if removed:
            target = f"matching '{pattern}'" if pattern is not None else "(full clear)"
            logger.info(f"Content cache: invalidated {removed} entries {target}")
        return removed

    def purge_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of expired entries removed.
        """
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Content cache: purged {len(expired)} expired entries")
        return len(expired)

    def keys(self) -> list[str]:
        """Snapshot of the current keys, expired ones included."""
        with self._lock:
            return list(self._entries)

    def get_stats(self) -> ContentCacheStats:
        with self._lock:
            total_lookups = self._hit_count + self._miss_count
            hit_rate = self._hit_count / total_lookups if total_lookups > 0 else 0.0
            return ContentCacheStats(
                total_entries=len(self._entries),
                hit_count=self._hit_count,
                miss_count=self._miss_count,
                expired_count=self._expired_count,
                invalidated_count=self._invalidated_count,
                hit_rate=hit_rate,
                ttl_seconds=self._ttl,
            )

    def _is_expired(self, entry: CacheEntry) -> bool:
        return (self._clock() - entry.fetched_at) >= self._ttl

    @property
    def size(self) -> int:
        """Return the number of entries currently in the cache."""
        with self._lock:
            return len(self._entries)


__all__ = [
    "ContentCache",
    "CacheEntry",
    "ContentCacheStats",
    "DEFAULT_TTL_SECONDS",
]
