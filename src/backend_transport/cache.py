"""
Time-boxed in-memory response cache with FIFO eviction.
"""
import asyncio
import copy
import fnmatch
import json
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from .types import (
    CACHEABLE_VERBS,
    CacheConfig,
    CacheEntry,
    CacheLookupResult,
    CacheStats,
)


logger = logging.getLogger(__name__)

_GLOB_CHARS = ("*", "?", "[")


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000


def match_exclude_pattern(path: str, patterns: List[str]) -> Optional[str]:
    """
    Find the first exclude pattern matching a path.

    Patterns containing glob characters are matched with fnmatch against the
    whole path; other patterns match as substrings.

    Args:
        path: Request path
        patterns: Ordered exclude patterns

    Returns:
        The matching pattern, or None
    """
    for pattern in patterns:
        if any(c in pattern for c in _GLOB_CHARS):
            if fnmatch.fnmatchcase(path, pattern):
                return pattern
        elif pattern in path:
            return pattern
    return None


class ResponseCache:
    """
    Response cache keyed by request identity.

    Entries expire ttl_ms after insertion. When full, the oldest inserted
    entry is evicted (insertion order, not recency).
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._config = config or CacheConfig()
        self._clock = clock or monotonic_ms
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._cleanup_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def is_cacheable(self, verb: str) -> bool:
        """Only read responses are cached."""
        return verb.upper() in CACHEABLE_VERBS

    def is_excluded(self, path: str) -> bool:
        return match_exclude_pattern(path, self._config.exclude_patterns) is not None

    def generate_key(
        self,
        verb: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Build a cache key; param order does not affect the key."""
        encoded = json.dumps(params, sort_keys=True, default=str) if params else ""
        return f"{verb.upper()}:{path}:{encoded}"

    def get(self, key: str) -> CacheLookupResult:
        """
        Look up a key.

        Expired entries count as a miss and are removed.
        """
        entry = self._entries.get(key)
        if entry is not None and not entry.is_valid(self._clock()):
            del self._entries[key]
            entry = None

        if entry is None:
            self._misses += 1
            return CacheLookupResult(found=False)

        self._hits += 1
        return CacheLookupResult(found=True, payload=copy.deepcopy(entry.payload))

    def put(self, key: str, payload: Any) -> None:
        """Store a payload, evicting the oldest entry when full. No-op once closed."""
        if self._closed:
            return
        if key in self._entries:
            del self._entries[key]

        while len(self._entries) >= self._config.max_entries:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug(f"ResponseCache.put: evicted {oldest_key}")

        self._entries[key] = CacheEntry(
            key=key,
            payload=copy.deepcopy(payload),
            inserted_at_ms=self._clock(),
            ttl_ms=self._config.ttl_ms,
        )

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_valid(self._clock())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries and reset hit/miss counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def cleanup(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"ResponseCache.cleanup: removed {len(expired)} expired entries")
        return len(expired)

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        lookups = self._hits + self._misses
        return CacheStats(
            size=len(self._entries),
            max_size=self._config.max_entries,
            hit_ratio=self._hits / lookups if lookups > 0 else 0.0,
            hits=self._hits,
            misses=self._misses,
        )

    def start_cleanup(self) -> None:
        """Start the background cleanup task; requires a running event loop."""
        if self._cleanup_task is None and not self._closed and self._config.enabled:
            self._cleanup_task = asyncio.get_running_loop().create_task(
                self._cleanup_loop()
            )

    async def _cleanup_loop(self) -> None:
        """Background cleanup loop."""
        interval = self._config.cleanup_interval_ms / 1000
        while not self._closed:
            await asyncio.sleep(interval)
            self.cleanup()

    async def close(self) -> None:
        """Stop the cleanup task and drop all entries. Safe to call twice."""
        self._closed = True
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        self._entries.clear()
