"""In-memory TTL cache for content lookups.

Entries are evicted lazily when read after their TTL has passed, and
proactively by an optional background sweep.  Because expiry is only checked
at read time, an entry may linger in memory until the next sweep; it is never
*returned* past its TTL.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sitemigrate.config import settings
from sitemigrate.models.content import PageContent

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60  # seconds
SWEEP_INTERVAL = 10 * 60  # seconds


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class ContentCache:
    """Thread-safe key/value store with per-entry TTL and hit/miss counters."""

    def __init__(self, default_ttl: Optional[float] = None) -> None:
        self.default_ttl = settings.cache_ttl if default_ttl is None else default_ttl
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task] = None

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                data=data,
                timestamp=time.monotonic(),
                ttl=self.default_ttl if ttl is None else ttl,
            )

    def get(self, key: str) -> Any:
        """Return the cached value for *key*, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(time.monotonic()):
                del self._entries[key]
                return None
            return entry.data

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(time.monotonic()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def get_with_stats(self, key: str) -> Any:
        """Like :meth:`get`, but counts the lookup as a hit or a miss."""
        result = self.get(key)
        with self._lock:
            if result is not None:
                self._hits += 1
            else:
                self._misses += 1
        return result

    def stats(self) -> Dict[str, Any]:
        now = time.monotonic()
        with self._lock:
            expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
            lookups = self._hits + self._misses
            return {
                "total_entries": len(self._entries),
                "valid_entries": len(self._entries) - expired,
                "expired_entries": expired,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }

    def cleanup(self) -> int:
        """Evict every expired entry; return how many were removed."""
        now = time.monotonic()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Cache sweep evicted %d entries", len(expired))
        return len(expired)

    def invalidate(self, pattern: Optional[str] = None) -> None:
        """Drop keys containing *pattern*, or everything when no pattern is given."""
        if not pattern:
            self.clear()
            return
        with self._lock:
            for key in [k for k in self._entries if pattern in k]:
                del self._entries[key]

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    def start_sweeper(self, interval: Optional[float] = None) -> Optional[asyncio.Task]:
        """Start the periodic sweep on the running event loop.

        Returns None (and does nothing) outside a running loop, since a
        short-lived caller has nothing to sweep for.
        """
        if self._sweeper is not None and not self._sweeper.done():
            return self._sweeper
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        interval = settings.cache_sweep_interval if interval is None else interval
        self._sweeper = loop.create_task(self._sweep_forever(interval))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.cleanup()


# Convenience instance for callers that do not manage their own cache.
content_cache = ContentCache()


class CacheKeys:
    ALL_PAGES = "all-pages"
    SITEMAP = "sitemap"
    PAGE_SLUGS = "page-slugs"

    @staticmethod
    def page(slug: str) -> str:
        return f"page:{slug}"

    @staticmethod
    def category(category: str) -> str:
        return f"category:{category}"

    @staticmethod
    def category_index(category: str) -> str:
        return f"category-index:{category}"


class CachedContentLoader:
    """Read-through cache in front of arbitrary async page loaders."""

    def __init__(self, cache: Optional[ContentCache] = None) -> None:
        self.cache = cache if cache is not None else content_cache

    async def get_page(
        self, slug: str, loader: Callable[[], Awaitable[Optional[PageContent]]]
    ) -> Optional[PageContent]:
        key = CacheKeys.page(slug)
        page = self.cache.get_with_stats(key)
        if page is None:
            page = await loader()
            # A missing page is not cached so it is retried on the next lookup.
            if page is not None:
                self.cache.set(key, page)
        return page

    async def get_pages_by_category(
        self, category: str, loader: Callable[[], Awaitable[List[PageContent]]]
    ) -> List[PageContent]:
        return await self._get_list(CacheKeys.category(category), loader)

    async def get_all_pages(
        self, loader: Callable[[], Awaitable[List[PageContent]]]
    ) -> List[PageContent]:
        return await self._get_list(CacheKeys.ALL_PAGES, loader)

    def invalidate_cache(self, pattern: Optional[str] = None) -> None:
        self.cache.invalidate(pattern)

    async def _get_list(
        self, key: str, loader: Callable[[], Awaitable[List[PageContent]]]
    ) -> List[PageContent]:
        pages = self.cache.get_with_stats(key)
        if pages is None:
            pages = await loader()
            if pages is not None:
                self.cache.set(key, pages)
        return pages
