"""
Result cache for repeated (query, options) searches
TTL-bounded with lazy expiry and LRU eviction, plus a cancellable janitor task
"""

import asyncio
import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

from .models import SearchOptions, SearchResponse


def make_cache_key(query: str, options: SearchOptions) -> str:
    """Stable key; any difference in query text or options is a miss"""
    raw = json.dumps({"query": query, "options": options.cache_dict()}, sort_keys=True)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ResultCache:
    """
    In-process cache of search responses

    Expired entries are dropped when looked up or purged. When full, the
    least recently used entry is evicted.
    """

    def __init__(self, ttl: float = 300.0, max_size: int = 500, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_size = max(1, max_size)
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self._entries: "OrderedDict[str, Tuple[float, SearchResponse]]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[SearchResponse]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            self.logger.debug(f"Cache miss {key[:12]}")
            return None

        stored_at, response = entry
        if self.clock() - stored_at >= self.ttl:
            del self._entries[key]
            self.misses += 1
            self.logger.debug(f"Cache entry expired {key[:12]}")
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        self.logger.debug(f"Cache hit {key[:12]}")
        return response

    def set(self, key: str, response: SearchResponse):
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (self.clock(), response)

        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self.evictions += 1

    def purge_expired(self) -> int:
        """Drop every expired entry, returning how many were removed"""
        now = self.clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self):
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }


class CacheJanitor:
    """Background task that periodically purges expired cache entries"""

    def __init__(self, cache: ResultCache, interval: float = 300.0):
        self.cache = cache
        self.interval = interval
        self.logger = logging.getLogger(__name__)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the janitor on the running event loop; no-op if already running"""
        if not self.running:
            self._task = asyncio.create_task(self._run())

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            removed = self.cache.purge_expired()
            if removed:
                self.logger.debug(f"Purged {removed} expired cache entries")

    async def stop(self):
        task = self._task
        self._task = None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
