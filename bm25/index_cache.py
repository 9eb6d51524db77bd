"""
TTL-bounded keyword index cache
Rebuilds the index from the catalog at most once per TTL without blocking readers
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from .bm25_indexer import BM25Indexer, KeywordIndex


class KeywordIndexCache:
    """
    Owns the current keyword index snapshot

    While a rebuild is in flight, readers keep getting the previous snapshot.
    Only the very first build is awaited by callers.
    """

    def __init__(
        self,
        catalog,
        indexer: BM25Indexer,
        ttl: float = 300.0,
        page_size: int = 100,
        clock: Callable[[], float] = time.monotonic
    ):
        self.catalog = catalog
        self.indexer = indexer
        self.ttl = ttl
        self.page_size = page_size
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self._index: Optional[KeywordIndex] = None
        self._built_at: float = 0.0
        self._rebuild_task: Optional[asyncio.Task] = None
        self.rebuild_count = 0

    def is_fresh(self) -> bool:
        return self._index is not None and self.clock() - self._built_at < self.ttl

    async def get_index(self) -> KeywordIndex:
        index = self._index
        if index is not None and self.is_fresh():
            return index

        task = self._rebuild_task
        if task is None or task.done():
            task = asyncio.create_task(self._rebuild())
            task.add_done_callback(self._log_rebuild_failure)
            self._rebuild_task = task

        if index is not None:
            return index

        return await asyncio.shield(task)

    async def _rebuild(self) -> KeywordIndex:
        products = await self.catalog.get_all_products(self.page_size)
        index = await asyncio.to_thread(self.indexer.build, products)

        self._index = index
        self._built_at = self.clock()
        self.rebuild_count += 1
        self.logger.info(f"Keyword index rebuilt with {len(index)} products")
        return index

    def _log_rebuild_failure(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.warning(f"Keyword index rebuild failed: {error}")

    async def close(self):
        task = self._rebuild_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
