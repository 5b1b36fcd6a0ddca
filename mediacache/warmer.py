"""
Background thumbnail warm-up.
Fills a ThumbnailCache for a list of items in small concurrent batches.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable, Optional, Sequence

from mediacache.cache import ThumbnailCache
from mediacache.config import WARM_BATCH_DELAY, WARM_BATCH_SIZE

logger = logging.getLogger(__name__)


class ThumbnailWarmer:
    """
    Runs one warming pass at a time per cache.

    fetch(item) returns thumbnail bytes or None; key(item) gives the cache key.
    A warm() call made while a pass is running returns 0 without doing
    anything. Once stop() is called the warmer stores nothing more, so a
    pass left over from a cleared cache cannot refill it.
    """

    def __init__(
        self,
        cache: ThumbnailCache,
        fetch: Callable[[Any], Awaitable[Optional[bytes]]],
        key: Callable[[Any], Hashable] = lambda item: item.cache_key,
        batch_size: int = WARM_BATCH_SIZE,
        delay: float = WARM_BATCH_DELAY,
    ):
        self.cache = cache
        self._fetch = fetch
        self._key = key
        self.batch_size = max(1, batch_size)
        self.delay = delay
        self._running = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._running

    def stop(self):
        self._stopped = True

    async def warm(self, items: Sequence[Any]) -> int:
        """Warm the cache for items; returns how many thumbnails were stored."""
        if self._running or self._stopped or not items:
            return 0
        self._running = True

        stored = 0
        try:
            for i in range(0, len(items), self.batch_size):
                if self._stopped:
                    break
                batch = items[i:i + self.batch_size]
                results = await asyncio.gather(*(self._warm_one(item) for item in batch))
                stored += sum(results)

                # Yield to the loop between batches
                await asyncio.sleep(self.delay)
        finally:
            self._running = False

        logger.debug("Warmed %d of %d thumbnails", stored, len(items))
        return stored

    async def _warm_one(self, item) -> int:
        try:
            key = self._key(item)
            if self.cache.get(key) is not None:
                return 0
            data = await self._fetch(item)
            if data is None or self._stopped:
                return 0
            self.cache.put(key, data)
            return 1
        except Exception as e:
            logger.debug("Thumbnail warm-up failed for %r: %s", item, e)
            return 0
