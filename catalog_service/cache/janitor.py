"""
Periodic expiry sweep for TTL caches.

Runs ``cleanup`` on every registered cache at a fixed interval, independent
of request traffic.
"""

import asyncio
import logging
from typing import List, Optional

from catalog_service.cache.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class CacheJanitor:
    """Background task sweeping expired cache entries."""

    def __init__(self, caches: Optional[List[TTLCache]] = None, interval_seconds: float = 300):
        self.caches: List[TTLCache] = list(caches or [])
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def register(self, cache: TTLCache) -> None:
        if cache not in self.caches:
            self.caches.append(cache)

    def sweep(self) -> int:
        """
        Sweep all registered caches once.

        A cache whose cleanup fails is logged and skipped; the remaining
        caches are still swept.

        Returns:
            Total number of entries removed
        """
        removed = 0
        for cache in self.caches:
            try:
                removed += cache.cleanup()
            except Exception as e:
                logger.error(f"Cache janitor failed to sweep {getattr(cache, 'name', cache)}: {e}")
        if removed:
            logger.info(f"Cache janitor removed {removed} expired entries")
        return removed

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="cache-janitor")
        logger.info(f"Cache janitor started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cache janitor stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Cache janitor sweep failed: {e}")
