"""Periodic eviction of idle rate limit buckets.

The task is owned by the application lifespan; importing this module starts
nothing.
"""

import asyncio
from typing import Optional

from shopgate.app.core.logging import get_logger
from shopgate.app.middleware.rate_limit.limiter import RateLimiterRegistry

logger = get_logger(__name__)


class RateLimitCleanupTask:
    """Runs ``registry.cleanup()`` every ``interval`` seconds.

    Usage:
        task = RateLimitCleanupTask(registry, interval=300.0)
        await task.start()
        ...
        await task.stop()
    """

    def __init__(self, registry: RateLimiterRegistry, interval: float = 300.0):
        self._registry = registry
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._task is not None:
            logger.debug("Rate limit cleanup already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started rate limit cleanup (interval: {self._interval}s)")

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if self._task is None:
            return

        self._stop_event.set()

        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Rate limit cleanup did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            logger.info("Stopped rate limit cleanup")

    def sweep(self) -> int:
        """Run one cleanup pass immediately."""
        removed = self._registry.cleanup()
        if removed:
            logger.debug(f"Evicted {removed} idle rate limit buckets")
        return removed

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Error during rate limit cleanup: {e}")
