"""Periodic background sweep of expired cache entries."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Sweepable(Protocol):
    def sweep(self) -> int: ...


class CacheSweeper:
    """Runs ``sweep()`` on each registered cache every ``interval`` seconds.

    Independent of request handling. Use ``start()`` from inside a running
    event loop and ``stop()`` on shutdown.
    """

    def __init__(self, caches: list[Sweepable], interval: float = 300.0) -> None:
        self._caches = list(caches)
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        removed = 0
        for cache in self._caches:
            removed += cache.sweep()
        if removed:
            logger.debug("Cache sweep removed %d expired entries", removed)
        return removed

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="ratebridge-cache-sweeper")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.sweep_once()
