"""Periodic trending-tokens refresh.

Non-reentrant: at most one refresh cycle runs at a time. A scheduled tick
or a manual ``trigger()`` that arrives while a cycle is in flight is
dropped, not queued.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from rugscope.parsers.aggregator import TokenAggregator


class TrendingRefresher:
    def __init__(self, aggregator: TokenAggregator, interval_sec: float = 3600, limit: int = 100) -> None:
        self._aggregator = aggregator
        self._interval_sec = interval_sec
        self._limit = limit
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self.last_run_at: datetime | None = None
        self.last_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_once(self) -> bool:
        """One refresh cycle.

        Returns True when the cycle completed. False when another cycle was
        in flight or the refresh failed (the failure is logged, not raised).
        """
        if self._running:
            logger.info("[REFRESH] refresh already in progress, skipping")
            return False
        self._running = True
        try:
            started = datetime.now(UTC)
            tokens = await self._aggregator.refresh_trending_tokens(self._limit)
            self.last_run_at = started
            self.last_count = len(tokens)
            elapsed = (datetime.now(UTC) - started).total_seconds()
            logger.info(f"[REFRESH] refreshed {len(tokens)} trending tokens in {elapsed:.1f}s")
        except Exception as e:
            logger.error(f"[REFRESH] refresh failed: {type(e).__name__}: {e}")
            return False
        finally:
            self._running = False
        return True

    async def trigger(self) -> bool:
        """Manual refresh through the same guarded entry point."""
        logger.info("[REFRESH] manual refresh triggered")
        return await self.run_once()

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval_sec)

    def start(self) -> None:
        """Run immediately, then every ``interval_sec``."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop(), name="trending_refresh")
        logger.info(f"[REFRESH] scheduler started (every {self._interval_sec:g}s, limit {self._limit})")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[REFRESH] scheduler stopped")

    def status(self) -> dict[str, Any]:
        return {
            "is_running": self._running,
            "has_scheduler": self._task is not None and not self._task.done(),
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_count": self.last_count,
        }
