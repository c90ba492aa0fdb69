"""Tests for the non-reentrant trending refresher."""

import asyncio

import pytest

from rugscope.parsers.refresher import TrendingRefresher


class FakeAggregator:
    def __init__(self, *, gate: asyncio.Event | None = None, error: Exception | None = None):
        self.gate = gate
        self.error = error
        self.calls: list[int] = []

    async def refresh_trending_tokens(self, limit: int = 100):
        self.calls.append(limit)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return ["token"] * 3


@pytest.mark.asyncio
async def test_run_once_records_status():
    aggregator = FakeAggregator()
    refresher = TrendingRefresher(aggregator, interval_sec=60, limit=25)

    assert await refresher.run_once() is True

    status = refresher.status()
    assert aggregator.calls == [25]
    assert status["is_running"] is False
    assert status["has_scheduler"] is False
    assert status["last_count"] == 3
    assert status["last_run_at"] is not None


@pytest.mark.asyncio
async def test_concurrent_run_is_suppressed():
    gate = asyncio.Event()
    aggregator = FakeAggregator(gate=gate)
    refresher = TrendingRefresher(aggregator)

    first = asyncio.create_task(refresher.run_once())
    await asyncio.sleep(0)
    assert refresher.status()["is_running"] is True

    assert await refresher.trigger() is False
    gate.set()
    assert await first is True
    assert len(aggregator.calls) == 1
    assert refresher.is_running is False


@pytest.mark.asyncio
async def test_failure_is_logged_not_raised():
    refresher = TrendingRefresher(FakeAggregator(error=RuntimeError("upstream down")))

    assert await refresher.run_once() is False
    assert await refresher.trigger() is False
    assert refresher.is_running is False
    assert refresher.status()["last_run_at"] is None


@pytest.mark.asyncio
async def test_scheduler_runs_immediately_and_stops():
    aggregator = FakeAggregator()
    refresher = TrendingRefresher(aggregator, interval_sec=3600)

    refresher.start()
    refresher.start()  # already running: no second task
    await asyncio.sleep(0.01)

    assert refresher.status()["has_scheduler"] is True
    assert len(aggregator.calls) == 1

    await refresher.stop()
    assert refresher.status()["has_scheduler"] is False
