"""Tests for the background market ticker."""

from __future__ import annotations

import asyncio

import pytest

from engine.scheduler import MarketTicker


def _run_async(coro):
    return asyncio.run(coro)


class _CountingService:
    user_id = "u1"

    def __init__(self, fail_first: bool = False) -> None:
        self.ticks = 0
        self.fail_first = fail_first

    async def tick(self):
        self.ticks += 1
        if self.fail_first and self.ticks == 1:
            raise RuntimeError("boom")
        return []


class TestMarketTicker:
    @pytest.mark.parametrize("interval", [0, -1])
    def test_rejects_non_positive_interval(self, interval):
        with pytest.raises(ValueError):
            MarketTicker(_CountingService(), interval)

    def test_ticks_until_stopped(self):
        service = _CountingService()
        ticker = MarketTicker(service, 0.01)

        async def scenario():
            ticker.start()
            assert ticker.running
            await asyncio.sleep(0.065)
            await ticker.stop()
            stopped_at = service.ticks
            await asyncio.sleep(0.03)
            return stopped_at

        stopped_at = _run_async(scenario())
        assert stopped_at >= 2
        assert service.ticks == stopped_at
        assert not ticker.running

    def test_start_is_idempotent(self):
        ticker = MarketTicker(_CountingService(), 0.01)

        async def scenario():
            ticker.start()
            first = ticker._task
            ticker.start()
            same = ticker._task is first
            await ticker.stop()
            return same

        assert _run_async(scenario())

    def test_stop_without_start(self):
        ticker = MarketTicker(_CountingService(), 1)
        _run_async(ticker.stop())
        assert not ticker.running

    def test_failed_tick_does_not_stop_ticker(self):
        service = _CountingService(fail_first=True)
        ticker = MarketTicker(service, 0.01)

        async def scenario():
            ticker.start()
            await asyncio.sleep(0.06)
            running = ticker.running
            await ticker.stop()
            return running

        assert _run_async(scenario())
        assert service.ticks >= 2
