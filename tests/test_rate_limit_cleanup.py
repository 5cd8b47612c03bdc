"""Tests for the periodic rate limit bucket sweep."""

import asyncio
from unittest.mock import MagicMock

import pytest

from shopgate.app.middleware.rate_limit import RateLimitCleanupTask, RateLimiterRegistry


class TestRateLimitCleanupTask:

    @pytest.mark.asyncio
    async def test_importing_and_constructing_schedules_nothing(self):
        registry = MagicMock(spec=RateLimiterRegistry)
        task = RateLimitCleanupTask(registry, interval=0.01)

        await asyncio.sleep(0.05)

        assert task.running is False
        registry.cleanup.assert_not_called()

    @pytest.mark.asyncio
    async def test_sweeps_periodically_until_stopped(self):
        registry = MagicMock(spec=RateLimiterRegistry)
        registry.cleanup.return_value = 0
        task = RateLimitCleanupTask(registry, interval=0.01)

        await task.start()
        await asyncio.sleep(0.1)
        await task.stop()

        calls = registry.cleanup.call_count
        assert calls >= 2
        assert task.running is False

        await asyncio.sleep(0.05)
        assert registry.cleanup.call_count == calls

    @pytest.mark.asyncio
    async def test_error_in_sweep_does_not_stop_loop(self):
        registry = MagicMock(spec=RateLimiterRegistry)
        registry.cleanup.side_effect = [RuntimeError("boom"), 1, 0, 0, 0, 0, 0, 0, 0, 0]
        task = RateLimitCleanupTask(registry, interval=0.01)

        await task.start()
        await asyncio.sleep(0.05)
        await task.stop()

        assert registry.cleanup.call_count >= 2

    @pytest.mark.asyncio
    async def test_start_twice_keeps_single_task(self):
        registry = MagicMock(spec=RateLimiterRegistry)
        registry.cleanup.return_value = 0
        task = RateLimitCleanupTask(registry, interval=60.0)

        await task.start()
        first = task._task
        await task.start()

        assert task._task is first
        await task.stop()

    @pytest.mark.asyncio
    async def test_stop_is_prompt_with_long_interval(self):
        registry = MagicMock(spec=RateLimiterRegistry)
        task = RateLimitCleanupTask(registry, interval=300.0)

        await task.start()
        await asyncio.wait_for(task.stop(), timeout=1.0)

        registry.cleanup.assert_not_called()

    def test_sweep_returns_removed_count(self):
        registry = MagicMock(spec=RateLimiterRegistry)
        registry.cleanup.return_value = 4

        assert RateLimitCleanupTask(registry).sweep() == 4
