"""Tests for the cancellable fixed-interval ticker."""

from __future__ import annotations

import asyncio
import time

import pytest

from cmreceiver.receiver.ticker import Ticker


class TestTicker:
    async def test_fires_after_interval(self) -> None:
        ticker = Ticker(0.05, asyncio.Event(), "test")
        started = time.monotonic()
        assert await ticker.wait() is True
        assert time.monotonic() - started >= 0.04

    async def test_immediate_first_tick(self) -> None:
        ticker = Ticker(60, asyncio.Event(), "test", immediate=True)
        assert await asyncio.wait_for(ticker.wait(), timeout=1.0) is True

    async def test_stop_interrupts_wait(self) -> None:
        stop = asyncio.Event()
        ticker = Ticker(3600, stop, "test")
        waiter = asyncio.create_task(ticker.wait())
        await asyncio.sleep(0.01)
        stop.set()
        assert await asyncio.wait_for(waiter, timeout=1.0) is False

    async def test_already_stopped_returns_false(self) -> None:
        stop = asyncio.Event()
        stop.set()
        ticker = Ticker(60, stop, "test", immediate=True)
        assert await ticker.wait() is False

    async def test_missed_ticks_are_skipped_not_queued(self) -> None:
        ticker = Ticker(0.02, asyncio.Event(), "test")
        assert await ticker.wait() is True
        # Simulate a slow tick spanning several deadlines.
        await asyncio.sleep(0.07)
        started = time.monotonic()
        assert await ticker.wait() is True
        assert ticker.skipped >= 2
        # The next tick waits for a fresh deadline instead of firing at once
        # for every missed one.
        assert await ticker.wait() is True
        assert time.monotonic() - started >= 0.015

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Ticker(0, asyncio.Event(), "test")
