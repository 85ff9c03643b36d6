"""Fixed-interval schedule with a cancellable wait."""

from __future__ import annotations

import asyncio
import time

import structlog

from cmreceiver.observability.metrics import ticks_skipped_total

_log = structlog.get_logger(component="receiver.ticker")


class Ticker:
    """Fires every *interval* seconds until *stop* is set.

    Deadlines are fixed (``start + k * interval``).  Deadlines that pass while
    the caller is still busy with the previous tick are dropped, so a slow
    tick never causes a burst of catch-up ticks.
    """

    def __init__(
        self,
        interval: float,
        stop: asyncio.Event,
        name: str,
        immediate: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError("Ticker interval must be positive")
        self._interval = interval
        self._stop = stop
        self._name = name
        self._immediate = immediate
        self._next = time.monotonic() + interval
        self.skipped = 0

    async def wait(self) -> bool:
        """Wait for the next tick.

        Returns True when the tick fires, False as soon as *stop* is set.
        """
        if self._stop.is_set():
            return False
        if self._immediate:
            self._immediate = False
            return True

        now = time.monotonic()
        missed = 0
        while self._next <= now:
            self._next += self._interval
            missed += 1
        if missed:
            self.skipped += missed
            ticks_skipped_total.labels(loop=self._name).inc(missed)
            _log.warning("ticks_skipped", loop=self._name, skipped=missed)

        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self._next - now)
        except TimeoutError:
            self._next += self._interval
            return True
        return False
