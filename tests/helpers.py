"""Test doubles and async helpers shared across the test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from cmreceiver.errors import TargetNotFound
from cmreceiver.k8s.client import FetchedObject, ObjectFetcher

HANG = object()


class FakeFetcher(ObjectFetcher):
    """ObjectFetcher backed by a dict.

    ``objects`` maps ``(name, namespace)`` to a payload dict, an exception
    instance to raise, or ``HANG`` to block until cancelled.  Targets not in
    the dict raise TargetNotFound.
    """

    def __init__(self, objects: dict[tuple[str, str], Any] | None = None) -> None:
        self.objects = objects or {}
        self.calls: list[tuple[str, str]] = []
        self.cancelled: list[tuple[str, str]] = []
        self.close_calls = 0
        self.close_error: Exception | None = None
        self.in_flight = asyncio.Event()

    async def fetch(self, name: str, namespace: str) -> FetchedObject:
        self.calls.append((name, namespace))
        value = self.objects.get((name, namespace))
        if value is None:
            raise TargetNotFound(name, namespace, "configmap not found")
        if value is HANG:
            self.in_flight.set()
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled.append((name, namespace))
                raise
        if isinstance(value, Exception):
            raise value
        return FetchedObject(name=name, namespace=namespace, data=dict(value))

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll *predicate* on the event loop until it is true."""

    async def _loop() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_loop(), timeout=timeout)
