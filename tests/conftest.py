"""Shared fixtures for cmreceiver tests.

Provides an in-memory control-plane fake, local TCP endpoints for the
connectivity probe and a ReceiverConfig factory, so no test touches a real
cluster or the internet.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import AsyncIterator, Callable, Iterator
from datetime import timedelta
from typing import Any

import pytest
import structlog

from cmreceiver.consumers import MemoryConsumer
from cmreceiver.models.config import ProbeConfig, ReceiverConfig
from tests.helpers import FakeFetcher


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def consumer() -> MemoryConsumer:
    return MemoryConsumer()


@pytest.fixture
async def open_port() -> AsyncIterator[int]:
    """Port of a local TCP server that accepts and immediately closes connections."""

    async def _handle(_reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        writer.close()

    server = await asyncio.start_server(_handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()
        await server.wait_closed()


@pytest.fixture
def closed_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def make_config() -> Callable[..., ReceiverConfig]:
    """Factory for ReceiverConfig pointing the probe at localhost."""

    def _make(
        port: int,
        target_list: str = "- name: a\n  namespace: ns1\n",
        **overrides: Any,
    ) -> ReceiverConfig:
        values: dict[str, Any] = {
            "poll_interval": timedelta(minutes=1),
            "probe_interval": timedelta(minutes=1),
            "target_list": target_list,
            "probe": ProbeConfig(host="127.0.0.1", port=port, timeout_seconds=1.0),
            "fetch_timeout_seconds": 5.0,
            "shutdown_grace_seconds": 5.0,
        }
        values.update(overrides)
        return ReceiverConfig(**values)

    return _make


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo setup_logging so later tests see structlog defaults again."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)
