"""Downstream consumer boundary.

LogsConsumer     -- ABC every consumer must implement.
LoggingConsumer  -- Writes each record as a structured log line (default).
MemoryConsumer   -- Keeps records in memory for embedding hosts and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from cmreceiver.models.targets import EmittedRecord

_log = structlog.get_logger(component="consumers")


class LogsConsumer(ABC):
    """Receives one record per successfully fetched target.

    ``consume`` may raise; the poller logs the failure and moves on to the
    next record.
    """

    @property
    @abstractmethod
    def consumer_name(self) -> str:
        """Identifier used in logs."""

    @abstractmethod
    async def consume(self, record: EmittedRecord) -> None:
        """Accept *record*."""


class LoggingConsumer(LogsConsumer):
    """Emits namespace, name and data of every record to the log stream."""

    @property
    def consumer_name(self) -> str:
        return "logging"

    async def consume(self, record: EmittedRecord) -> None:
        _log.info(
            "configmap_observed",
            namespace=record.namespace,
            name=record.name,
            data=record.payload,
            observed_at=record.observed_at.isoformat(),
        )


class MemoryConsumer(LogsConsumer):
    """Collects records in arrival order."""

    def __init__(self) -> None:
        self.records: list[EmittedRecord] = []

    @property
    def consumer_name(self) -> str:
        return "memory"

    async def consume(self, record: EmittedRecord) -> None:
        self.records.append(record)

    def clear(self) -> None:
        self.records.clear()
