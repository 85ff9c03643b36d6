"""Downstream consumers for emitted ConfigMap records.

Exports:
    LogsConsumer    -- Abstract base for all consumers.
    LoggingConsumer -- Structured-log consumer used by the process bootstrap.
    MemoryConsumer  -- In-memory consumer for embedding hosts and tests.
"""

from cmreceiver.consumers.base import LoggingConsumer, LogsConsumer, MemoryConsumer

__all__ = ["LoggingConsumer", "LogsConsumer", "MemoryConsumer"]
