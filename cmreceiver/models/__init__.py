"""Core data structures for cmreceiver."""

from cmreceiver.models.config import AppConfig, APIConfig, LogConfig, ProbeConfig, ReceiverConfig
from cmreceiver.models.targets import (
    EmittedRecord,
    PollResult,
    ProbeOutcome,
    ReceiverState,
    TargetMapping,
    TargetSpec,
    TickReport,
)

__all__ = [
    "APIConfig",
    "AppConfig",
    "EmittedRecord",
    "LogConfig",
    "PollResult",
    "ProbeConfig",
    "ProbeOutcome",
    "ReceiverConfig",
    "ReceiverState",
    "TargetMapping",
    "TargetSpec",
    "TickReport",
]
