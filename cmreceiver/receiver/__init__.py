"""Dual-loop polling engine.

Submodules:
    targets   -- YAML target list parsing and last-write-wins resolution.
    probe     -- TCP connectivity probe.
    ticker    -- Fixed-interval schedule with a cancellable wait.
    poller    -- Per-tick concurrent fetch with per-target failure isolation.
    lifecycle -- ConfigMapReceiver: startup gate, loops, graceful shutdown.
"""

from __future__ import annotations

from cmreceiver.consumers.base import LoggingConsumer, LogsConsumer
from cmreceiver.k8s.client import ObjectFetcher
from cmreceiver.models.config import ReceiverConfig
from cmreceiver.receiver.lifecycle import ConfigMapReceiver
from cmreceiver.receiver.poller import ResourcePoller
from cmreceiver.receiver.probe import ConnectivityProbe, probe_once
from cmreceiver.receiver.targets import parse_target_list, resolve_targets
from cmreceiver.receiver.ticker import Ticker

__all__ = [
    "ConfigMapReceiver",
    "ConnectivityProbe",
    "ResourcePoller",
    "Ticker",
    "build_receiver",
    "parse_target_list",
    "probe_once",
    "resolve_targets",
]


def build_receiver(
    config: ReceiverConfig,
    client: ObjectFetcher,
    consumer: LogsConsumer | None = None,
) -> ConfigMapReceiver:
    """Create a receiver; records go to the log stream unless *consumer* is given."""
    return ConfigMapReceiver(config, client, consumer or LoggingConsumer())
