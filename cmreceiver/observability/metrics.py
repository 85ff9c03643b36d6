"""Prometheus metrics for the polling engine."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

poll_ticks_total = Counter(
    "cmreceiver_poll_ticks_total",
    "Poll ticks executed.",
)

fetch_total = Counter(
    "cmreceiver_fetch_total",
    "Per-target fetch attempts by outcome.",
    ["outcome"],
)

poll_tick_duration_seconds = Histogram(
    "cmreceiver_poll_tick_duration_seconds",
    "Wall-clock duration of a poll tick.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

emit_failures_total = Counter(
    "cmreceiver_emit_failures_total",
    "Records the downstream consumer failed to accept.",
)

probe_total = Counter(
    "cmreceiver_probe_total",
    "Connectivity probes by result.",
    ["reachable"],
)

probe_reachable = Gauge(
    "cmreceiver_probe_reachable",
    "1 if the last connectivity probe succeeded, 0 otherwise.",
)

ticks_skipped_total = Counter(
    "cmreceiver_ticks_skipped_total",
    "Ticks dropped because the previous tick was still running.",
    ["loop"],
)

targets_configured = Gauge(
    "cmreceiver_targets_configured",
    "Number of distinct targets in the resolved mapping.",
)
