"""Receiver lifecycle: startup gate, concurrent probe/poll loops, graceful shutdown.

State machine::

    created -> probing -> resolving -> polling -> shutting_down -> stopped

A fatal error while probing or resolving goes straight to ``stopped``.

``start`` runs one connectivity probe as a startup gate, resolves the target
list and then launches two independent tasks: the poll loop (first tick
immediately, then every poll interval) and the probe loop (every probe
interval, reported as health only).  Every wait in the receiver, including
in-flight fetches and probes, observes one stop signal, which ``shutdown``
sets.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import structlog

from cmreceiver.config import validate_receiver_config
from cmreceiver.consumers.base import LogsConsumer
from cmreceiver.errors import ConnectivityError, ShutdownError
from cmreceiver.k8s.client import ObjectFetcher
from cmreceiver.models.config import ReceiverConfig
from cmreceiver.models.targets import ReceiverState, TargetMapping
from cmreceiver.observability.metrics import targets_configured
from cmreceiver.receiver.poller import ResourcePoller
from cmreceiver.receiver.probe import ConnectivityProbe
from cmreceiver.receiver.targets import parse_target_list, resolve_targets
from cmreceiver.receiver.ticker import Ticker

_log = structlog.get_logger(component="receiver.lifecycle")


class ConfigMapReceiver:
    """Owns the target mapping, both loops and the control-plane client.

    ``shutdown`` is idempotent and safe in every state.  The client passed in
    is closed exactly once, by shutdown or by a failed start.
    """

    def __init__(self, config: ReceiverConfig, client: ObjectFetcher, consumer: LogsConsumer) -> None:
        validate_receiver_config(config)
        self._config = config
        self._client = client
        self._consumer = consumer

        self._stop = asyncio.Event()
        self._stopped = asyncio.Event()
        self._start_finished = asyncio.Event()
        self._probe = ConnectivityProbe(config.probe)
        self._poller = ResourcePoller(
            client,
            consumer,
            self._stop,
            fetch_timeout=config.fetch_timeout_seconds,
            max_concurrent=config.max_concurrent_fetches,
        )

        self._state = ReceiverState.CREATED
        self._targets: Mapping[str, str] = MappingProxyType({})
        self._tasks: list[asyncio.Task[None]] = []
        self._shutdown_task: asyncio.Task[None] | None = None
        self._client_closed = False

    @property
    def state(self) -> ReceiverState:
        return self._state

    @property
    def targets(self) -> Mapping[str, str]:
        """Read-only name -> namespace mapping; empty until resolved."""
        return self._targets

    @property
    def poller(self) -> ResourcePoller:
        return self._poller

    @property
    def probe(self) -> ConnectivityProbe:
        return self._probe

    def health(self) -> dict[str, Any]:
        """Snapshot of probe and poll status for the status API."""
        outcome = self._probe.last_outcome
        report = self._poller.last_report
        return {
            "state": self._state.value,
            "targets": len(self._targets),
            "probe": {
                "endpoint": self._probe.endpoint,
                "reachable": outcome.reachable if outcome else None,
                "checked_at": outcome.checked_at.isoformat() if outcome else None,
                "error": outcome.error if outcome else None,
                "consecutive_failures": self._probe.consecutive_failures,
            },
            "last_tick": (
                {
                    "tick": report.tick,
                    "started_at": report.started_at.isoformat(),
                    "succeeded": len(report.succeeded),
                    "failed": len(report.failed),
                    "duration_ms": int(report.duration_seconds * 1000),
                }
                if report
                else None
            ),
        }

    def _set_state(self, state: ReceiverState) -> None:
        _log.debug("state_transition", previous=self._state.value, state=state.value)
        self._state = state

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Probe, resolve targets and enter the polling state.

        Returns once both loops are running, or quietly if shutdown is
        requested first.  Raises ConnectivityError or ConfigurationError
        (TargetListError for a bad target list) if startup fails; the receiver
        is then stopped and never emits anything.
        """
        if self._state is not ReceiverState.CREATED:
            raise RuntimeError(f"Receiver cannot start from state {self._state.value}")

        self._set_state(ReceiverState.PROBING)
        _log.info("receiver_starting", endpoint=self._probe.endpoint)
        try:
            mapping = await self._probe_and_resolve()
            if mapping is None:
                _log.info("receiver_start_aborted", reason="shutdown requested")
                return
            self._begin_polling(mapping)
        except Exception as exc:
            _log.error("receiver_start_failed", error_type=type(exc).__name__, error=str(exc))
            await self._abort_start()
            raise
        finally:
            self._start_finished.set()

    async def _probe_and_resolve(self) -> TargetMapping | None:
        """Run the startup gate and resolve targets; None if stop was requested."""
        outcome = await self._probe.check(self._stop)
        if outcome is None or self._stop.is_set():
            return None
        if not outcome.reachable:
            raise ConnectivityError(outcome)

        self._set_state(ReceiverState.RESOLVING)
        specs = parse_target_list(self._config.target_list, self._config.target_list_source)
        return resolve_targets(specs)

    def _begin_polling(self, mapping: TargetMapping) -> None:
        self._targets = MappingProxyType(mapping)
        targets_configured.set(len(mapping))
        _log.info("targets_resolved", count=len(mapping), targets=dict(mapping))

        self._set_state(ReceiverState.POLLING)
        self._tasks = [
            asyncio.create_task(self._poll_loop(), name="cmreceiver-poll"),
            asyncio.create_task(self._probe_loop(), name="cmreceiver-probe"),
        ]
        _log.info(
            "receiver_started",
            poll_interval_s=self._config.poll_interval.total_seconds(),
            probe_interval_s=self._config.probe_interval.total_seconds(),
        )

    async def _abort_start(self) -> None:
        try:
            await self._close_client()
        except Exception as exc:  # noqa: BLE001
            _log.warning("client_close_failed", error=str(exc))
        self._set_state(ReceiverState.STOPPED)
        self._stopped.set()

    async def _poll_loop(self) -> None:
        ticker = Ticker(self._config.poll_interval.total_seconds(), self._stop, "poll", immediate=True)
        while await ticker.wait():
            try:
                await self._poller.poll_once(self._targets)
            except Exception as exc:  # noqa: BLE001
                _log.error("poll_tick_error", error=str(exc))

    async def _probe_loop(self) -> None:
        ticker = Ticker(self._config.probe_interval.total_seconds(), self._stop, "probe")
        while await ticker.wait():
            try:
                await self._probe.check(self._stop)
            except Exception as exc:  # noqa: BLE001
                _log.error("probe_error", error_type=type(exc).__name__, error=str(exc))

    async def wait(self) -> None:
        """Block until the receiver has stopped."""
        await self._stopped.wait()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Stop both loops, wait for in-flight work and release the client.

        Only the call that initiates shutdown raises ShutdownError; later or
        concurrent calls just wait until the receiver is stopped.
        """
        if self._shutdown_task is not None:
            await self._stopped.wait()
            return
        self._shutdown_task = asyncio.ensure_future(self._drain())
        await asyncio.shield(self._shutdown_task)

    async def _drain(self) -> None:
        previous = self._state
        if previous is not ReceiverState.STOPPED:
            self._set_state(ReceiverState.SHUTTING_DOWN)
        _log.info("shutting_down_receiver", state=previous.value)
        self._stop.set()
        if previous in (ReceiverState.PROBING, ReceiverState.RESOLVING):
            await self._start_finished.wait()

        if self._tasks:
            grace = self._config.shutdown_grace_seconds
            _done, pending = await asyncio.wait(self._tasks, timeout=grace)
            if pending:
                _log.warning("shutdown_grace_expired", pending=len(pending), grace_s=grace)
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
            self._tasks.clear()

        error: Exception | None = None
        try:
            await self._close_client()
        except Exception as exc:  # noqa: BLE001
            error = exc

        self._set_state(ReceiverState.STOPPED)
        self._stopped.set()
        _log.info("receiver_stopped")
        if error is not None:
            raise ShutdownError(f"Closing control-plane client failed: {error}") from error

    async def _close_client(self) -> None:
        if self._client_closed:
            return
        self._client_closed = True
        await self._client.close()
