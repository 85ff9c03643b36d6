"""Per-tick resource polling with per-target failure isolation.

Every tick re-fetches every target from scratch; nothing is cached between
ticks.  Fetches run concurrently and each one is bounded by the fetch
timeout and interrupted by the receiver's stop signal.  Results are
collected as tagged success/failure values; successes are emitted and
failures logged only after all fetches of the tick have finished.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from datetime import UTC, datetime

import structlog

from cmreceiver.consumers.base import LogsConsumer
from cmreceiver.errors import FetchCancelled, FetchError, TargetNotFound, TransientFetchError
from cmreceiver.k8s.client import FetchedObject, ObjectFetcher
from cmreceiver.models.targets import EmittedRecord, PollResult, TickReport
from cmreceiver.observability.metrics import (
    emit_failures_total,
    fetch_total,
    poll_tick_duration_seconds,
    poll_ticks_total,
)

_log = structlog.get_logger(component="receiver.poller")


def _outcome_label(error: Exception | None) -> str:
    if error is None:
        return "success"
    if isinstance(error, TargetNotFound):
        return "not_found"
    if isinstance(error, FetchCancelled):
        return "cancelled"
    return "error"


class ResourcePoller:
    """Fetches every target of a mapping and forwards successes downstream.

    Args:
        client:          Control-plane boundary.
        consumer:        Downstream consumer; called once per success.
        stop:            Shared stop signal; set means in-flight fetches fail fast.
        fetch_timeout:   Upper bound for a single fetch, in seconds.
        max_concurrent:  Upper bound on fetches in flight within one tick.
    """

    def __init__(
        self,
        client: ObjectFetcher,
        consumer: LogsConsumer,
        stop: asyncio.Event,
        fetch_timeout: float = 10.0,
        max_concurrent: int = 16,
    ) -> None:
        self._client = client
        self._consumer = consumer
        self._stop = stop
        self._fetch_timeout = fetch_timeout
        self._max_concurrent = max_concurrent
        self._ticks = 0
        self.last_report: TickReport | None = None

    async def poll_once(self, mapping: Mapping[str, str]) -> TickReport:
        """Run one tick over *mapping*.  Never raises for per-target failures."""
        self._ticks += 1
        report = TickReport(tick=self._ticks, started_at=datetime.now(tz=UTC))
        started = time.monotonic()
        _log.info("listing_selected_configmaps", tick=report.tick, targets=len(mapping))

        semaphore = asyncio.Semaphore(self._max_concurrent)
        report.results = list(
            await asyncio.gather(
                *(
                    self._fetch_one(name, namespace, report.started_at, semaphore)
                    for name, namespace in mapping.items()
                )
            )
        )

        for result in sorted(report.succeeded, key=lambda r: (r.namespace, r.name)):
            await self._emit(result)

        for result in report.failed:
            _log.warning(
                "fetch_failed",
                tick=report.tick,
                name=result.name,
                namespace=result.namespace,
                error_type=type(result.error).__name__,
                error=getattr(result.error, "cause", str(result.error)),
            )

        report.duration_seconds = time.monotonic() - started
        poll_ticks_total.inc()
        poll_tick_duration_seconds.observe(report.duration_seconds)
        self.last_report = report
        _log.info(
            "poll_tick_completed",
            tick=report.tick,
            succeeded=len(report.succeeded),
            failed=len(report.failed),
            duration_ms=int(report.duration_seconds * 1000),
        )
        return report

    async def _fetch_one(
        self,
        name: str,
        namespace: str,
        observed_at: datetime,
        semaphore: asyncio.Semaphore,
    ) -> PollResult:
        async with semaphore:
            outcome = await self._fetch_into(name, namespace)
        if isinstance(outcome, FetchError):
            result = PollResult(name=name, namespace=namespace, observed_at=observed_at, error=outcome)
        else:
            result = PollResult(
                name=outcome.name,
                namespace=outcome.namespace,
                observed_at=observed_at,
                data=outcome.data,
            )
        fetch_total.labels(outcome=_outcome_label(result.error)).inc()
        return result

    async def _fetch_into(self, name: str, namespace: str) -> FetchedObject | FetchError:
        """Fetch one target, racing it against the timeout and the stop signal."""
        if self._stop.is_set():
            return FetchCancelled(name, namespace, "receiver shutting down")

        _log.debug("getting_configmap", name=name, namespace=namespace)
        fetch = asyncio.ensure_future(self._client.fetch(name, namespace))
        stopped = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait(
                {fetch, stopped},
                timeout=self._fetch_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stopped.cancel()
            if not fetch.done():
                fetch.cancel()
                await asyncio.gather(fetch, return_exceptions=True)

        if fetch not in done or fetch.cancelled():
            if self._stop.is_set():
                return FetchCancelled(name, namespace, "receiver shutting down")
            return TransientFetchError(name, namespace, f"fetch timed out after {self._fetch_timeout}s")

        try:
            return fetch.result()
        except FetchError as exc:
            return exc
        except Exception as exc:  # noqa: BLE001
            return TransientFetchError(name, namespace, str(exc) or type(exc).__name__)

    async def _emit(self, result: PollResult) -> None:
        record = EmittedRecord(
            name=result.name,
            namespace=result.namespace,
            payload=result.data,
            observed_at=result.observed_at,
        )
        try:
            await self._consumer.consume(record)
        except Exception as exc:  # noqa: BLE001
            emit_failures_total.inc()
            _log.error(
                "emit_failed",
                consumer=self._consumer.consumer_name,
                name=result.name,
                namespace=result.namespace,
                error=str(exc),
            )
