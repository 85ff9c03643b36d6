"""Outbound connectivity probe."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import structlog

from cmreceiver.models.config import ProbeConfig
from cmreceiver.models.targets import ProbeOutcome
from cmreceiver.observability.metrics import probe_reachable, probe_total

_log = structlog.get_logger(component="receiver.probe")


async def probe_once(host: str, port: int, timeout: float) -> ProbeOutcome:
    """Open a TCP connection to ``host:port`` within *timeout* seconds.

    Never raises for network failures or malformed hosts; the outcome carries
    the error text.
    """
    endpoint = f"{host}:{port}"
    checked_at = datetime.now(tz=UTC)
    try:
        _reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except TimeoutError:
        return ProbeOutcome(
            reachable=False,
            endpoint=endpoint,
            checked_at=checked_at,
            error=f"connection timed out after {timeout}s",
        )
    except (OSError, ValueError) as exc:
        # ValueError covers hosts the idna codec rejects (UnicodeError).
        return ProbeOutcome(reachable=False, endpoint=endpoint, checked_at=checked_at, error=str(exc) or repr(exc))

    writer.close()
    try:
        await writer.wait_closed()
    except OSError as exc:
        _log.debug("probe_close_error", endpoint=endpoint, error=str(exc))
    return ProbeOutcome(reachable=True, endpoint=endpoint, checked_at=checked_at)


class ConnectivityProbe:
    """Runs probes against one configured endpoint and remembers the last outcome."""

    def __init__(self, config: ProbeConfig) -> None:
        self._config = config
        self.last_outcome: ProbeOutcome | None = None
        self.consecutive_failures = 0

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    async def check(self, stop: asyncio.Event | None = None) -> ProbeOutcome | None:
        """Probe once, record the outcome and log it.

        If *stop* is set before the probe finishes, the attempt is abandoned
        and None is returned without touching the recorded state.
        """
        if stop is not None and stop.is_set():
            return None

        _log.debug("checking_connection", endpoint=self.endpoint)
        attempt = asyncio.ensure_future(
            probe_once(self._config.host, self._config.port, self._config.timeout_seconds)
        )
        if stop is None:
            outcome = await attempt
        else:
            stopped = asyncio.ensure_future(stop.wait())
            try:
                await asyncio.wait({attempt, stopped}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                stopped.cancel()
                if not attempt.done():
                    attempt.cancel()
                    await asyncio.gather(attempt, return_exceptions=True)
            if attempt.cancelled():
                _log.debug("probe_abandoned", endpoint=self.endpoint)
                return None
            outcome = attempt.result()

        self.last_outcome = outcome
        probe_total.labels(reachable="true" if outcome.reachable else "false").inc()
        probe_reachable.set(1 if outcome.reachable else 0)

        if outcome.reachable:
            self.consecutive_failures = 0
            _log.info("port_open", endpoint=outcome.endpoint)
        else:
            self.consecutive_failures += 1
            _log.warning(
                "port_closed",
                endpoint=outcome.endpoint,
                error=outcome.error,
                consecutive_failures=self.consecutive_failures,
            )
        return outcome
