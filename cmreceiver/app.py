"""Application bootstrap for cmreceiver.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → consumer → receiver → REST

Shutdown is graceful: components are stopped in reverse startup order and
each component's stop error is logged independently.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from cmreceiver.config import load_config
from cmreceiver.consumers import LoggingConsumer
from cmreceiver.errors import ConfigurationError, ConnectivityError, TargetListError
from cmreceiver.k8s.client import ControlPlaneConfigError, KubernetesConfigMapClient
from cmreceiver.models.config import AppConfig
from cmreceiver.observability.logging import get_logger, setup_logging
from cmreceiver.receiver import ConfigMapReceiver, build_receiver

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


def error_kind(exc: BaseException) -> str:
    """Classify a startup failure for operators."""
    if isinstance(exc, TargetListError):
        return "target_list"
    if isinstance(exc, ControlPlaneConfigError):
        return "control_plane"
    if isinstance(exc, ConfigurationError):
        return "configuration"
    if isinstance(exc, ConnectivityError):
        return "connectivity"
    return "component"


class ReceiverApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config
        self.receiver: ConfigMapReceiver | None = None
        self._client: KubernetesConfigMapClient | None = None
        self._rest_server: object | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._stopped = asyncio.Event()
        self._start_finished = asyncio.Event()
        self._starting = False
        self._stopping = False
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.  Returns
        early, leaving teardown to stop(), if stop() is called meanwhile.
        """
        self._starting = True
        try:
            await self._start_components()
        finally:
            self._starting = False
            self._start_finished.set()

    async def _start_components(self) -> None:
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            try:
                self.config = load_config()
            except ConfigurationError as exc:
                raise _ComponentError("config", exc) from exc

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("cmreceiver starting", version=_cmreceiver_version())

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_k8s_client()
        if self._stopping:
            return

        # --- 4. Receiver (gate probe, targets, loops) ---------------------
        await self._start_receiver()
        if self._stopping:
            return

        # --- 5. REST API -------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("cmreceiver started", targets=len(self.receiver.targets) if self.receiver else 0)

    async def _start_k8s_client(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting k8s client")
        try:
            self._client = await KubernetesConfigMapClient.create(
                request_timeout=self.config.receiver.fetch_timeout_seconds,
            )
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_receiver(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._client is not None
        self._log.debug("starting receiver")
        try:
            receiver = build_receiver(self.config.receiver, self._client, LoggingConsumer())
            self.receiver = receiver
            await receiver.start()
        except Exception as exc:
            raise _ComponentError("receiver", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn status server if enabled.  Failure is non-fatal."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("status api disabled")
            return
        self._log.debug("starting status api")
        try:
            import uvicorn  # type: ignore[import-untyped]

            from cmreceiver.api import build_app

            uv_config = uvicorn.Config(
                app=build_app(receiver=self.receiver),
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("status api started", port=self.config.api.port)
        except Exception as exc:
            self._log.warning("status api failed to start; continuing without it", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def wait(self) -> None:
        """Block until stop() has completed."""
        await self._stopped.wait()

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order.

        Safe to call while start() is still running: the receiver is told to
        stop first so its startup probe returns, then start() is awaited.
        """
        if self._stopping:
            await self._stopped.wait()
            return
        self._stopping = True
        log = self._log or get_logger("app")
        log.info("cmreceiver shutting down")
        self._running = False

        if self._starting:
            if self.receiver is not None:
                await self._stop_receiver(log)
            await self._start_finished.wait()

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]
        if self._background_tasks:
            _done, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_receiver(log)

        self._stopped.set()
        log.info("cmreceiver stopped")

    async def _stop_receiver(self, log: structlog.stdlib.BoundLogger) -> None:
        if self.receiver is not None:
            try:
                await self.receiver.shutdown()
            except Exception as exc:
                log.error("component stop raised an error", component="receiver", error=str(exc))
        elif self._client is not None:
            try:
                await self._client.close()
            except Exception as exc:
                log.debug("k8s client close raised (non-fatal)", error=str(exc))


def _cmreceiver_version() -> str:
    from cmreceiver import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: AppConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = ReceiverApp(config)
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await app.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error_kind=error_kind(exc.cause),
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
