"""FastAPI application factory for the cmreceiver status API.

Usage::

    from cmreceiver.api.app import create_app

    app = create_app(receiver=receiver)

Routes:
    GET /api/v1/health  -- 200 while polling, 503 otherwise.
    GET /api/v1/status  -- lifecycle state, targets, probe and last tick.
    GET /metrics        -- Prometheus exposition.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from cmreceiver.api.schemas import ErrorResponse, HealthResponse, StatusResponse
from cmreceiver.models.targets import ReceiverState

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(receiver: Any) -> FastAPI:
    """Create and configure the status API around a ConfigMapReceiver."""
    from cmreceiver import __version__

    app = FastAPI(
        title="cmreceiver",
        summary="ConfigMap poller status API",
        version=__version__,
        docs_url=f"{_API_PREFIX}/docs",
        redoc_url=None,
        openapi_url=f"{_API_PREFIX}/openapi.json",
    )
    app.state.receiver = receiver

    @app.get(f"{_API_PREFIX}/health", response_model=HealthResponse)
    async def health(request: Request) -> JSONResponse:
        state = request.app.state.receiver.state
        polling = state is ReceiverState.POLLING
        body = HealthResponse(status="ok" if polling else "unavailable", state=state.value)
        return JSONResponse(status_code=200 if polling else 503, content=body.model_dump())

    @app.get(f"{_API_PREFIX}/status", response_model=StatusResponse)
    async def status(request: Request) -> StatusResponse:
        current = request.app.state.receiver
        snapshot = current.health()
        return StatusResponse(
            version=__version__,
            state=snapshot["state"],
            targets=dict(current.targets),
            probe=snapshot["probe"],
            last_tick=snapshot["last_tick"],
        )

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="INTERNAL_ERROR", detail="An unexpected error occurred.").model_dump(),
        )

    return app
