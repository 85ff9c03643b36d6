"""Pydantic response models for the status API."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str
    state: str


class ProbeStatus(BaseModel):
    endpoint: str
    reachable: bool | None = None
    checked_at: str | None = None
    error: str | None = None
    consecutive_failures: int = 0


class TickStatus(BaseModel):
    tick: int
    started_at: str
    succeeded: int
    failed: int
    duration_ms: int


class StatusResponse(BaseModel):
    version: str
    state: str
    targets: dict[str, str]
    probe: ProbeStatus
    last_tick: TickStatus | None = None
