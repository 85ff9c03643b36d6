"""Target, poll and probe data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

TargetMapping = dict[str, str]


class ReceiverState(StrEnum):
    """Lifecycle state of a ConfigMapReceiver."""

    CREATED = "created"
    PROBING = "probing"
    RESOLVING = "resolving"
    POLLING = "polling"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TargetSpec:
    """One entry of the declarative target list."""

    name: str
    namespace: str


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of a single connectivity probe."""

    reachable: bool
    endpoint: str
    checked_at: datetime
    error: str | None = None


@dataclass(frozen=True)
class PollResult:
    """Outcome of fetching one target during one tick.

    Exactly one of ``data`` and ``error`` is meaningful: ``error`` is None on
    success.  ``observed_at`` is the tick timestamp, shared by every result of
    the same tick.
    """

    name: str
    namespace: str
    observed_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class EmittedRecord:
    """What a downstream consumer receives for each successful fetch."""

    name: str
    namespace: str
    payload: dict[str, Any]
    observed_at: datetime


@dataclass
class TickReport:
    """All results of one poll tick."""

    tick: int
    started_at: datetime
    results: list[PollResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> list[PollResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[PollResult]:
        return [r for r in self.results if not r.ok]
