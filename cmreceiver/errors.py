"""Exception hierarchy for cmreceiver.

Only startup errors (ConfigurationError, ConnectivityError) ever leave
``ConfigMapReceiver.start``.  FetchError subclasses are raised by the
control-plane client and always contained by the poller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cmreceiver.models.targets import ProbeOutcome


class ReceiverError(Exception):
    """Base class for every error raised by cmreceiver."""


class ConfigurationError(ReceiverError):
    """Invalid or missing configuration; fatal at startup, never retried."""


class TargetListError(ConfigurationError):
    """The declarative target list is absent, empty or malformed."""


class ConnectivityError(ReceiverError):
    """The startup reachability probe failed."""

    def __init__(self, outcome: ProbeOutcome) -> None:
        super().__init__(f"Endpoint {outcome.endpoint} unreachable: {outcome.error}")
        self.outcome = outcome


class FetchError(ReceiverError):
    """A single target could not be fetched from the control plane."""

    def __init__(self, name: str, namespace: str, cause: str) -> None:
        super().__init__(f"{namespace}/{name}: {cause}")
        self.name = name
        self.namespace = namespace
        self.cause = cause


class TargetNotFound(FetchError):
    """The object does not exist in the given namespace."""


class TransientFetchError(FetchError):
    """Network, API or timeout failure while fetching a target."""


class FetchCancelled(TransientFetchError):
    """The fetch was interrupted because the receiver is shutting down."""


class ShutdownError(ReceiverError):
    """Releasing a resource failed during shutdown."""
