"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

DEFAULT_TARGET_LIST_SOURCE = "CONFIGMAP_LIST"


@dataclass
class ProbeConfig:
    """Connectivity probe configuration."""

    host: str = "www.google.com"
    port: int = 80
    timeout_seconds: float = 3.0

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class ReceiverConfig:
    """Polling engine configuration.

    ``target_list_source`` names the environment variable the raw YAML in
    ``target_list`` was read from; it is kept for error messages only.
    """

    poll_interval: timedelta = timedelta(minutes=1)
    probe_interval: timedelta = timedelta(minutes=5)
    target_list_source: str = DEFAULT_TARGET_LIST_SOURCE
    target_list: str = ""
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    fetch_timeout_seconds: float = 10.0
    max_concurrent_fetches: int = 16
    shutdown_grace_seconds: float = 15.0


@dataclass
class APIConfig:
    """Status API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class AppConfig:
    """Top-level process configuration."""

    receiver: ReceiverConfig = field(default_factory=ReceiverConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
