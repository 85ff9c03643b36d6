"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re
from datetime import timedelta

from cmreceiver.errors import ConfigurationError
from cmreceiver.models.config import (
    DEFAULT_TARGET_LIST_SOURCE,
    APIConfig,
    AppConfig,
    LogConfig,
    ProbeConfig,
    ReceiverConfig,
)

MIN_INTERVAL = timedelta(minutes=1)

_DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"CMRECEIVER_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"CMRECEIVER_{key} must be an integer, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    raw = _env(key, str(default))
    try:
        val = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"CMRECEIVER_{key} must be a number, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration string such as ``90s``, ``1m`` or ``1h30m``.

    Raises ConfigurationError on anything else.  A bare ``0`` is accepted,
    as Go does.
    """
    text = value.strip()
    if text == "0":
        return timedelta(0)
    if not text:
        raise ConfigurationError("Duration must not be empty")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    seconds = 0.0
    pos = 0
    for match in _DURATION_RE.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    return timedelta(seconds=sign * seconds)


def parse_interval(value: str, field_name: str = "interval") -> timedelta:
    """Parse *value* and require it to be at least one minute."""
    interval = parse_duration(value)
    if interval < MIN_INTERVAL:
        raise ConfigurationError(f"{field_name} has to be set to at least 1 minute (1m), got {value!r}")
    return interval


def validate_receiver_config(config: ReceiverConfig) -> None:
    """Reject a ReceiverConfig the polling engine cannot run with."""
    if config.poll_interval < MIN_INTERVAL:
        raise ConfigurationError("poll_interval has to be set to at least 1 minute (1m)")
    if config.probe_interval < MIN_INTERVAL:
        raise ConfigurationError("probe_interval has to be set to at least 1 minute (1m)")
    if not config.target_list_source:
        raise ConfigurationError("target_list_source must name an environment variable")
    if not config.probe.host or not 0 < config.probe.port < 65536:
        raise ConfigurationError(f"Invalid probe endpoint: {config.probe.endpoint}")
    if config.probe.timeout_seconds <= 0:
        raise ConfigurationError("probe timeout must be positive")
    if config.fetch_timeout_seconds <= 0:
        raise ConfigurationError("fetch timeout must be positive")
    if config.max_concurrent_fetches < 1:
        raise ConfigurationError("max_concurrent_fetches must be at least 1")


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigurationError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in ("json", "console"):
        raise ConfigurationError(f"Invalid log format: {value}. Must be 'json' or 'console'")
    return value.lower()


def load_config() -> AppConfig:
    """Load configuration from CMRECEIVER_* environment variables.

    The target list itself is read from the variable named by
    CMRECEIVER_TARGET_LIST_SOURCE.  This is the only place process state is
    read; nothing downstream touches the environment.
    """
    source = _env("TARGET_LIST_SOURCE", DEFAULT_TARGET_LIST_SOURCE)
    receiver = ReceiverConfig(
        poll_interval=parse_interval(_env("POLL_INTERVAL", "1m"), "CMRECEIVER_POLL_INTERVAL"),
        probe_interval=parse_interval(_env("PROBE_INTERVAL", "5m"), "CMRECEIVER_PROBE_INTERVAL"),
        target_list_source=source,
        target_list=os.environ.get(source, "") if source else "",
        probe=ProbeConfig(
            host=_env("PROBE_HOST", "www.google.com"),
            port=_env_int("PROBE_PORT", 80),
            timeout_seconds=_env_float("PROBE_TIMEOUT", 3.0, min_val=0.1, max_val=30.0),
        ),
        fetch_timeout_seconds=_env_float("FETCH_TIMEOUT", 10.0, min_val=1.0, max_val=60.0),
        max_concurrent_fetches=_env_int("MAX_CONCURRENT_FETCHES", 16, min_val=1, max_val=64),
        shutdown_grace_seconds=_env_float("SHUTDOWN_GRACE", 15.0, min_val=0.0, max_val=120.0),
    )
    validate_receiver_config(receiver)
    return AppConfig(
        receiver=receiver,
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
