"""Command-line interface.

    cmreceiver run           -- run the receiver until SIGTERM/SIGINT
    cmreceiver check-config  -- validate configuration and print resolved targets
    cmreceiver probe         -- run one connectivity probe
"""

from __future__ import annotations

import asyncio
import json
import os

import click

from cmreceiver.config import load_config
from cmreceiver.errors import ConfigurationError
from cmreceiver.observability.logging import setup_logging
from cmreceiver.receiver.probe import probe_once
from cmreceiver.receiver.targets import parse_target_list, resolve_targets


@click.group()
@click.version_option(package_name="cmreceiver")
def cli() -> None:
    """Poll named Kubernetes ConfigMaps and emit them as structured logs."""
    # Diagnostics go to stderr; stdout carries only command output.
    setup_logging(
        os.environ.get("CMRECEIVER_LOG_LEVEL", "info"),
        os.environ.get("CMRECEIVER_LOG_FORMAT", "json"),
        cache_loggers=False,
    )


@cli.command()
def run() -> None:
    """Run the receiver."""
    from cmreceiver.app import main

    asyncio.run(main())


@cli.command("check-config")
def check_config() -> None:
    """Validate CMRECEIVER_* settings and the target list without contacting the cluster."""
    try:
        config = load_config()
        receiver = config.receiver
        mapping = resolve_targets(parse_target_list(receiver.target_list, receiver.target_list_source))
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        json.dumps(
            {
                "poll_interval_s": receiver.poll_interval.total_seconds(),
                "probe_interval_s": receiver.probe_interval.total_seconds(),
                "probe_endpoint": receiver.probe.endpoint,
                "targets": mapping,
            },
            indent=2,
            sort_keys=True,
        )
    )


@cli.command()
@click.option("--host", default=None, help="Override CMRECEIVER_PROBE_HOST.")
@click.option("--port", type=int, default=None, help="Override CMRECEIVER_PROBE_PORT.")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds.")
def probe(host: str | None, port: int | None, timeout: float | None) -> None:
    """Check outbound reachability once; exits 1 if unreachable."""
    try:
        probe_config = load_config().receiver.probe
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    outcome = asyncio.run(
        probe_once(
            host or probe_config.host,
            port or probe_config.port,
            timeout or probe_config.timeout_seconds,
        )
    )
    if outcome.reachable:
        click.echo(f"port open: {outcome.endpoint}")
        return
    click.echo(f"port closed: {outcome.endpoint} ({outcome.error})", err=True)
    raise SystemExit(1)
