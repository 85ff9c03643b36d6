"""Tests for the click command-line interface."""

from __future__ import annotations

import json
import os

import pytest
from click.testing import CliRunner

from cmreceiver.cli import cli

pytestmark = pytest.mark.usefixtures("restore_logging")


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in list(os.environ):
        if key.startswith("CMRECEIVER_") or key == "CONFIGMAP_LIST":
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestCheckConfig:
    def test_prints_resolved_targets(self, env: pytest.MonkeyPatch) -> None:
        env.setenv("CONFIGMAP_LIST", "- name: a\n  namespace: ns1\n- name: a\n  namespace: ns2\n")
        result = CliRunner().invoke(cli, ["check-config"])
        assert result.exit_code == 0, result.output
        body = json.loads(result.stdout)
        assert body["targets"] == {"a": "ns2"}
        assert body["poll_interval_s"] == 60.0

    def test_override_warning_goes_to_stderr(self, env: pytest.MonkeyPatch) -> None:
        env.setenv("CONFIGMAP_LIST", "- name: a\n  namespace: ns1\n- name: a\n  namespace: ns2\n")
        result = CliRunner().invoke(cli, ["check-config"])
        assert result.exit_code == 0, result.output
        assert "target_overridden" not in result.stdout
        warning = json.loads(result.stderr.strip().splitlines()[-1])
        assert warning["event"] == "target_overridden"
        assert warning["previous_namespace"] == "ns1"

    def test_missing_target_list_fails(self, env: pytest.MonkeyPatch) -> None:
        result = CliRunner().invoke(cli, ["check-config"])
        assert result.exit_code == 1
        assert "CONFIGMAP_LIST is not set or empty" in result.output

    def test_bad_interval_fails(self, env: pytest.MonkeyPatch) -> None:
        env.setenv("CONFIGMAP_LIST", "- name: a\n  namespace: ns1\n")
        env.setenv("CMRECEIVER_POLL_INTERVAL", "10s")
        result = CliRunner().invoke(cli, ["check-config"])
        assert result.exit_code == 1
        assert "at least 1 minute" in result.output


class TestProbe:
    def test_closed_port_exits_non_zero(self, env: pytest.MonkeyPatch, closed_port: int) -> None:
        result = CliRunner().invoke(cli, ["probe", "--host", "127.0.0.1", "--port", str(closed_port)])
        assert result.exit_code == 1
