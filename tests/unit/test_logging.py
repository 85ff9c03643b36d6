"""Tests for structlog setup."""

from __future__ import annotations

import json
import logging

import pytest

from cmreceiver.observability.logging import get_logger, setup_logging


class TestSetupLogging:
    def test_json_lines_with_component(self, restore_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("info")
        get_logger("test").info("configmap_observed", name="a", namespace="ns1")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "configmap_observed"
        assert entry["component"] == "test"
        assert entry["level"] == "info"
        assert "ts" in entry

    def test_level_filters_debug(self, restore_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("warning")
        get_logger("test").info("dropped")
        assert "dropped" not in capsys.readouterr().err

    def test_stdlib_loggers_share_the_renderer(
        self,
        restore_logging: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        setup_logging("info")
        logging.getLogger("uvicorn.error").warning("server busy")

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["event"] == "server busy"
        assert entry["logger"] == "uvicorn.error"
