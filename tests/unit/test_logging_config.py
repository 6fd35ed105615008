"""Tests for logging configuration."""

import json
import logging
import re

import pytest
import structlog

from render_rebuild.logging_config import (
    bind_run_id,
    clear_run_id,
    get_run_id,
    setup_logging,
)


def strip_ansi(text):
    """Strip ANSI escape sequences from text."""
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


def parse_json_lines(output):
    """Parse output containing multiple JSON lines."""
    lines = output.strip().split("\n")
    return [json.loads(line) for line in lines if line.strip()]


def _remove_root_handlers():
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration around each test."""
    _remove_root_handlers()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    _remove_root_handlers()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestLoggingSetup:
    def test_json_format(self, capsys):
        setup_logging(service_name="test_service", log_format="json", log_level="INFO")

        logger = structlog.get_logger()
        logger.info("test_event", key1="value1", key2=123)

        entries = parse_json_lines(capsys.readouterr().out)
        log_entry = next((e for e in entries if e.get("event") == "test_event"), None)

        assert log_entry is not None
        assert log_entry["service"] == "test_service"
        assert log_entry["key1"] == "value1"
        assert log_entry["key2"] == 123  # noqa: PLR2004
        assert log_entry["level"] == "info"
        assert "timestamp" in log_entry

    def test_console_format(self, capsys):
        setup_logging(service_name="test_service", log_format="console", log_level="INFO")

        structlog.get_logger().info("test_event", key1="value1")

        output = strip_ansi(capsys.readouterr().out)
        assert "test_event" in output
        assert "key1=value1" in output

    def test_from_env(self, monkeypatch, capsys):
        monkeypatch.setenv("SERVICE_NAME", "env_service")
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        setup_logging()

        structlog.get_logger().debug("debug_event", test=True)

        entries = parse_json_lines(capsys.readouterr().out)
        log_entry = next((e for e in entries if e.get("event") == "debug_event"), None)
        assert log_entry is not None
        assert log_entry["service"] == "env_service"
        assert log_entry["level"] == "debug"

    def test_level_filtering(self, capsys):
        setup_logging(service_name="test_service", log_format="console", log_level="WARNING")

        logger = structlog.get_logger()
        logger.info("info_event")
        logger.warning("warning_event")

        output = strip_ansi(capsys.readouterr().out)
        assert "info_event" not in output
        assert "warning_event" in output


    def test_secrets_are_masked(self, capsys):
        setup_logging(service_name="test_service", log_format="json", log_level="INFO")

        structlog.get_logger().info(
            "env_written", service_id="srv-1", value="postgres://user:pw@host/db"
        )

        output = capsys.readouterr().out
        assert "postgres://" not in output
        log_entry = next(e for e in parse_json_lines(output) if e.get("event") == "env_written")
        assert log_entry["value"] == "***"
        assert log_entry["service_id"] == "srv-1"


class TestRunId:
    def test_run_id_is_attached_to_events(self, capsys):
        setup_logging(service_name="test_service", log_format="json", log_level="INFO")

        run_id = bind_run_id()
        structlog.get_logger().info("step_event")

        entries = parse_json_lines(capsys.readouterr().out)
        log_entry = next(e for e in entries if e.get("event") == "step_event")
        assert log_entry["run_id"] == run_id
        assert get_run_id() == run_id

    def test_explicit_run_id(self):
        assert bind_run_id("run-42") == "run-42"
        assert get_run_id() == "run-42"

    def test_clear_run_id(self, capsys):
        setup_logging(service_name="test_service", log_format="json", log_level="INFO")

        bind_run_id("run-1")
        clear_run_id()
        structlog.get_logger().info("after_run")

        entries = parse_json_lines(capsys.readouterr().out)
        log_entry = next(e for e in entries if e.get("event") == "after_run")
        assert "run_id" not in log_entry
        assert log_entry["service"] == "test_service"
