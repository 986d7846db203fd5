"""Tests for logging module."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from alert_dispatch.config import Config, LoggingConfig, set_config
from alert_dispatch.logging import (
    _format_exception,
    _redact_secrets,
    bind_context,
    clear_context,
    get_log_file_path,
    get_logger,
    setup_logging,
    with_context,
)


@pytest.fixture(autouse=True)
def restore_logging():
    """Close handlers and reset structlog after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers = []
    clear_context()
    structlog.reset_defaults()


class TestSetupLogging:
    """Test logging setup."""

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR"])
    def test_root_level(self, level):
        """Test that the root logger takes the requested level."""
        setup_logging(level=level)
        assert logging.getLogger().level == getattr(logging, level)

    def test_unknown_level_defaults_to_info(self):
        """Test fallback for an unknown level name."""
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_console_json(self, capsys):
        """Test JSON console output."""
        setup_logging(level="INFO", format="json")
        get_logger("test_console_json").info("notification_sent", channel_type="line")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "notification_sent"
        assert entry["channel_type"] == "line"
        assert entry["service"] == "alert-dispatch"

    def test_console_plain(self, capsys):
        """Test plain console output."""
        setup_logging(level="INFO", format="plain")
        get_logger("test_console_plain").info("notification_sent")

        assert "notification_sent" in capsys.readouterr().out

    def test_jsonl_file(self, tmp_path: Path):
        """Test that file logging writes one JSON object per line."""
        setup_logging(
            level="INFO",
            log_dir=str(tmp_path),
            log_file="dispatch.jsonl",
            enable_console=False,
            enable_file=True,
        )
        logger = get_logger("test_jsonl_file")
        logger.info("notification_sent", channel_uid="line-1")
        logger.warning("notification_failed", channel_uid="line-2", token="abc")

        lines = get_log_file_path(str(tmp_path), "dispatch.jsonl").read_text().splitlines()
        entries = [json.loads(line) for line in lines]

        assert [e["event"] for e in entries] == ["notification_sent", "notification_failed"]
        assert entries[0]["level"] == "info"
        assert entries[1]["token"] == "[REDACTED]"
        assert "abc" not in lines[1]

    def test_level_filters_file(self, tmp_path: Path):
        """Test that records below the level are dropped."""
        setup_logging(
            level="WARNING",
            log_dir=str(tmp_path),
            log_file="dispatch.jsonl",
            enable_console=False,
            enable_file=True,
        )
        logger = get_logger("test_level_filters_file")
        logger.info("ignored")
        logger.error("kept")

        lines = (tmp_path / "dispatch.jsonl").read_text().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["kept"]


class TestProcessors:
    """Test the custom structlog processors."""

    def test_redact_secrets(self):
        """Test that credential keys are masked case-insensitively."""
        event = {"event": "x", "Token": "t", "api_secret": "s", "channel_uid": "u"}
        result = _redact_secrets(None, "info", event)
        assert result["Token"] == "[REDACTED]"
        assert result["api_secret"] == "[REDACTED]"
        assert result["channel_uid"] == "u"

    def test_format_exception(self):
        """Test that exceptions become structured data."""
        result = _format_exception(None, "error", {"exception": ValueError("boom")})
        assert result["exception"] == {"type": "ValueError", "message": "boom"}

    def test_format_exception_absent(self):
        """Test that events without exceptions are untouched."""
        assert _format_exception(None, "info", {"event": "x"}) == {"event": "x"}


class TestContextBinding:
    """Test context variable helpers."""

    def test_bind_and_clear(self):
        """Test binding and clearing context."""
        bind_context(receiver="ops")
        assert structlog.contextvars.get_contextvars() == {"receiver": "ops"}

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_with_context_is_temporary(self):
        """Test that with_context unbinds on exit."""
        with with_context(group_key="alertname"):
            assert structlog.contextvars.get_contextvars()["group_key"] == "alertname"

        assert "group_key" not in structlog.contextvars.get_contextvars()

    def test_context_reaches_output(self, capsys):
        """Test that bound context is merged into log entries."""
        setup_logging(level="INFO", format="json")

        with with_context(receiver="ops"):
            get_logger("test_context_reaches_output").info("dispatched")

        entry = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert entry["receiver"] == "ops"


class TestConfiguredFile:
    """Test file output driven by the logging config."""

    def test_configured_file_enables_jsonl(self, tmp_path: Path):
        """Test that logging.file turns on file output by itself."""
        target = tmp_path / "audit" / "dispatch.jsonl"
        set_config(Config(logging=LoggingConfig(file=str(target))))

        setup_logging(enable_console=False)
        get_logger("test_configured_file").info("notification_sent")

        entry = json.loads(target.read_text().splitlines()[0])
        assert entry["event"] == "notification_sent"
        assert entry["service"] == "alert-dispatch"
        assert "host" in entry

    def test_no_file_by_default(self):
        """Test that only the console handler is installed without a file."""
        setup_logging()
        assert [type(h) for h in logging.getLogger().handlers] == [logging.StreamHandler]


class TestLogFilePath:
    """Test log file path helper."""

    def test_defaults(self):
        """Test the default log location."""
        assert get_log_file_path() == Path("logs") / "alert-dispatch.jsonl"

    def test_absolute_file_ignores_dir(self, tmp_path: Path):
        """Test that an absolute file name is used as is."""
        target = tmp_path / "x.jsonl"
        assert get_log_file_path("logs", str(target)) == target
