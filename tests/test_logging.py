"""Tests for logging configuration and console helpers."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from hostpulse import logging as console
from hostpulse.config import Config


@pytest.fixture
def restore_logging():
    """Undo global structlog/stdlib logging changes after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_usage_color():
    assert console.usage_color(90.0, 80.0) == "bright_red"
    assert console.usage_color(65.0, 80.0) == "bright_yellow"
    assert console.usage_color(10.0, 80.0) == "green"


def test_console_helpers_print(capsys):
    console.alert_triggered(91.5, 80.0)
    console.tick_failed("boom")
    console.notification_failed("timed out")
    out = capsys.readouterr().out
    assert "Notification failed: timed out" in out
    assert "91.5%" in out
    assert "Sample failed: boom" in out


def test_configure_writes_json_lines(tmp_path: Path, restore_logging):
    with patch.object(
        Config, "state_dir", new_callable=lambda: property(lambda self: tmp_path)
    ):
        config = Config()
        console.configure(config)

        structlog.get_logger("test").info("alert_triggered", metric="cpu.user", value=91.5)
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = config.log_path.read_text().splitlines()

    record = json.loads(lines[-1])
    assert record["event"] == "alert_triggered"
    assert record["metric"] == "cpu.user"
    assert record["value"] == 91.5
    assert record["level"] == "info"
    assert record["source"] == "daemon"
    assert "ts" in record
