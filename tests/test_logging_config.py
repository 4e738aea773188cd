# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for pagesnap.logging_config: structlog + stdlib bridge."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest
import structlog

from pagesnap.logging_config import build_formatter, configure


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    noisy = {name: logging.getLogger(name).level for name in ("asyncio", "playwright")}
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    for name, level in noisy.items():
        logging.getLogger(name).setLevel(level)
    structlog.reset_defaults()


class TestConsoleRenderer:
    def test_configure_console_mode(self):
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_console_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("pagesnap.extractor").info("Extracted page")
        captured = capsys.readouterr()
        assert "Extracted page" in captured.err
        assert not captured.err.strip().startswith("{")
        assert captured.out == ""


class TestJSONRenderer:
    def test_json_output_is_valid_json(self, capsys):
        configure(json_output=True)
        logging.getLogger("pagesnap.frames").warning("Frame %s still sparse after %d attempts", "F1", 4)
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed["event"] == "Frame F1 still sparse after 4 attempts"
        assert parsed["logger"] == "pagesnap.frames"
        assert parsed["level"] == "warning"
        assert "timestamp" in parsed

    def test_contextvars_in_json_output(self, capsys):
        configure(json_output=True)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(url="https://example.com")
        try:
            structlog.get_logger("test.ctx").info("ctx test")
            parsed = json.loads(capsys.readouterr().err.strip())
            assert parsed["url"] == "https://example.com"
        finally:
            structlog.contextvars.clear_contextvars()


class TestLogLevel:
    def test_default_level_is_info(self):
        configure()
        assert logging.getLogger().level == logging.INFO

    def test_custom_level(self):
        configure(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_level_falls_back_to_info(self):
        configure(level="NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

    def test_noisy_loggers_stay_at_warning_in_debug(self):
        configure(level="DEBUG")
        assert logging.getLogger("playwright").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_noisy_loggers_follow_stricter_root(self):
        configure(level="ERROR")
        assert logging.getLogger("playwright").level == logging.ERROR


class TestMultipleConfigure:
    def test_no_handler_stacking(self):
        configure(json_output=False)
        configure(json_output=True)
        configure(json_output=False)
        assert len(logging.getLogger().handlers) == 1


class TestFormatter:
    def test_stdlib_record_rendered_as_json(self):
        record = logging.LogRecord("pagesnap.geometry", logging.DEBUG, __file__, 1, "Lookup failed for %r", (42,), None)
        parsed = json.loads(build_formatter(json_output=True).format(record))
        assert parsed["event"] == "Lookup failed for 42"
        assert parsed["level"] == "debug"

    def test_console_without_tty_has_no_color_codes(self, monkeypatch):
        monkeypatch.setattr(sys, "stderr", io.StringIO())
        record = logging.LogRecord("pagesnap.cli", logging.INFO, __file__, 1, "plain", (), None)
        assert "\x1b[" not in build_formatter(json_output=False).format(record)
