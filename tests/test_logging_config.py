# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for hideseen.logging_config: structlog + stdlib bridge."""

from __future__ import annotations

import json
import logging
import sys

import pytest
import structlog

from hideseen.logging_config import configure, level_for_verbosity, resolve_level


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


class TestConsoleRenderer:
    def test_single_stderr_handler(self):
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("hideseen.test").warning("row hidden")
        captured = capsys.readouterr()
        assert "row hidden" in captured.err
        assert not captured.err.strip().startswith("{")
        assert "warn" in captured.err.lower()

    def test_reconfigure_does_not_stack_handlers(self):
        configure()
        configure()
        assert len(logging.getLogger().handlers) == 1


class TestJSONRenderer:
    def test_output_is_valid_json(self, capsys):
        configure(json_output=True, level="INFO")
        logging.getLogger("hideseen.test").info("purged evidence")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        data = json.loads(line)
        assert data["event"] == "purged evidence"
        assert data["level"] == "info"
        assert data["logger"] == "hideseen.test"
        assert "timestamp" in data

    def test_contextvars_merged(self, capsys):
        configure(json_output=True, level="INFO")
        with structlog.contextvars.bound_contextvars(policy="count"):
            logging.getLogger("hideseen.test").info("pass done")
        data = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert data["policy"] == "count"


class TestLevels:
    def test_default_level_warning(self, capsys):
        configure()
        assert logging.getLogger().level == logging.WARNING
        logging.getLogger("hideseen.test").info("quiet")
        assert "quiet" not in capsys.readouterr().err

    def test_explicit_level(self):
        configure(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back(self):
        configure(level="chatty")
        assert logging.getLogger().level == logging.WARNING

    def test_noisy_loggers_quieted(self):
        configure(level="DEBUG")
        assert logging.getLogger("aiosqlite").level == logging.WARNING

    @pytest.mark.parametrize(
        ("verbose", "expected"),
        [(-1, "WARNING"), (0, "WARNING"), (1, "INFO"), (2, "DEBUG"), (5, "DEBUG")],
    )
    def test_level_for_verbosity(self, verbose, expected):
        assert level_for_verbosity(verbose) == expected

    def test_env_level_wins_over_verbosity(self):
        assert resolve_level(0, {"HIDESEEN_LOG_LEVEL": " debug "}) == "DEBUG"
        assert resolve_level(1, {"HIDESEEN_LOG_LEVEL": ""}) == "INFO"
        assert resolve_level(2, {}) == "DEBUG"


class TestUrlClipping:
    def test_long_bound_url_clipped(self, capsys):
        configure(json_output=True, level="INFO")
        long_url = "https://example.com/item?" + "x" * 500
        with structlog.contextvars.bound_contextvars(url=long_url):
            logging.getLogger("hideseen.test").info("evaluated")
        data = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert len(data["url"]) == 200
        assert data["url"].endswith("...")

    def test_short_url_untouched(self, capsys):
        configure(json_output=True, level="INFO")
        with structlog.contextvars.bound_contextvars(url="https://example.com/list"):
            logging.getLogger("hideseen.test").info("evaluated")
        data = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert data["url"] == "https://example.com/list"
