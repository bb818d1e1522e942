"""Tests for logging setup: level precedence, handlers and JSON output."""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from kanban_sync_engine.logger import (
    JsonFormatter,
    apply_config_logging,
    resolve_log_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _no_log_level(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)


class TestResolveLogLevel:
    def test_default_info(self):
        assert resolve_log_level() == logging.INFO

    def test_config_level(self):
        assert resolve_log_level(config_level="warning") == logging.WARNING

    def test_env_beats_config(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert resolve_log_level(config_level="WARNING") == logging.ERROR

    def test_debug_beats_everything(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert resolve_log_level(debug=True, config_level="WARNING") == logging.DEBUG

    def test_unknown_name_falls_back(self):
        assert resolve_log_level(config_level="LOUD") == logging.INFO


class TestSetupLogging:
    @patch("kanban_sync_engine.logger.logging.basicConfig")
    def test_stderr_only(self, mock_basic):
        setup_logging()

        kwargs = mock_basic.call_args[1]
        assert kwargs["level"] == logging.INFO
        (handler,) = kwargs["handlers"]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr

    @patch("kanban_sync_engine.logger.logging.basicConfig")
    def test_log_file_adds_handler(self, mock_basic, tmp_path):
        log_file = tmp_path / "sync.log"

        setup_logging(debug=True, log_file=str(log_file), debug_format="json")

        kwargs = mock_basic.call_args[1]
        assert kwargs["level"] == logging.DEBUG
        stderr_handler, file_handler = kwargs["handlers"]
        try:
            assert isinstance(file_handler, logging.FileHandler)
            assert isinstance(file_handler.formatter, JsonFormatter)
            assert isinstance(stderr_handler.formatter, JsonFormatter)
        finally:
            file_handler.close()


class TestJsonFormatter:
    def _record(self, **kwargs):
        return logging.LogRecord(
            name="kanban_sync_engine.sync.engine",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="T-%03d blocked",
            args=(4,),
            exc_info=kwargs.get("exc_info"),
        )

    def test_fields(self):
        entry = json.loads(JsonFormatter().format(self._record()))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "kanban_sync_engine.sync.engine"
        assert entry["msg"] == "T-004 blocked"
        assert "ts" in entry
        assert "exc" not in entry

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            exc_info = sys.exc_info()

        entry = json.loads(JsonFormatter().format(self._record(exc_info=exc_info)))

        assert "RuntimeError: boom" in entry["exc"]


class TestApplyConfigLogging:
    def test_sets_level_and_file(self, tmp_path):
        root = logging.getLogger()
        old_level = root.level
        before = list(root.handlers)
        log_file = tmp_path / "config.log"
        try:
            apply_config_logging("WARNING", str(log_file))

            assert root.level == logging.WARNING
            added = [h for h in root.handlers if h not in before]
            assert len(added) == 1
            assert isinstance(added[0], logging.FileHandler)
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(old_level)
