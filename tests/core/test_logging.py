"""Tests for lifeline.core.logging — the logger capability."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from lifeline.core.logging import (
    Logger,
    NullLogger,
    StructLogger,
    configure_logging,
    get_logger,
)


class TestLoggerProtocol:
    def test_struct_logger_satisfies_protocol(self):
        assert isinstance(get_logger("test"), Logger)

    def test_null_logger_satisfies_protocol(self):
        assert isinstance(NullLogger(), Logger)

    def test_null_logger_discards(self):
        assert NullLogger().log("error", "db.query.failed", {"error": "x"}) is None


class TestStructLogger:
    @patch("lifeline.core.logging.structlog.get_logger")
    def test_dispatches_level_and_fields(self, mock_get_logger):
        bound = MagicMock()
        mock_get_logger.return_value = bound

        StructLogger("lifeline.db").log("warning", "db.query.slow", {"duration_ms": 1450.0})

        mock_get_logger.assert_called_once_with("lifeline.db")
        bound.warning.assert_called_once_with("db.query.slow", duration_ms=1450.0)

    @patch("lifeline.core.logging.structlog.get_logger")
    def test_unknown_level_falls_back_to_info(self, mock_get_logger):
        bound = MagicMock()
        mock_get_logger.return_value = bound

        StructLogger().log("TRACE", "db.connected")

        bound.info.assert_called_once_with("db.connected")

    @patch("lifeline.core.logging.structlog.get_logger")
    def test_level_case_insensitive(self, mock_get_logger):
        bound = MagicMock()
        mock_get_logger.return_value = bound

        StructLogger().log("ERROR", "db.disconnect.failed", {"error": "boom"})

        bound.error.assert_called_once_with("db.disconnect.failed", error="boom")


class TestConfigureLogging:
    @patch("lifeline.core.logging.structlog.configure")
    def test_json_renderer(self, mock_configure):
        configure_logging(level="DEBUG", json_format=True, service="lifeline-test")
        processors = mock_configure.call_args.kwargs["processors"]
        assert type(processors[-1]).__name__ == "JSONRenderer"

    @patch("lifeline.core.logging.structlog.configure")
    def test_console_renderer(self, mock_configure):
        configure_logging(level="INFO", json_format=False)
        processors = mock_configure.call_args.kwargs["processors"]
        assert type(processors[-1]).__name__ == "ConsoleRenderer"
