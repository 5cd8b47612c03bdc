"""Tests for structured logging configuration."""

import json
import logging
import sys
from unittest.mock import patch

from shopgate.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
)


def _record(msg: str = "Test message", level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Test JSON formatter for structured logging."""

    def test_basic_json_format(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["source"]["file"] == "test.py"
        assert data["source"]["line"] == 1

    def test_json_format_with_context(self):
        record = _record("Rate limit exceeded")
        record.client_id = "10.0.0.1:curl/8.0"
        record.policy = "auth"
        record.request_id = "req-1"

        data = json.loads(JSONFormatter().format(record))

        assert data["client_id"] == "10.0.0.1:curl/8.0"
        assert data["policy"] == "auth"
        assert data["request_id"] == "req-1"
        assert "extra" not in data

    def test_json_format_with_extra_fields(self):
        record = _record("Custom event")
        record.evicted = 3

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["evicted"] == 3

    def test_json_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            record = _record("Error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "exception" in data
        assert any("ValueError: Test error" in line for line in data["exception"])


class TestContextFilter:
    """Test context defaults."""

    def test_adds_missing_context_fields(self):
        record = _record()
        assert ContextFilter().filter(record) is True

        assert record.client_id is None
        assert record.policy is None
        assert record.attempt is None

    def test_keeps_existing_values(self):
        record = _record()
        record.policy = "sensitive"
        ContextFilter().filter(record)

        assert record.policy == "sensitive"


class TestLoggingConfig:
    """Test dictConfig generation."""

    def test_text_format_by_default(self):
        with patch("shopgate.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "text"
            mock_settings.log_level = "info"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "standard"
        assert config["loggers"]["shopgate"]["level"] == "INFO"

    def test_json_format(self):
        with patch("shopgate.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "json"
            mock_settings.log_level = "DEBUG"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["formatters"]["json"]["()"] == "shopgate.app.core.logging.JSONFormatter"


def test_get_log_context_drops_none_values():
    assert get_log_context(client_id="c", policy=None, attempt=2) == {"client_id": "c", "attempt": 2}


def test_get_logger_default_name():
    assert get_logger().name == "shopgate"
