"""Tests for structured logging configuration."""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from ratekeeper.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
    setup_logging,
)


def _record(msg="Test message", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture
def restore_logging():
    """Undo dictConfig changes made by setup_logging()."""
    root = logging.getLogger()
    library = logging.getLogger("ratekeeper")
    saved = (list(root.handlers), root.level, list(library.handlers), library.level, library.propagate)
    yield
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])
    library.handlers[:] = saved[2]
    library.setLevel(saved[3])
    library.propagate = saved[4]


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
        record = _record("Rate limit reached")
        record.rate_limit_key = "ratelimit:slack:test"
        record.limit = 2
        record.window_seconds = 60
        record.wait_seconds = 42.5
        record.store = "redis"

        data = json.loads(JSONFormatter().format(record))

        assert data["rate_limit_key"] == "ratelimit:slack:test"
        assert data["limit"] == 2
        assert data["window_seconds"] == 60
        assert data["wait_seconds"] == 42.5
        assert data["store"] == "redis"
        assert "extra" not in data

    def test_none_context_fields_omitted(self):
        record = _record()
        ContextFilter().filter(record)

        data = json.loads(JSONFormatter().format(record))

        assert "rate_limit_key" not in data
        assert "wait_seconds" not in data

    def test_json_format_with_extra_fields(self):
        record = _record("Custom event")
        record.attempt = 3

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["attempt"] == 3

    def test_json_format_with_exception(self):
        try:
            raise ConnectionError("Redis down")
        except ConnectionError:
            record = _record("Error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        exception_text = "".join(data["exception"])
        assert "ConnectionError" in exception_text
        assert "Redis down" in exception_text


class TestContextFilter:
    """Test context filter for adding default fields."""

    def test_adds_default_fields(self):
        record = _record()

        assert ContextFilter().filter(record) is True
        for field in ("rate_limit_key", "limit", "window_seconds", "wait_seconds", "store"):
            assert getattr(record, field) is None

    def test_preserves_existing_values(self):
        record = _record()
        record.rate_limit_key = "ratelimit:airtable:connections"

        ContextFilter().filter(record)

        assert record.rate_limit_key == "ratelimit:airtable:connections"


class TestGetLoggingConfig:
    """Test logging configuration generation."""

    def test_default_text_format(self):
        with patch("ratekeeper.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "text"
            mock_settings.log_level = "INFO"

            config = get_logging_config()

        assert "json" not in config["formatters"]
        assert config["handlers"]["console"]["formatter"] == "standard"

    def test_structured_format(self):
        with patch("ratekeeper.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "structured"
            mock_settings.log_level = "debug"

            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "structured"
        assert config["handlers"]["console"]["level"] == "DEBUG"

    def test_json_format(self):
        with patch("ratekeeper.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "JSON"
            mock_settings.log_level = "WARNING"

            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["loggers"]["ratekeeper"]["level"] == "WARNING"

    def test_context_filter_added(self):
        config = get_logging_config()

        assert "context" in config["filters"]
        assert "context" in config["handlers"]["console"]["filters"]
        assert "context" in config["handlers"]["error_console"]["filters"]


class TestHelpers:

    def test_get_logger_default_name(self):
        assert get_logger().name == "ratekeeper"

    def test_get_logger_custom_name(self):
        assert get_logger("custom.module").name == "custom.module"

    def test_log_context_filters_none(self):
        context = get_log_context(rate_limit_key="k", limit=None, wait_seconds=1.5)
        assert context == {"rate_limit_key": "k", "wait_seconds": 1.5}

    def test_log_context_with_extra(self):
        context = get_log_context(store="memory", attempt=2)
        assert context == {"store": "memory", "attempt": 2}


class TestIntegration:

    def test_json_logging_output(self, capsys, restore_logging):
        with patch("ratekeeper.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "json"
            mock_settings.log_level = "DEBUG"

            setup_logging()
            get_logger("ratekeeper.test").debug(
                "Rate limit reached",
                extra=get_log_context(rate_limit_key="ratelimit:k", wait_seconds=3.0),
            )

        data = json.loads(capsys.readouterr().out.strip())

        assert data["level"] == "DEBUG"
        assert data["logger"] == "ratekeeper.test"
        assert data["rate_limit_key"] == "ratelimit:k"
        assert data["wait_seconds"] == 3.0
