"""
Tests for logging setup and log sanitization.
"""
import json
import logging

import pytest
from rich.logging import RichHandler

from backend_transport.logging_utils import (
    LOGGER_NAME,
    REDACTED,
    JsonFormatter,
    configure_logging,
    mask_headers,
    mask_sensitive,
    sanitize_data,
)


@pytest.fixture
def package_logger():
    """Restore the package logger after each test."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestMaskSensitive:
    """Tests for mask_sensitive."""

    def test_long_value_shows_prefix(self):
        assert mask_sensitive("Token abcdef1234567890") == "Token abcd***"

    def test_short_value_fully_masked(self):
        assert mask_sensitive("abc") == "***"

    def test_none(self):
        assert mask_sensitive(None) == "<none>"


class TestMaskHeaders:
    """Tests for mask_headers."""

    def test_masks_authorization_case_insensitively(self):
        headers = {"authorization": "Token supersecretvalue", "Accept": "application/json"}
        masked = mask_headers(headers)
        assert masked["Accept"] == "application/json"
        assert "supersecretvalue" not in masked["authorization"]

    def test_does_not_mutate_input(self):
        headers = {"Authorization": "Bearer abcdefghijklmnop"}
        mask_headers(headers)
        assert headers["Authorization"] == "Bearer abcdefghijklmnop"


class TestSanitizeData:
    """Tests for sanitize_data."""

    def test_redacts_sensitive_keys(self):
        data = {"username": "u", "password": "p", "apiKey": "k", "accessToken": "t"}
        assert sanitize_data(data) == {
            "username": "u",
            "password": REDACTED,
            "apiKey": REDACTED,
            "accessToken": REDACTED,
        }

    def test_recurses_into_nested_structures(self):
        data = {"items": [{"clientSecret": "s", "name": "n"}], "meta": {"Authorization": "x"}}
        assert sanitize_data(data) == {
            "items": [{"clientSecret": REDACTED, "name": "n"}],
            "meta": {"Authorization": REDACTED},
        }

    def test_scalars_pass_through(self):
        assert sanitize_data("text") == "text"
        assert sanitize_data(None) is None


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_simple_format_uses_rich(self, package_logger):
        logger = configure_logging("debug", "simple")
        assert logger is package_logger
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.propagate is False

    def test_json_format(self, package_logger):
        logger = configure_logging("warn", "json")
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_reconfigure_replaces_handler(self, package_logger):
        configure_logging("info", "json")
        configure_logging("info", "simple")
        assert len(package_logger.handlers) == 1

    def test_json_formatter_output(self):
        record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, "hello %s", ("world",), None)
        line = json.loads(JsonFormatter().format(record))
        assert line["message"] == "hello world"
        assert line["level"] == "info"
        assert line["logger"] == LOGGER_NAME
