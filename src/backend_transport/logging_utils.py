"""
Logging setup and log sanitization for backend_transport.
"""
import json
import logging
import sys
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler


LOGGER_NAME = "backend_transport"

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = ("password", "token", "key", "secret", "apikey", "authorization")

SENSITIVE_HEADERS = ("authorization", "x-api-key")

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "info", fmt: str = "simple") -> logging.Logger:
    """
    Configure the package logger.

    Output goes to stderr; stdout stays free for the hosting tool protocol.

    Args:
        level: error, warn, info or debug
        fmt: "simple" (Rich console) or "json"

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_LEVELS.get(level.lower(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger.addHandler(handler)
    logger.propagate = False
    return logger


def mask_sensitive(value: Optional[str], show_chars: int = 10) -> str:
    """
    Mask a sensitive value for safe logging.

    Example:
        >>> mask_sensitive("Token abcdef1234567890")
        'Token abcd***'
    """
    if value is None:
        return "<none>"
    if len(value) <= show_chars:
        return "*" * len(value)
    return value[:show_chars] + "***"


def mask_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Mask authorization headers for logging."""
    return {
        key: mask_sensitive(value) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def _is_sensitive_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def sanitize_data(value: Any) -> Any:
    """
    Recursively redact values stored under sensitive-looking keys.

    Args:
        value: Any JSON-like structure

    Returns:
        A new structure with sensitive values replaced by "[REDACTED]"
    """
    if isinstance(value, Mapping):
        return {
            key: REDACTED if _is_sensitive_key(key) else sanitize_data(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [sanitize_data(item) for item in value]
    return value
