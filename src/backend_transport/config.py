"""
Configuration for backend_transport.

Transport behaviour is a tree of dataclasses built from defaults plus a
partial override mapping; connection settings come from the environment.
"""
import os
from dataclasses import asdict
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, SecretStr, ValidationError as PydanticValidationError, field_validator

from .errors import ConfigurationError
from .naming import to_wire
from .types import (
    CacheConfig,
    ErrorKind,
    LoggingConfig,
    MetricsConfig,
    RetryConfig,
    TransportConfig,
)


DEFAULT_BASE_URL = "https://api.debugg.ai"

DEFAULT_TRANSPORT_CONFIG = TransportConfig()


def deep_merge(target: Dict[str, Any], source: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries recursively.

    Args:
        target: The base dictionary to merge into
        source: The dictionary with override values

    Returns:
        A new merged dictionary; None values in source are skipped

    Example:
        >>> deep_merge({"retry": {"max_attempts": 3, "base_delay_ms": 1000}},
        ...            {"retry": {"max_attempts": 5}})
        {'retry': {'max_attempts': 5, 'base_delay_ms': 1000}}
    """
    if source is None:
        return dict(target)

    result = {**target}
    for key, source_value in source.items():
        if source_value is None:
            continue

        target_value = result.get(key)
        if isinstance(source_value, Mapping) and isinstance(target_value, dict):
            result[key] = deep_merge(target_value, source_value)
        else:
            result[key] = source_value

    return result


def validate_transport_config(config: TransportConfig) -> None:
    """Validate transport configuration."""
    retry = config.retry
    if retry.max_attempts < 1:
        raise ValueError(f"retry.max_attempts must be >= 1, got {retry.max_attempts}")
    if retry.base_delay_ms < 0 or retry.max_delay_ms < 0:
        raise ValueError("retry delays must be >= 0")
    if retry.exponential_base < 1:
        raise ValueError(f"retry.exponential_base must be >= 1, got {retry.exponential_base}")

    cache = config.cache
    if cache.max_entries < 1:
        raise ValueError(f"cache.max_entries must be >= 1, got {cache.max_entries}")
    if cache.ttl_ms < 0:
        raise ValueError(f"cache.ttl_ms must be >= 0, got {cache.ttl_ms}")
    if cache.cleanup_interval_ms <= 0:
        raise ValueError("cache.cleanup_interval_ms must be > 0")

    if not isinstance(config.marker, Mapping):
        raise ValueError("marker must be a mapping")


def merge_transport_config(overrides: Optional[Mapping[str, Any]] = None) -> TransportConfig:
    """
    Merge a partial configuration mapping over the defaults.

    Keys may use either naming convention ("maxAttempts" or "max_attempts").
    The marker mapping is taken as given, not key-converted.

    Args:
        overrides: Partial nested configuration

    Returns:
        Complete, validated configuration
    """
    if overrides is None:
        return TransportConfig()

    marker = overrides.get("marker")
    normalized = to_wire({k: v for k, v in overrides.items() if k != "marker"})
    defaults = asdict(DEFAULT_TRANSPORT_CONFIG)
    unknown = set(normalized) - set(defaults)
    if unknown:
        raise ValueError(f"Unknown transport config section(s): {sorted(unknown)}")
    merged = deep_merge(defaults, normalized)

    retry = dict(merged["retry"])
    retry["retryable_status_codes"] = {int(s) for s in retry["retryable_status_codes"]}
    retry["retryable_error_kinds"] = {ErrorKind(k) for k in retry["retryable_error_kinds"]}

    try:
        config = TransportConfig(
            retry=RetryConfig(**retry),
            cache=CacheConfig(**merged["cache"]),
            metrics=MetricsConfig(**merged["metrics"]),
            logging=LoggingConfig(**merged["logging"]),
            marker=dict(marker) if marker is not None else dict(merged["marker"]),
        )
    except TypeError as e:
        raise ValueError(f"Unknown transport config option: {e}") from e

    validate_transport_config(config)
    return config


class TransportSettings(BaseModel):
    """Connection settings, usually loaded from the environment."""

    api_key: Optional[SecretStr] = None
    token_type: Literal["token", "bearer"] = "token"
    base_url: str = DEFAULT_BASE_URL
    log_level: Literal["error", "warn", "warning", "info", "debug"] = "info"
    log_format: Literal["json", "simple"] = "simple"

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base_url: {value}")
        return value

    def authorization_header(self) -> Optional[str]:
        """Authorization header value, or None without a key."""
        if self.api_key is None or not self.api_key.get_secret_value():
            return None
        scheme = "Bearer" if self.token_type == "bearer" else "Token"
        return f"{scheme} {self.api_key.get_secret_value()}"


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    require_api_key: bool = True,
) -> TransportSettings:
    """
    Load settings from environment variables.

    Key priority: BACKEND_API_TOKEN, BACKEND_JWT_TOKEN, BACKEND_API_KEY.

    Args:
        env: Environment mapping. Default: os.environ
        require_api_key: Fail when no key is configured

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If a setting is missing or invalid
    """
    env = os.environ if env is None else env
    api_key = (
        env.get("BACKEND_API_TOKEN")
        or env.get("BACKEND_JWT_TOKEN")
        or env.get("BACKEND_API_KEY")
    )
    if require_api_key and not api_key:
        raise ConfigurationError("API key is required (set BACKEND_API_KEY)")

    raw = {
        "api_key": api_key or None,
        "token_type": env.get("BACKEND_TOKEN_TYPE") or None,
        "base_url": env.get("BACKEND_API_URL") or None,
        "log_level": (env.get("LOG_LEVEL") or "").lower() or None,
        "log_format": (env.get("LOG_FORMAT") or "").lower() or None,
    }
    try:
        return TransportSettings(**{k: v for k, v in raw.items() if v is not None})
    except PydanticValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigurationError(f"Configuration error: invalid {fields}") from e
