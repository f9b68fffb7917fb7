"""
Outbound JSON API transport with naming normalization, retry with backoff,
a time-boxed response cache and request metrics.
"""
from .types import (
    HttpVerb,
    READ_VERBS,
    WRITE_VERBS,
    DEFAULT_MARKER,
    ErrorKind,
    Outcome,
    RequestDescriptor,
    RetryConfig,
    CacheConfig,
    MetricsConfig,
    LoggingConfig,
    TransportConfig,
    RetryDecision,
    CacheEntry,
    CacheLookupResult,
    CacheStats,
    MetricsSnapshot,
)
from .errors import (
    TransportError,
    ValidationError,
    NetworkError,
    HttpStatusError,
    MalformedResponseError,
    ExternalServiceError,
    ConfigurationError,
    RequestCancelledError,
    classify_error,
    classify_response,
)
from .naming import (
    string_to_camel_case,
    string_to_snake_case,
    to_application,
    to_wire,
)
from .augment import augment_request
from .retry import (
    DEFAULT_RETRY_CONFIG,
    RetryPolicy,
    backoff_sleep,
    calculate_delay_ms,
    is_retryable_error,
)
from .cache import ResponseCache, match_exclude_pattern
from .metrics import MetricsCollector
from .config import (
    DEFAULT_TRANSPORT_CONFIG,
    TransportSettings,
    deep_merge,
    load_settings,
    merge_transport_config,
)
from .logging_utils import (
    configure_logging,
    mask_headers,
    mask_sensitive,
    sanitize_data,
)
from .transport import ApiTransport
from .factory import create_transport, create_transport_from_env


__all__ = [
    # Types
    "HttpVerb",
    "READ_VERBS",
    "WRITE_VERBS",
    "ErrorKind",
    "Outcome",
    "RequestDescriptor",
    "RetryConfig",
    "CacheConfig",
    "MetricsConfig",
    "LoggingConfig",
    "TransportConfig",
    "RetryDecision",
    "CacheEntry",
    "CacheLookupResult",
    "CacheStats",
    "MetricsSnapshot",
    # Errors
    "TransportError",
    "ValidationError",
    "NetworkError",
    "HttpStatusError",
    "MalformedResponseError",
    "ExternalServiceError",
    "ConfigurationError",
    "RequestCancelledError",
    "classify_error",
    "classify_response",
    # Naming
    "string_to_camel_case",
    "string_to_snake_case",
    "to_application",
    "to_wire",
    # Augmentation
    "DEFAULT_MARKER",
    "augment_request",
    # Retry
    "DEFAULT_RETRY_CONFIG",
    "RetryPolicy",
    "backoff_sleep",
    "calculate_delay_ms",
    "is_retryable_error",
    # Cache
    "ResponseCache",
    "match_exclude_pattern",
    # Metrics
    "MetricsCollector",
    # Config
    "DEFAULT_TRANSPORT_CONFIG",
    "TransportSettings",
    "deep_merge",
    "load_settings",
    "merge_transport_config",
    # Logging
    "configure_logging",
    "mask_headers",
    "mask_sensitive",
    "sanitize_data",
    # Transport
    "ApiTransport",
    "create_transport",
    "create_transport_from_env",
]


__version__ = "1.0.0"
