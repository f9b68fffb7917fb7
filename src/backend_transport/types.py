"""
Type definitions for backend_transport
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Set


HttpVerb = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

# Verbs whose marker goes into query params and whose responses may be cached
READ_VERBS = frozenset({"GET", "DELETE"})

# Verbs whose marker goes into the body
WRITE_VERBS = frozenset({"POST", "PUT", "PATCH"})

# Verbs eligible for the response cache
CACHEABLE_VERBS = frozenset({"GET"})

# Fields injected into every outgoing request by default
DEFAULT_MARKER = {"mcp_request": True}

ALL_VERBS = READ_VERBS | WRITE_VERBS


class ErrorKind(str, Enum):
    """Classification of a failed request"""
    VALIDATION = "validation"
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED_RESPONSE = "malformed_response"
    EXTERNAL_SERVICE = "external_service"
    CONFIGURATION = "configuration"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class Outcome(str, Enum):
    """Outcome of a single façade call"""
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class RequestDescriptor:
    """A single outbound request, rebuilt rather than mutated between stages."""

    verb: str
    path: str
    query_params: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_read(self) -> bool:
        return self.verb in READ_VERBS

    @property
    def is_write(self) -> bool:
        return self.verb in WRITE_VERBS


@dataclass
class RetryConfig:
    """Retry configuration"""

    max_attempts: int = 3
    """Total attempts including the first one. Default: 3"""

    base_delay_ms: int = 1000
    """Delay before the second attempt (milliseconds). Default: 1000"""

    max_delay_ms: int = 10000
    """Upper bound for any single delay (milliseconds). Default: 10000"""

    exponential_base: float = 2
    """Multiplier applied per attempt. Default: 2"""

    retryable_status_codes: Set[int] = field(
        default_factory=lambda: {408, 429, 500, 502, 503, 504}
    )
    """HTTP status codes that should trigger retry"""

    retryable_error_kinds: Set[ErrorKind] = field(
        default_factory=lambda: {ErrorKind.NETWORK, ErrorKind.EXTERNAL_SERVICE}
    )
    """Error kinds that should trigger retry"""


@dataclass
class CacheConfig:
    """Response cache configuration"""

    enabled: bool = True
    ttl_ms: int = 300000
    """Time-to-live of an entry (milliseconds). Default: 5 minutes"""

    max_entries: int = 100
    exclude_patterns: List[str] = field(
        default_factory=lambda: ["/auth/", "/session/", "/logout"]
    )
    """Path matchers that bypass the cache, checked in order"""

    cleanup_interval_ms: int = 60000
    """Interval of the background sweep of expired entries. Default: 1 minute"""


@dataclass
class MetricsConfig:
    """Metrics configuration"""

    enabled: bool = True
    collect_timing: bool = True
    collect_errors: bool = True
    collect_cache_stats: bool = True


@dataclass
class LoggingConfig:
    """Request logging configuration"""

    enabled: bool = True
    log_requests: bool = True
    log_responses: bool = True
    log_errors: bool = True
    sanitize_sensitive_data: bool = True


@dataclass
class TransportConfig:
    """Aggregated transport configuration"""

    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    marker: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_MARKER))
    """Fields injected into every outgoing request"""


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of RetryPolicy.decide"""

    retry: bool
    delay_ms: int


@dataclass
class CacheEntry:
    """Cached payload with its insertion time"""

    key: str
    payload: Any
    inserted_at_ms: float
    ttl_ms: int

    def is_valid(self, now_ms: float) -> bool:
        return now_ms - self.inserted_at_ms < self.ttl_ms


@dataclass(frozen=True)
class CacheLookupResult:
    """Result of cache lookup."""

    found: bool
    payload: Any = None


@dataclass(frozen=True)
class CacheStats:
    """Response cache statistics."""

    size: int
    max_size: int
    hit_ratio: float
    hits: int = 0
    misses: int = 0


@dataclass(frozen=True)
class MetricsSnapshot:
    """Immutable copy of the transport counters."""

    total_requests: int = 0
    total_errors: int = 0
    total_cache_hits: int = 0
    total_cache_misses: int = 0
    total_retries: int = 0
    average_response_time_ms: float = 0.0
    requests_by_verb: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    errors_by_kind: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
