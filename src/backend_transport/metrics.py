"""
Request metrics for backend_transport.
"""
from types import MappingProxyType
from typing import Dict, Optional, Union

from .types import ErrorKind, MetricsConfig, MetricsSnapshot, Outcome


class MetricsCollector:
    """
    Aggregate counters over the request population.

    Counts one request per façade call. Cache hit/miss counters are kept
    apart from request outcomes.
    """

    def __init__(self, config: Optional[MetricsConfig] = None) -> None:
        self._config = config or MetricsConfig()
        self.reset()

    @property
    def config(self) -> MetricsConfig:
        return self._config

    def reset(self) -> None:
        """Zero all counters."""
        self._total_requests = 0
        self._total_errors = 0
        self._total_cache_hits = 0
        self._total_cache_misses = 0
        self._total_retries = 0
        self._timed_requests = 0
        self._average_ms = 0.0
        self._requests_by_verb: Dict[str, int] = {}
        self._errors_by_kind: Dict[str, int] = {}

    def record(
        self,
        verb: str,
        outcome: Union[Outcome, str],
        duration_ms: float,
        error_kind: Optional[ErrorKind] = None,
    ) -> None:
        """
        Record the outcome of one call.

        Args:
            verb: Request verb
            outcome: success or error
            duration_ms: Wall time of the call, retries included
            error_kind: Classification of the failure, when outcome is error
        """
        if not self._config.enabled:
            return

        verb = verb.upper()
        self._total_requests += 1
        self._requests_by_verb[verb] = self._requests_by_verb.get(verb, 0) + 1

        if Outcome(outcome) is Outcome.ERROR:
            self._total_errors += 1
            if self._config.collect_errors and error_kind is not None:
                key = ErrorKind(error_kind).value
                self._errors_by_kind[key] = self._errors_by_kind.get(key, 0) + 1

        if self._config.collect_timing:
            self._timed_requests += 1
            self._average_ms += (duration_ms - self._average_ms) / self._timed_requests

    def record_cache_hit(self) -> None:
        if self._config.enabled and self._config.collect_cache_stats:
            self._total_cache_hits += 1

    def record_cache_miss(self) -> None:
        if self._config.enabled and self._config.collect_cache_stats:
            self._total_cache_misses += 1

    def record_retry(self) -> None:
        if self._config.enabled:
            self._total_retries += 1

    def snapshot(self) -> MetricsSnapshot:
        """Return an immutable copy of the counters."""
        return MetricsSnapshot(
            total_requests=self._total_requests,
            total_errors=self._total_errors,
            total_cache_hits=self._total_cache_hits,
            total_cache_misses=self._total_cache_misses,
            total_retries=self._total_retries,
            average_response_time_ms=self._average_ms,
            requests_by_verb=MappingProxyType(dict(self._requests_by_verb)),
            errors_by_kind=MappingProxyType(dict(self._errors_by_kind)),
        )
