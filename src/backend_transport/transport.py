"""
Outbound API transport.

Every backend call goes through ApiTransport.request:

    build -> cache check -> to_wire + marker -> send
          -> success: to_application, cache store, metrics
          -> failure: classify, retry with backoff or raise
"""
import asyncio
import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx

from .augment import augment_request
from .cache import ResponseCache, monotonic_ms
from .config import DEFAULT_BASE_URL, merge_transport_config, validate_transport_config
from .errors import (
    RequestCancelledError,
    TransportError,
    ValidationError,
    classify_error,
    classify_response,
    parse_json_body,
)
from .logging_utils import mask_headers, sanitize_data
from .metrics import MetricsCollector
from .naming import to_application, to_wire
from .retry import RetryPolicy, backoff_sleep
from .types import (
    ALL_VERBS,
    CacheStats,
    ErrorKind,
    MetricsSnapshot,
    Outcome,
    RequestDescriptor,
    TransportConfig,
)


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def normalize_base_url(base_url: str) -> str:
    """Ensure the base URL ends with exactly one slash."""
    return base_url.rstrip("/") + "/"


def build_url(base_url: str, path: str) -> str:
    """Join base URL and path; absolute URLs are used as given."""
    if path.startswith(("http://", "https://")):
        return path
    return normalize_base_url(base_url) + path.lstrip("/")


def build_default_headers(
    api_key: Optional[str] = None,
    token_type: str = "token",
) -> Dict[str, str]:
    """Default JSON headers, plus Authorization when a key is given."""
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if api_key:
        scheme = "Bearer" if token_type == "bearer" else "Token"
        headers["Authorization"] = f"{scheme} {api_key}"
    return headers


class ApiTransport:
    """
    Transport used by all service modules to call the backend.

    Normalizes field naming in both directions, injects the client marker,
    retries transient failures with exponential backoff, caches read
    responses and keeps request metrics.

    Example:
        transport = ApiTransport("https://api.example.com", api_key="abc")
        suites = await transport.get("/api/v1/suites/", {"pageSize": 20})
        await transport.destroy()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        api_key: Optional[str] = None,
        token_type: str = "token",
        config: Union[TransportConfig, Mapping[str, Any], None] = None,
        httpx_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """
        Create a new ApiTransport.

        Args:
            base_url: Backend base URL
            api_key: Credential for the Authorization header
            token_type: "token" or "bearer" Authorization scheme
            config: TransportConfig or partial override mapping
            httpx_client: Injected client (e.g. for tests); not closed by destroy()
            timeout: Per-request timeout in seconds for the owned client
            clock: Millisecond clock, used for TTL and timing
        """
        if not base_url:
            raise ValueError("base_url is required")

        if isinstance(config, TransportConfig):
            validate_transport_config(config)
            self._config = config
        else:
            self._config = merge_transport_config(config)

        self._base_url = normalize_base_url(base_url)
        self._headers = build_default_headers(api_key, token_type)
        self._clock = clock or monotonic_ms
        self._policy = RetryPolicy(self._config.retry)
        self._cache = ResponseCache(self._config.cache, clock=self._clock)
        self._metrics = MetricsCollector(self._config.metrics)
        self._shutdown = asyncio.Event()
        self._destroyed = False

        if httpx_client is not None:
            self._client = httpx_client
            self._owns_client = False
        else:
            self._client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------ build

    def _build(
        self,
        verb: str,
        path: str,
        params: Optional[Mapping[str, Any]],
        body: Any,
        headers: Optional[Mapping[str, str]],
    ) -> RequestDescriptor:
        if verb not in ALL_VERBS:
            raise ValidationError(f"Unsupported HTTP verb: {verb}")
        if not isinstance(path, str) or not path.strip():
            raise ValidationError("Request path must be a non-empty string")
        if params is not None and not isinstance(params, Mapping):
            raise ValidationError("Query params must be a mapping")
        if headers is not None and not isinstance(headers, Mapping):
            raise ValidationError("Headers must be a mapping")
        if body is not None and not isinstance(body, (str, bytes)):
            try:
                json.dumps(body)
            except (TypeError, ValueError) as e:
                raise ValidationError("Request body is not JSON serializable") from e

        return RequestDescriptor(
            verb=verb,
            path=path,
            query_params=dict(params or {}),
            body=body,
            headers={**self._headers, **dict(headers or {})},
        )

    def _to_wire(self, descriptor: RequestDescriptor) -> RequestDescriptor:
        return RequestDescriptor(
            verb=descriptor.verb,
            path=descriptor.path,
            query_params=to_wire(dict(descriptor.query_params)),
            body=to_wire(descriptor.body),
            headers=descriptor.headers,
        )

    # ------------------------------------------------------------------- send

    async def _send(self, descriptor: RequestDescriptor) -> Any:
        url = build_url(self._base_url, descriptor.path)
        kwargs: Dict[str, Any] = {
            "params": dict(descriptor.query_params) or None,
            "headers": dict(descriptor.headers),
        }
        if isinstance(descriptor.body, (str, bytes)):
            kwargs["content"] = descriptor.body
        elif descriptor.body is not None:
            kwargs["json"] = descriptor.body

        start = self._clock()
        response = await self._client.request(descriptor.verb, url, **kwargs)
        duration = self._clock() - start

        if self._should_log("log_responses"):
            logger.debug(
                f"ApiTransport._send: {descriptor.verb} {descriptor.path} -> "
                f"{response.status_code} in {duration:.0f}ms ({len(response.content)} bytes)"
            )

        error = classify_response(response, descriptor.verb, descriptor.path)
        if error is not None:
            raise error
        return parse_json_body(response, descriptor.verb, descriptor.path)

    # ---------------------------------------------------------------- request

    async def request(
        self,
        verb: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Make a backend request.

        Args:
            verb: GET, POST, PUT, PATCH or DELETE
            path: Path relative to the base URL
            params: Query parameters (application naming)
            body: JSON body (application naming), or raw str/bytes
            headers: Extra headers
            cancel_event: Set to abort pending retries

        Returns:
            Response payload with application (camelCase) keys

        Raises:
            TransportError: Classified failure after retries are exhausted
        """
        if self._destroyed:
            raise TransportError("Transport has been destroyed", kind=ErrorKind.INTERNAL)

        verb = verb.upper() if isinstance(verb, str) else verb
        start = self._clock()

        try:
            descriptor = self._build(verb, path, params, body, headers)
        except ValidationError as error:
            self._record_failure(str(verb), path, start, error)
            raise

        if self._should_log("log_requests"):
            logger.debug(
                f"ApiTransport.request: {verb} {path} "
                f"params={self._loggable(descriptor.query_params)} "
                f"body={self._loggable(descriptor.body)} "
                f"headers={mask_headers(descriptor.headers)}"
            )

        use_cache = (
            self._cache.enabled
            and self._cache.is_cacheable(verb)
            and not self._cache.is_excluded(path)
        )
        cache_key = self._cache.generate_key(verb, path, descriptor.query_params)

        if use_cache:
            self._cache.start_cleanup()
            lookup = self._cache.get(cache_key)
            if lookup.found:
                self._metrics.record_cache_hit()
                self._metrics.record(verb, Outcome.SUCCESS, self._clock() - start)
                logger.debug(f"ApiTransport.request: cache hit {cache_key}")
                return lookup.payload
            self._metrics.record_cache_miss()

        outbound = augment_request(self._to_wire(descriptor), self._config.marker)

        try:
            payload = await self._send_with_retry(outbound, path, start, cancel_event)
        except asyncio.CancelledError:
            self._record_failure(verb, path, start, RequestCancelledError("Request cancelled"))
            raise

        result = to_application(payload)
        if use_cache and not self._destroyed:
            self._cache.put(cache_key, result)
        self._metrics.record(verb, Outcome.SUCCESS, self._clock() - start)
        return result

    async def _send_with_retry(
        self,
        outbound: RequestDescriptor,
        path: str,
        start: float,
        cancel_event: Optional[asyncio.Event],
    ) -> Any:
        """Send with retries; failures are recorded before they are raised."""
        verb = outbound.verb
        attempt = 1
        while True:
            try:
                payload = await self._send(outbound)
            except Exception as exc:
                error = classify_error(exc, verb, path)
                decision = self._policy.decide(attempt, error)
                if not decision.retry:
                    self._record_failure(verb, path, start, error, attempt)
                    raise error

                if self._config.logging.enabled:
                    logger.warning(
                        f"ApiTransport.request: {verb} {path} failed "
                        f"(attempt {attempt}/{self._config.retry.max_attempts}, "
                        f"{error.kind.value}), retrying in {decision.delay_ms}ms"
                    )
                self._metrics.record_retry()

                try:
                    await backoff_sleep(decision.delay_ms, cancel_event, self._shutdown)
                except TransportError as cancelled:
                    self._record_failure(verb, path, start, cancelled, attempt)
                    raise
                attempt += 1
                continue

            return payload

    def _record_failure(
        self,
        verb: str,
        path: str,
        start: float,
        error: TransportError,
        attempts: int = 0,
    ) -> None:
        self._metrics.record(verb, Outcome.ERROR, self._clock() - start, error.kind)
        if self._should_log("log_errors"):
            logger.error(
                f"ApiTransport.request: {verb} {path} failed after {attempts} "
                f"attempt(s): {error.kind.value}: {error.message}"
            )

    def _should_log(self, flag: str) -> bool:
        logging_config = self._config.logging
        return logging_config.enabled and getattr(logging_config, flag)

    def _loggable(self, value: Any) -> Any:
        if self._config.logging.sanitize_sensitive_data:
            return sanitize_data(value)
        return value

    # ------------------------------------------------------------------ verbs

    async def get(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> Any:
        """GET request."""
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        """POST request."""
        return await self.request("POST", path, body=body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        """PUT request."""
        return await self.request("PUT", path, body=body, **kwargs)

    async def patch(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        """PATCH request."""
        return await self.request("PATCH", path, body=body, **kwargs)

    async def delete(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> Any:
        """DELETE request."""
        return await self.request("DELETE", path, params=params, **kwargs)

    # ------------------------------------------------------------- management

    def get_metrics(self) -> MetricsSnapshot:
        """Get current transport metrics."""
        return self._metrics.snapshot()

    def reset_metrics(self) -> None:
        """Reset metrics counters; cache contents are kept."""
        self._metrics.reset()

    def get_cache_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._cache.get_stats()

    def clear_cache(self) -> None:
        """Clear cache entries."""
        self._cache.clear()

    async def destroy(self) -> None:
        """Release timers, cache and the owned HTTP client. Safe to call twice."""
        if self._destroyed:
            return
        self._destroyed = True
        self._shutdown.set()
        await self._cache.close()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.destroy()
