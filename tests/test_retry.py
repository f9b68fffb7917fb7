"""
Tests for the retry policy and backoff sleep.

Test coverage includes:
- Decision/Branch coverage: retryable status, retryable kind, exhaustion
- Boundary values: first attempt, last attempt, delay cap
"""
import asyncio

import pytest

from backend_transport.errors import (
    ExternalServiceError,
    HttpStatusError,
    MalformedResponseError,
    NetworkError,
    RequestCancelledError,
    ValidationError,
)
from backend_transport.retry import (
    RetryPolicy,
    backoff_sleep,
    calculate_delay_ms,
    is_retryable_error,
)
from backend_transport.types import ErrorKind, RetryConfig


class TestCalculateDelay:
    """Tests for exponential backoff."""

    def test_first_retry_uses_base_delay(self):
        config = RetryConfig(base_delay_ms=1000, exponential_base=2)
        assert calculate_delay_ms(1, config) == 1000

    def test_grows_exponentially(self):
        config = RetryConfig(base_delay_ms=100, exponential_base=3, max_delay_ms=100000)
        assert [calculate_delay_ms(a, config) for a in (1, 2, 3, 4)] == [100, 300, 900, 2700]

    def test_capped_at_max_delay(self):
        config = RetryConfig(base_delay_ms=1000, max_delay_ms=5000)
        assert calculate_delay_ms(10, config) == 5000


class TestIsRetryableError:
    """Tests for retryable classification."""

    def test_retryable_status_code(self):
        error = HttpStatusError("rate limited", status_code=429)
        assert is_retryable_error(error, RetryConfig()) is True

    def test_non_retryable_status_code(self):
        error = HttpStatusError("not found", status_code=404)
        assert is_retryable_error(error, RetryConfig()) is False

    def test_retryable_kind(self):
        assert is_retryable_error(NetworkError("reset"), RetryConfig()) is True
        assert is_retryable_error(ExternalServiceError("down", status_code=501), RetryConfig()) is True

    def test_malformed_response_without_retryable_status(self):
        error = MalformedResponseError("API endpoint not found (404)", status_code=404)
        assert is_retryable_error(error, RetryConfig()) is False

    def test_empty_retryable_sets(self):
        config = RetryConfig(retryable_status_codes=set(), retryable_error_kinds=set())
        assert is_retryable_error(NetworkError("reset"), config) is False


class TestRetryPolicy:
    """Tests for RetryPolicy.decide."""

    def test_retries_before_max_attempts(self):
        policy = RetryPolicy(RetryConfig(max_attempts=3, base_delay_ms=10))
        decision = policy.decide(1, NetworkError("reset"))
        assert decision.retry is True
        assert decision.delay_ms == 10

    def test_stops_at_max_attempts(self):
        policy = RetryPolicy(RetryConfig(max_attempts=3))
        assert policy.decide(2, NetworkError("reset")).retry is True
        assert policy.decide(3, NetworkError("reset")).retry is False

    def test_single_attempt_never_retries(self):
        policy = RetryPolicy(RetryConfig(max_attempts=1))
        assert policy.decide(1, NetworkError("reset")).retry is False

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad input", status_code=400),
            HttpStatusError("unauthorized", status_code=401),
            HttpStatusError("not found", status_code=404),
        ],
    )
    def test_non_retryable_regardless_of_attempt(self, error):
        policy = RetryPolicy(RetryConfig(max_attempts=10))
        for attempt in range(1, 10):
            assert policy.decide(attempt, error).retry is False

    def test_rejects_attempt_zero(self):
        with pytest.raises(ValueError):
            RetryPolicy().decide(0, NetworkError("reset"))

    def test_default_config(self):
        policy = RetryPolicy()
        assert policy.config.max_attempts == 3
        assert ErrorKind.NETWORK in policy.config.retryable_error_kinds


class TestBackoffSleep:
    """Tests for cancellable backoff."""

    @pytest.mark.asyncio
    async def test_sleeps_without_events(self):
        await backoff_sleep(1)

    @pytest.mark.asyncio
    async def test_completes_when_not_cancelled(self):
        await backoff_sleep(1, asyncio.Event(), asyncio.Event())

    @pytest.mark.asyncio
    async def test_already_set_event_raises_immediately(self):
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(RequestCancelledError):
            await backoff_sleep(60000, cancel)

    @pytest.mark.asyncio
    async def test_event_set_during_wait_wakes_sleeper(self):
        cancel = asyncio.Event()

        async def cancel_soon():
            await asyncio.sleep(0.01)
            cancel.set()

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(RequestCancelledError):
            await asyncio.wait_for(backoff_sleep(60000, None, cancel), timeout=5)
        await canceller

    @pytest.mark.asyncio
    async def test_either_event_wakes_sleeper(self):
        cancel = asyncio.Event()
        shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()

        async def cancel_soon():
            await asyncio.sleep(0.05)
            cancel.set()

        canceller = asyncio.create_task(cancel_soon())
        started = loop.time()
        with pytest.raises(RequestCancelledError):
            await backoff_sleep(2000, cancel, shutdown)
        await canceller

        assert loop.time() - started < 1.0
        assert shutdown.is_set() is False
