"""
Retry decisions and backoff for backend_transport
"""
import asyncio
from typing import Optional

from .errors import RequestCancelledError, TransportError
from .types import RetryConfig, RetryDecision


# Default retry configuration
DEFAULT_RETRY_CONFIG = RetryConfig()


def calculate_delay_ms(attempt: int, config: RetryConfig) -> int:
    """
    Calculate the exponential backoff delay after a failed attempt.

    delay = min(max_delay, base_delay * exponential_base^(attempt - 1))

    Args:
        attempt: The attempt that just failed (1-indexed)
        config: Retry configuration

    Returns:
        Delay in milliseconds
    """
    exponent = max(0, attempt - 1)
    delay = config.base_delay_ms * (config.exponential_base ** exponent)
    return int(min(config.max_delay_ms, delay))


def is_retryable_error(error: TransportError, config: RetryConfig) -> bool:
    """
    Check if a classified error should trigger a retry.

    Args:
        error: The classified error
        config: Retry configuration

    Returns:
        Whether the status code or the error kind is configured as retryable
    """
    if error.status_code is not None and error.status_code in config.retryable_status_codes:
        return True
    return error.kind in config.retryable_error_kinds


class RetryPolicy:
    """
    Pure retry policy: no I/O, no sleeping.

    Example:
        policy = RetryPolicy(RetryConfig(max_attempts=3))
        decision = policy.decide(1, NetworkError("reset"))
        # RetryDecision(retry=True, delay_ms=1000)
    """

    def __init__(self, config: Optional[RetryConfig] = None) -> None:
        self._config = config or DEFAULT_RETRY_CONFIG

    @property
    def config(self) -> RetryConfig:
        """Get the current configuration."""
        return self._config

    def decide(self, attempt: int, error: TransportError) -> RetryDecision:
        """
        Decide whether to retry after a failed attempt.

        Args:
            attempt: The attempt that just failed (1-indexed)
            error: The classified error

        Returns:
            Whether to retry and how long to wait first
        """
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")

        delay_ms = calculate_delay_ms(attempt, self._config)
        retry = attempt < self._config.max_attempts and is_retryable_error(
            error, self._config
        )
        return RetryDecision(retry=retry, delay_ms=delay_ms)


async def backoff_sleep(
    delay_ms: int,
    cancel_event: Optional[asyncio.Event] = None,
    shutdown_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Sleep before the next attempt, waking early on cancellation.

    Args:
        delay_ms: Delay in milliseconds
        cancel_event: Caller-supplied cancellation signal
        shutdown_event: Transport shutdown signal

    Raises:
        RequestCancelledError: If either event is set before or during the wait
    """
    events = [e for e in (cancel_event, shutdown_event) if e is not None]
    if any(e.is_set() for e in events):
        raise RequestCancelledError("Request cancelled")

    if not events:
        await asyncio.sleep(delay_ms / 1000)
        return

    waiters = [asyncio.ensure_future(e.wait()) for e in events]
    try:
        done, _ = await asyncio.wait(
            waiters, timeout=delay_ms / 1000, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for waiter in waiters:
            waiter.cancel()

    if done:
        raise RequestCancelledError("Request cancelled")
