"""
Retry Handler

Retry with back-off for flaky browser actions, plus a circuit breaker for
calls that keep failing.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

from ..errors import CircuitOpenError
from ..log import get_logging_manager

RETRYABLE_BROWSER_MESSAGES = (
    "stale element reference",
    "element not interactable",
    "element click intercepted",
    "no such element",
    "element is not attached",
    "element is detached",
    "intercepts pointer events",
)


async def retry(
    fn: Callable[[int], Awaitable[Any]],
    max_retries: int = 3,
    delay: int = 1000,
    exponential: bool = True,
    on_retry: Optional[Callable[[Exception, int], Awaitable[None]]] = None,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    logger=None
) -> Any:
    """
    Call `fn(attempt)` until it succeeds or attempts run out.

    Args:
        fn: Async callable receiving the 1-based attempt number
        max_retries: Total attempts including the first
        delay: Base delay between attempts in ms
        exponential: Double the delay after each failure
        on_retry: Awaited before each retry with (error, attempt)
        should_retry: Predicate deciding whether an error is retryable
        logger: Logger handle (defaults to the process logging manager)

    Returns:
        Result of the first successful call

    Raises:
        The last error once attempts are exhausted or it is not retryable
    """
    logger = logger or get_logging_manager().get_logger("RetryHandler")

    for attempt in range(1, max_retries + 1):
        try:
            return await fn(attempt)
        except Exception as error:
            if attempt >= max_retries or (should_retry and not should_retry(error)):
                logger.error(f"All {max_retries} attempts exhausted. Last error: {error}")
                raise

            wait_time = delay * (2 ** (attempt - 1)) if exponential else delay
            logger.warning(
                f"Attempt {attempt}/{max_retries} failed: {error}. Retrying in {wait_time}ms..."
            )
            if on_retry:
                await on_retry(error, attempt)
            await asyncio.sleep(wait_time / 1000)


def is_retryable_browser_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(fragment in message for fragment in RETRYABLE_BROWSER_MESSAGES)


async def retry_browser_action(
    fn: Callable[[int], Awaitable[Any]],
    max_retries: int = 3,
    logger=None
) -> Any:
    """Retry only on stale / detached / intercepted element errors."""
    return await retry(
        fn,
        max_retries=max_retries,
        delay=500,
        should_retry=is_retryable_browser_error,
        logger=logger
    )


class CircuitBreaker:
    """
    Stop calling after `threshold` consecutive failures until `cooldown`
    ms have passed since the last one.
    """

    CLOSED = "closed"
    HALF_OPEN = "half-open"
    OPEN = "open"

    def __init__(self, threshold: int = 5, cooldown: int = 30000, clock: Callable[[], float] = time.monotonic):
        self.threshold = threshold
        self.cooldown = cooldown
        self._clock = clock
        self.failures = 0
        self._last_failure_time = 0.0

    def _is_open(self) -> bool:
        elapsed_ms = (self._clock() - self._last_failure_time) * 1000
        return self.failures >= self.threshold and elapsed_ms < self.cooldown

    @property
    def state(self) -> str:
        if self._is_open():
            return self.OPEN
        if self.failures > 0:
            return self.HALF_OPEN
        return self.CLOSED

    async def execute(self, fn: Callable[[], Awaitable[Any]]) -> Any:
        if self._is_open():
            raise CircuitOpenError(self.failures)

        try:
            result = await fn()
        except Exception:
            self.failures += 1
            self._last_failure_time = self._clock()
            raise

        self.failures = 0
        return result

    def reset(self):
        self.failures = 0
        self._last_failure_time = 0.0
