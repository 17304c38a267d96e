"""Retry logic with capped exponential backoff."""

import asyncio
from typing import Any, Callable, Coroutine, Optional, TypeVar

from . import log

T = TypeVar("T")

# Substrings of error messages that indicate a transient failure
RETRYABLE_MESSAGES = (
    "timeout",
    "timed out",
    "network",
    "connection",
    "failed to fetch",
    "temporarily unavailable",
    "502",
    "503",
    "504",
)


def backoff_delay(attempt: int, base_s: float, max_s: Optional[float] = None) -> float:
    """Delay after the given 1-based attempt: base * 2^(attempt-1), capped at max_s."""
    delay = base_s * (2 ** (attempt - 1))
    if max_s is not None:
        delay = min(max_s, delay)
    return delay


def is_retryable(exc: BaseException) -> bool:
    """Whether an error looks transient and worth another attempt."""
    if isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True
    message = str(exc).lower()
    return any(fragment in message for fragment in RETRYABLE_MESSAGES)


async def with_retries(
    fn: Callable[[], Coroutine[Any, Any, T]],
    attempts: int = 2,
    backoff_s: float = 1.0,
    name: str = "operation",
    max_backoff_s: Optional[float] = None,
    retry_on: Optional[Callable[[Exception], bool]] = None,
) -> tuple[bool, Optional[T], Optional[Exception]]:
    """
    Execute async function with retries.

    Args:
        fn: Async function to call
        attempts: Max number of attempts
        backoff_s: Delay after the first failure, doubled on each retry
        name: Name for logging
        max_backoff_s: Upper bound for a single delay
        retry_on: Predicate deciding whether an error is retried (default: all)

    Returns:
        (success, result, last_exception)
    """
    last_exception: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        try:
            result = await fn()
            if attempt > 1:
                log.info(f"{name}: succeeded on attempt {attempt}/{attempts}")
            return (True, result, None)
        except Exception as e:
            last_exception = e
            log.info(f"{name}: attempt {attempt}/{attempts} failed: {e}")
            if retry_on is not None and not retry_on(e):
                log.debug(f"{name}: error is not retryable")
                break
            if attempt < attempts:
                delay = backoff_delay(attempt, backoff_s, max_backoff_s)
                log.debug(f"{name}: retrying in {delay}s...")
                await asyncio.sleep(delay)

    return (False, None, last_exception)
