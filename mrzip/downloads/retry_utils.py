"""Retry helpers for file downloads."""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from ..core.constants import DownloadDefaults
from ..core.exceptions import PerFileDownloadError

T = TypeVar("T")


async def retry_with_exponential_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    max_retries: int = DownloadDefaults.MAX_RETRIES,
    base_delay: float = DownloadDefaults.BACKOFF_BASE_DELAY,
    max_delay: float = DownloadDefaults.BACKOFF_MAX_DELAY,
    jitter: bool = True,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[int, float, Exception], None]] = None,
    **kwargs,
) -> T:
    """
    Await a coroutine function, retrying failures with exponential backoff.

    Args:
        func: The coroutine function to call
        max_retries: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Whether to randomize delays between 50% and 100%
        should_retry: Predicate deciding whether an exception is retryable
            (default: all exceptions)
        on_retry: Called with (attempt, delay, error) before sleeping
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        The result of the first successful call

    Raises:
        The last exception if all attempts fail or it is not retryable
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if should_retry and not should_retry(e):
                raise
            if attempt >= max_retries:
                raise

            delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
            if jitter:
                delay *= 0.5 + 0.5 * random.random()

            if on_retry:
                on_retry(attempt, delay, e)

            await asyncio.sleep(delay)


def is_retryable_status(status_code: Optional[int]) -> bool:
    """Statuses worth another attempt (throttling and server errors)."""
    return status_code in DownloadDefaults.RETRYABLE_STATUS_CODES


def is_retryable_download_error(error: Exception) -> bool:
    """Transport failures and throttling/server errors are retried; 4xx are not."""
    if isinstance(error, PerFileDownloadError):
        return error.status_code is None or is_retryable_status(error.status_code)
    return False
