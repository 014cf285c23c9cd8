"""
Retry utilities with tenacity.

Provides configurable retry helpers for external calls that are
known to fail transiently (actor runs returning empty datasets).
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_WAIT = 5.0  # seconds


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        wait: float = DEFAULT_WAIT,
        retry_exceptions: tuple[type[Exception], ...] | None = None,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts
            wait: Fixed wait between attempts in seconds
            retry_exceptions: Exception types to retry on
        """
        self.max_attempts = max_attempts
        self.wait = wait
        self.retry_exceptions = retry_exceptions or (Exception,)

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.wait),
            retry=retry_if_exception_type(self.retry_exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )


async def retry_async(
    coro_func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """Execute an async function with retry logic.

    The retry policy is chosen per call.

    Raises:
        The last exception once all attempts fail.
    """
    config = config or RetryConfig()

    async for attempt in config.retrying():
        with attempt:
            return await coro_func(*args, **kwargs)
