"""Retry with exponential backoff for connection establishment.

Only the initial connection to the source database is retried. Once an export
has started writing, a failure abandons the run instead of being retried.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Retry behaviour with exponential backoff.

    Example:
        >>> config = RetryConfig(max_attempts=3, initial_delay=2.0)
        >>> config.calculate_delay(1)  # 4.0
    """

    def __init__(
        self,
        max_attempts: int = 1,
        initial_delay: float = 2.0,
        backoff_factor: float = 2.0,
        max_delay: float = 60.0,
        retriable_exceptions: tuple[type[Exception], ...] = (Exception,),
    ) -> None:
        """Initialize retry configuration.

        Args:
            max_attempts: Total number of attempts, including the first one.
            initial_delay: Delay before the first retry, in seconds.
            backoff_factor: Multiplier applied to the delay after each retry.
            max_delay: Upper bound for a single delay, in seconds.
            retriable_exceptions: Exception types that trigger another attempt.

        Raises:
            ValueError: If parameters are invalid.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if backoff_factor < 1.0:
            raise ValueError("backoff_factor must be >= 1.0")
        if max_delay < initial_delay:
            raise ValueError("max_delay must be >= initial_delay")

        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.retriable_exceptions = retriable_exceptions

    def calculate_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-indexed), capped at max_delay."""
        return min(self.initial_delay * (self.backoff_factor**attempt), self.max_delay)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    config: RetryConfig,
    *args: Any,
    **kwargs: Any,
) -> T:
    """Call ``func`` until it succeeds or the attempts are exhausted.

    Args:
        func: Async callable to invoke.
        config: Retry configuration.
        *args: Positional arguments for func.
        **kwargs: Keyword arguments for func.

    Returns:
        The result of the first successful call.

    Raises:
        Exception: The error from the final attempt, unchanged.
    """
    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except config.retriable_exceptions as e:
            if attempt == config.max_attempts - 1:
                if config.max_attempts > 1:
                    logger.error(
                        "retry_exhausted",
                        function=getattr(func, "__name__", repr(func)),
                        attempts=config.max_attempts,
                        error=str(e),
                    )
                raise

            delay = config.calculate_delay(attempt)
            logger.warning(
                "retry_attempt",
                function=getattr(func, "__name__", repr(func)),
                attempt=attempt + 1,
                max_attempts=config.max_attempts,
                delay=delay,
                error=str(e),
                error_type=type(e).__name__,
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Unexpected retry loop exit")
