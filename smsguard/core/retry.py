"""
Retry logic with linear backoff for inference calls.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from loguru import logger

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        max_delay: float = 60.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.max_delay = max_delay
        self.retry_on = retry_on

    def calculate_delay(self, retry_index: int) -> float:
        """
        Calculate delay before the given retry.

        Delay grows linearly: the first retry waits one backoff unit,
        the second waits two, and so on.

        Args:
            retry_index: 1-based retry number

        Returns:
            Delay in seconds
        """
        return min(self.backoff_seconds * retry_index, self.max_delay)

    def total_backoff(self) -> float:
        """Sum of all delays if every retry is used."""
        return sum(self.calculate_delay(i) for i in range(1, self.max_retries + 1))

    def __repr__(self) -> str:
        return (
            f"RetryConfig(max_retries={self.max_retries}, "
            f"backoff_seconds={self.backoff_seconds})"
        )


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    operation: str = "operation",
    **kwargs: Any
) -> T:
    """
    Retry an async function with linear backoff.

    Args:
        func: Async function to retry
        *args: Positional arguments for func
        config: Retry configuration
        operation: Name used in log messages
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        Last exception if all retries exhausted

    Example:
        ```python
        label = await retry_async(
            classifier.classify_once,
            text,
            config=RetryConfig(max_retries=2, backoff_seconds=1.0),
        )
        ```
    """
    config = config or RetryConfig()

    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except config.retry_on as e:
            retry_index = attempt + 1
            logger.warning(f"Error during {operation} (attempt {retry_index}): {e!r}")

            if attempt >= config.max_retries:
                logger.error(f"Max retries reached for {operation}")
                raise

            delay = config.calculate_delay(retry_index)
            logger.debug(f"Waiting {delay:.2f}s before retrying {operation}")
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("Retry logic error")
