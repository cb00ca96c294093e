"""Retry utilities with exponential backoff."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    ``max_retries`` counts attempts beyond the first one, so a value of 3
    allows up to four calls in total.
    """

    max_retries: int = 3
    base_delay: float = 0.5  # Base delay in seconds
    max_delay: float = 10.0  # Maximum delay in seconds
    exponential_base: float = 2.0  # Exponential backoff multiplier
    jitter: bool = True  # Add random jitter to delays
    # Network-level failures; httpx timeouts are TransportErrors too
    retryable_exceptions: tuple = (
        httpx.TransportError,
        ConnectionError,
        TimeoutError,
    )
    # Retry HTTPStatusError only for 5xx; 4xx is never retried
    retry_on_server_errors: bool = True

    @classmethod
    def from_settings(cls, max_retries: int | None = None, config=None) -> "RetryConfig":
        """Build from HTTP_MAX_RETRIES and the RETRY_* delays; ``max_retries`` overrides the count."""
        if config is None:
            from gateway.core.config import settings as config

        return cls(
            max_retries=config.http_max_retries if max_retries is None else max_retries,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
        )


def is_retryable(exc: BaseException, config: RetryConfig) -> bool:
    """Decide whether a failed attempt should be retried."""
    if isinstance(exc, httpx.HTTPStatusError):
        return config.retry_on_server_errors and exc.response.status_code >= 500
    return isinstance(exc, config.retryable_exceptions)


def calculate_backoff_delay(
    attempt: int,
    config: RetryConfig,
) -> float:
    """Calculate delay for exponential backoff with optional jitter."""
    delay = config.base_delay * (config.exponential_base**attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        # 0.5 to 1.5 times the delay
        delay = delay * (0.5 + random.random())

    return delay


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    operation: str = "operation",
    **kwargs: Any,
) -> T:
    """Execute an async function with retry logic.

    Args:
        func: Async function to execute
        *args: Positional arguments for func
        config: Retry configuration
        operation: Label used in retry log lines
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        The last exception if it is not retryable or all retries fail
    """
    config = config or RetryConfig()

    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not is_retryable(e, config) or attempt >= config.max_retries:
                if attempt > 0:
                    logger.warning(f"{operation} failed after {attempt + 1} attempts: {e}")
                raise

            delay = calculate_backoff_delay(attempt, config)
            logger.info(
                f"{operation}: retry {attempt + 1}/{config.max_retries} "
                f"after {delay:.2f}s delay: {e}"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry logic error")
