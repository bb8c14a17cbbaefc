"""Retry utilities for disambiguation calls.

Exponential backoff with jitter for transient provider failures. The
defaults are short: a player is waiting on the answer, and the whole
call already runs under the fallback timeout.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from vai.llm.exceptions import ProviderError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts.
        initial_delay: Initial delay in seconds.
        max_delay: Maximum delay between retries.
        exponential_base: Base for exponential backoff.
        jitter: Whether to add random jitter.
    """

    max_retries: int = 1
    initial_delay: float = 0.5
    max_delay: float = 4.0
    exponential_base: float = 2.0
    jitter: bool = True


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """Execute an async call, retrying transient provider failures.

    Rate limits and provider errors flagged ``is_retryable`` (5xx,
    timeouts, connection failures) are retried. Everything else is
    raised immediately.

    Args:
        func: Async function to execute.
        *args: Positional arguments for func.
        config: Retry configuration.
        **kwargs: Keyword arguments for func.

    Returns:
        Result from the first successful call.

    Raises:
        The last exception if all retries fail.

    Example:
        response = await with_retry(
            provider.complete,
            messages=[Message.user(prompt)],
            config=RetryConfig(max_retries=2),
        )
    """
    config = config or RetryConfig()

    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except RateLimitError as e:
            if attempt == config.max_retries:
                raise
            delay = _calculate_delay(attempt, config, e.retry_after)
        except ProviderError as e:
            if not e.is_retryable or attempt == config.max_retries:
                raise
            delay = _calculate_delay(attempt, config)

        logger.warning(
            f"Provider call failed (attempt {attempt + 1}/{config.max_retries + 1}), "
            f"retrying in {delay:.2f}s"
        )
        await asyncio.sleep(delay)

    raise RuntimeError("Max retries exceeded without error")


def retry_after_seconds(error: Exception) -> float | None:
    """Read a Retry-After header from an SDK status error, if present."""
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    try:
        return float(headers.get("retry-after"))
    except (TypeError, ValueError):
        return None


def _calculate_delay(
    attempt: int,
    config: RetryConfig,
    retry_after: float | None = None,
) -> float:
    """Calculate delay for the next retry attempt.

    Args:
        attempt: Current attempt number (0-indexed).
        config: Retry configuration.
        retry_after: Optional server-specified retry delay.

    Returns:
        Delay in seconds.
    """
    delay = min(config.initial_delay * (config.exponential_base ** attempt), config.max_delay)

    if retry_after is not None:
        delay = max(delay, retry_after)

    if config.jitter:
        # Up to 25% extra
        delay += random.uniform(0, delay * 0.25)

    return delay
