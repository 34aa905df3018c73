"""Retry with exponential backoff for network-bound calls.

Only the two network stages use this: content export downloads and
language model requests. Callers choose which exception types are transient.
"""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_BACKOFF_SECONDS = 30.0


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before retry number ``attempt`` (1-based): base * 2^(attempt-1), capped."""
    return min(base_delay * (2 ** (attempt - 1)), MAX_BACKOFF_SECONDS)


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    operation_name: str = "operation",
) -> T:
    """Run ``operation``, retrying transient failures with exponential backoff.

    Args:
        operation: Zero-argument callable performing one attempt.
        max_attempts: Total attempts including the first (values below 1 mean 1).
        base_delay: Seconds to wait before the first retry.
        retry_on: Exception types that trigger a retry. Anything else
            propagates immediately.
        operation_name: Label used in log messages.

    Returns:
        The operation's return value.

    Raises:
        The last exception raised by ``operation`` once attempts run out, or
        the first non-retryable exception.
    """
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except retry_on as exc:
            if attempt >= attempts:
                logger.warning("%s failed after %d attempts: %s", operation_name, attempt, exc)
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.info(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                operation_name,
                attempt,
                attempts,
                delay,
                exc,
            )
            time.sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{operation_name} exhausted retries")
