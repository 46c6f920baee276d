"""Exponential backoff for async operations.

The monitor uses it to bring up the durable store, which may start after
the API process does. Delays grow as ``base * 2**attempt`` up to ``max``.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from guardit.config import Settings
from guardit.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """How often and how patiently to retry."""

    max_attempts: int = 3
    backoff_base: float = 1.0
    backoff_max: float = 30.0
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = field(default_factory=lambda: (Exception,))

    @classmethod
    def for_store_init(cls, settings: Settings) -> "RetryConfig":
        return cls(
            max_attempts=max(1, settings.store_init_attempts),
            backoff_base=settings.store_init_backoff_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep after the given zero-based failed attempt."""
        delay = min(self.backoff_base * (2**attempt), self.backoff_max)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
) -> T:
    """
    Await ``fn()`` until it succeeds or ``config.max_attempts`` is used up.

    Exceptions outside ``retryable_exceptions`` propagate at once; the last
    retryable one is re-raised when attempts run out.
    """
    config = config or RetryConfig()
    attempts = max(1, config.max_attempts)

    for attempt in range(attempts - 1):
        try:
            return await fn()
        except config.retryable_exceptions as e:
            delay = config.delay_for(attempt)
            logger.bind(
                operation=operation_name,
                attempt=attempt + 1,
                max_attempts=attempts,
                delay_seconds=round(delay, 2),
                error=str(e),
            ).warning("retry_attempt")
            await asyncio.sleep(delay)

    try:
        return await fn()
    except config.retryable_exceptions as e:
        logger.bind(operation=operation_name, attempts=attempts, error=str(e)).error(
            "retry_exhausted"
        )
        raise
