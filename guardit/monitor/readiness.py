"""Explicit readiness state for the durable store.

Replaces a fixed warm-up delay: initialization runs once in the background,
and ingestion asks ``wait_ready`` whether it may use the store.
"""

import asyncio
import enum
from collections.abc import Awaitable, Callable

from guardit.core.logging import get_logger
from guardit.core.retry import RetryConfig, retry_with_backoff

logger = get_logger(__name__)


class StoreState(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class StoreReadiness:
    """pending -> ready | failed, observable through an asyncio.Event."""

    def __init__(self) -> None:
        self._state = StoreState.PENDING
        self._settled = asyncio.Event()

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == StoreState.READY

    def mark_ready(self) -> None:
        self._state = StoreState.READY
        self._settled.set()

    def mark_failed(self) -> None:
        self._state = StoreState.FAILED
        self._settled.set()

    async def initialize(
        self,
        init_fn: Callable[[], Awaitable[None]],
        retry: RetryConfig | None = None,
    ) -> StoreState:
        """Run ``init_fn`` with retries and settle the state accordingly."""
        try:
            await retry_with_backoff(init_fn, config=retry, operation_name="store_init")
        except Exception as e:
            logger.bind(error=str(e)).error("store_init_failed_degraded_mode")
            self.mark_failed()
        else:
            logger.info("store_ready")
            self.mark_ready()
        return self._state

    async def wait_ready(self, timeout: float | None = None) -> bool:
        """True once ready; False if initialization failed or ``timeout`` elapsed."""
        if self._settled.is_set():
            return self.is_ready
        if timeout is not None and timeout <= 0:
            return False
        try:
            await asyncio.wait_for(self._settled.wait(), timeout)
        except TimeoutError:
            return False
        return self.is_ready
