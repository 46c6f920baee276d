"""Tests for retry with backoff."""

import pytest

from guardit.core.retry import RetryConfig, retry_with_backoff

pytestmark = pytest.mark.asyncio

FAST = RetryConfig(max_attempts=3, backoff_base=0.001, jitter=False)


class TestRetryWithBackoff:
    async def test_returns_first_success(self):
        async def ok():
            return 42

        assert await retry_with_backoff(ok, FAST) == 42

    async def test_retries_until_success(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("not yet")
            return "up"

        assert await retry_with_backoff(flaky, FAST, "db_connect") == "up"
        assert len(attempts) == 3

    async def test_raises_last_error_when_exhausted(self):
        async def down():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError, match="down"):
            await retry_with_backoff(down, FAST)

    async def test_non_retryable_error_is_raised_immediately(self):
        attempts = []
        config = RetryConfig(
            max_attempts=3, backoff_base=0.001, retryable_exceptions=(ConnectionError,)
        )

        async def bad():
            attempts.append(1)
            raise ValueError("bad config")

        with pytest.raises(ValueError):
            await retry_with_backoff(bad, config)
        assert len(attempts) == 1


class TestRetryConfig:
    async def test_delays_double_up_to_cap(self):
        config = RetryConfig(backoff_base=1.0, backoff_max=5.0, jitter=False)
        assert [config.delay_for(i) for i in range(4)] == [1.0, 2.0, 4.0, 5.0]

    async def test_jitter_stays_within_bounds(self):
        config = RetryConfig(backoff_base=2.0, jitter=True)
        for _ in range(20):
            assert 1.0 <= config.delay_for(0) <= 3.0

    async def test_store_init_policy_from_settings(self, test_settings):
        settings = test_settings.model_copy(
            update={"store_init_attempts": 0, "store_init_backoff_seconds": 0.5}
        )

        config = RetryConfig.for_store_init(settings)

        assert config.max_attempts == 1
        assert config.backoff_base == 0.5
