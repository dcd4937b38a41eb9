"""
Tests for bounded store retry.
"""
import pytest
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import OperationalError

from shipping_engine.core.exceptions import (
    InvalidTransitionError,
    RestrictionViolationError,
    TransientStoreError,
)
from shipping_engine.core.retry import (
    RetryConfig,
    calculate_backoff,
    is_transient_error,
    retry_async,
)

FAST = RetryConfig(max_attempts=3, base_delay=0.0, max_delay=0.0)


def db_down():
    return OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


class TestIsTransientError:
    """Test retry eligibility."""

    def test_transport_errors(self):
        assert is_transient_error(db_down())
        assert is_transient_error(ConnectionError())
        assert is_transient_error(TimeoutError())

    def test_validation_errors_not_retried(self):
        assert not is_transient_error(RestrictionViolationError("too heavy", reasons=["weight"]))
        assert not is_transient_error(InvalidTransitionError("no", "DELIVERED", "PENDING"))

    def test_programming_errors_not_retried(self):
        assert not is_transient_error(ValueError("bad"))
        assert not is_transient_error(KeyError("x"))


class TestCalculateBackoff:
    """Test exponential backoff with jitter."""

    def test_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=2.0)
        for attempt in range(6):
            assert 0.0 <= calculate_backoff(config, attempt) <= 2.0

    def test_grows_without_jitter(self):
        config = RetryConfig(base_delay=0.1, max_delay=10.0, jitter_factor=0.0)
        assert calculate_backoff(config, 0) == pytest.approx(0.1)
        assert calculate_backoff(config, 2) == pytest.approx(0.4)


class TestRetryAsync:
    """Test the retry loop."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        operation = AsyncMock(return_value="ok")

        assert await retry_async(operation, operation_name="op", config=FAST) == "ok"
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self):
        operation = AsyncMock(side_effect=[db_down(), "ok"])
        on_retry = AsyncMock()

        result = await retry_async(operation, operation_name="op", config=FAST, on_retry=on_retry)

        assert result == "ok"
        assert operation.call_count == 2
        on_retry.assert_awaited_once()
        assert on_retry.call_args[0][0] == 1

    @pytest.mark.asyncio
    async def test_exhaustion_raises_transient_store_error(self):
        operation = AsyncMock(side_effect=db_down())

        with pytest.raises(TransientStoreError) as exc_info:
            await retry_async(operation, operation_name="list_active_zones", config=FAST)

        assert operation.call_count == 3
        assert exc_info.value.details == {"operation": "list_active_zones", "attempts": 3}
        assert isinstance(exc_info.value.__cause__, OperationalError)

    @pytest.mark.asyncio
    async def test_validation_error_not_retried(self):
        error = RestrictionViolationError("too heavy", reasons=["weight"])
        operation = AsyncMock(side_effect=error)

        with pytest.raises(RestrictionViolationError):
            await retry_async(operation, operation_name="op", config=FAST)

        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self):
        operation = AsyncMock(side_effect=[db_down(), db_down(), "ok"])
        config = RetryConfig(max_attempts=3, base_delay=0.5, max_delay=1.0, jitter_factor=0.0)

        with patch("shipping_engine.core.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await retry_async(operation, operation_name="op", config=config)

        delays = [call.args[0] for call in mock_sleep.await_args_list]
        assert delays == [pytest.approx(0.5), pytest.approx(1.0)]
