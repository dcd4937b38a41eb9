"""
Bounded retry for record store access

- Exponential backoff with jitter to prevent thundering herd
- Only transport-level failures are retried (dropped connections, timeouts)
- Engine validation errors propagate immediately
- Exhausted retries surface as TransientStoreError
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from shipping_engine.core.config import settings
from shipping_engine.core.exceptions import ShippingEngineError, TransientStoreError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    OperationalError,
    InterfaceError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    base_delay: float = 0.2           # Base delay in seconds
    max_delay: float = 2.0            # Maximum delay cap
    exponential_base: float = 2.0     # Exponential backoff multiplier
    jitter_factor: float = 0.5        # Random jitter (0-1)

    @classmethod
    def from_settings(cls) -> "RetryConfig":
        return cls(
            max_attempts=settings.STORE_RETRY_MAX_ATTEMPTS,
            base_delay=settings.STORE_RETRY_BASE_DELAY,
            max_delay=settings.STORE_RETRY_MAX_DELAY,
        )


def is_transient_error(exc: BaseException) -> bool:
    """Return True for store failures worth retrying."""
    if isinstance(exc, ShippingEngineError):
        # Engine errors are outcomes, not transport failures
        return isinstance(exc, TransientStoreError)
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, TRANSIENT_ERRORS)


def calculate_backoff(config: RetryConfig, attempt: int) -> float:
    """
    Calculate delay with exponential backoff and jitter.

    Formula: min(base * (exp_base ^ attempt) + jitter, max_delay)
    """
    delay = config.base_delay * (config.exponential_base ** attempt)

    # Add random jitter (±jitter_factor of the delay)
    jitter = delay * config.jitter_factor * (2 * random.random() - 1)
    delay += jitter

    return max(0.0, min(delay, config.max_delay))


async def retry_async(
    operation: Callable[[], Awaitable[Any]],
    *,
    operation_name: str,
    config: Optional[RetryConfig] = None,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    on_retry: Optional[Callable[[int, BaseException], Awaitable[None]]] = None,
) -> Any:
    """
    Run an async operation with bounded retries on transient failures.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        operation_name: Label used in logs and in TransientStoreError
        config: Retry tuning (defaults from settings)
        is_retryable: Predicate deciding whether a failure may be retried
        on_retry: Optional async hook run before each retry (e.g. session rollback)

    Raises:
        TransientStoreError: When every attempt failed with a retryable error
        Exception: Any non-retryable error, unchanged
    """
    cfg = config or RetryConfig.from_settings()
    attempts = max(1, cfg.max_attempts)
    last_error: Optional[BaseException] = None

    for attempt in range(attempts):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            last_error = e

            if attempt == attempts - 1:
                break

            delay = calculate_backoff(cfg, attempt)
            logger.warning(
                f"[STORE_RETRY] {operation_name} failed ({type(e).__name__}: {e}), "
                f"retry {attempt + 1}/{attempts - 1} in {delay:.2f}s"
            )
            if on_retry:
                await on_retry(attempt + 1, e)
            await asyncio.sleep(delay)

    logger.error(f"[STORE_RETRY] {operation_name} failed after {attempts} attempts: {last_error}")
    raise TransientStoreError(
        message=f"Record store unavailable during {operation_name}",
        operation=operation_name,
        attempts=attempts,
    ) from last_error
