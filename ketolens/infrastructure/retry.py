"""
Retry executor.

Re-invokes a fallible async operation with exponential backoff, built on
tenacity. Attempts are strictly sequential.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from ketolens.domain.shared.errors import (
    AnalysisFormatError,
    BarcodeNotFoundError,
    InvalidInputError,
    TransientNetworkError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, BaseException], None]

_RETRYABLE_MARKERS = ("network", "timeout", "fetch failed", "500", "502", "503", "504")


def is_retryable_error(error: BaseException) -> bool:
    """
    Decide whether an error is worth another attempt.

    Validation and format errors are never retried. Transient network
    errors and timeouts are. Anything else is retried only when its
    message mentions a network problem or a 5xx status.

    Example:
        >>> is_retryable_error(TransientNetworkError("OFF timeout"))
        True
        >>> is_retryable_error(AnalysisFormatError("not JSON"))
        False
    """
    if isinstance(error, (AnalysisFormatError, InvalidInputError, BarcodeNotFoundError)):
        return False
    if isinstance(error, (TransientNetworkError, asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay_ms: int = 1000,
    backoff: bool = True,
    on_retry: Optional[OnRetry] = None,
    retry_on: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation, retrying on failure.

    Delay before attempt n+1 is ``delay_ms * 2^(n-1)`` with backoff,
    ``delay_ms`` without. No jitter.

    Args:
        operation: Zero-argument coroutine factory
        max_retries: Total number of attempts (>= 1)
        delay_ms: Base delay in milliseconds
        backoff: Double the delay after every failure
        on_retry: Called with (attempt, error) after each non-final failure
        retry_on: Predicate; errors for which it returns False are raised
            immediately. Defaults to retrying every Exception.
        sleep: Sleep coroutine (seconds)

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or the first error
        rejected by ``retry_on``

    Example:
        >>> result = await with_retry(lambda: client.fetch(barcode), max_retries=3)
    """
    if max_retries < 1:
        raise ValueError(f"max_retries must be >= 1, got {max_retries}")
    if delay_ms < 0:
        raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")

    delay_s = delay_ms / 1000.0
    wait = wait_exponential(multiplier=delay_s, exp_base=2) if backoff else wait_fixed(delay_s)
    retry = (
        retry_if_exception(retry_on)
        if retry_on is not None
        else retry_if_exception_type(Exception)
    )

    def _before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "Operation failed, retrying",
            attempt=state.attempt_number,
            max_attempts=max_retries,
            next_delay_ms=int((state.next_action.sleep if state.next_action else 0) * 1000),
            error=str(error),
        )
        if on_retry is not None and error is not None:
            on_retry(state.attempt_number, error)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait,
        retry=retry,
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )

    async def _call() -> T:
        return await operation()

    return await retrying(_call)
