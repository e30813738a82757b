"""
Unit tests for the retry executor.

Sleep is injected, so delays are asserted without waiting.
"""

import asyncio
from typing import List, Tuple
from unittest.mock import AsyncMock

import pytest

from ketolens.domain.shared.errors import (
    AnalysisFormatError,
    ExternalServiceError,
    InvalidInputError,
    TransientNetworkError,
)
from ketolens.infrastructure.retry import is_retryable_error, with_retry


def _flaky(failures: int, value: str = "ok") -> AsyncMock:
    """Operation failing `failures` times before returning `value`."""
    effects: list = [TransientNetworkError(f"timeout {i}") for i in range(failures)]
    effects.append(value)
    return AsyncMock(side_effect=effects)


class TestWithRetry:
    """Test attempts, delays and observer calls."""

    @pytest.mark.parametrize("failures", [0, 1, 2])
    async def test_succeeds_after_k_failures(self, failures: int) -> None:
        operation = _flaky(failures)
        sleep = AsyncMock()
        observed: List[Tuple[int, BaseException]] = []

        result = await with_retry(
            operation,
            max_retries=3,
            delay_ms=100,
            on_retry=lambda attempt, error: observed.append((attempt, error)),
            sleep=sleep,
        )

        assert result == "ok"
        assert operation.await_count == failures + 1
        assert len(observed) == failures
        assert [attempt for attempt, _ in observed] == list(range(1, failures + 1))

    async def test_exponential_delays(self) -> None:
        """Delay before attempt n+1 is delay * 2^(n-1)."""
        operation = AsyncMock(side_effect=TransientNetworkError("down"))
        sleep = AsyncMock()

        with pytest.raises(TransientNetworkError):
            await with_retry(operation, max_retries=4, delay_ms=100, sleep=sleep)

        assert operation.await_count == 4
        delays = [c.args[0] for c in sleep.await_args_list]
        assert delays == pytest.approx([0.1, 0.2, 0.4])

    async def test_fixed_delays(self) -> None:
        operation = AsyncMock(side_effect=TransientNetworkError("down"))
        sleep = AsyncMock()

        with pytest.raises(TransientNetworkError):
            await with_retry(operation, max_retries=3, delay_ms=250, backoff=False, sleep=sleep)

        delays = [c.args[0] for c in sleep.await_args_list]
        assert delays == pytest.approx([0.25, 0.25])

    async def test_last_error_is_raised(self) -> None:
        operation = AsyncMock(
            side_effect=[TransientNetworkError("first"), TransientNetworkError("last")]
        )

        with pytest.raises(TransientNetworkError, match="last"):
            await with_retry(operation, max_retries=2, delay_ms=0, sleep=AsyncMock())

    async def test_single_attempt(self) -> None:
        operation = AsyncMock(side_effect=TransientNetworkError("down"))
        sleep = AsyncMock()

        with pytest.raises(TransientNetworkError):
            await with_retry(operation, max_retries=1, sleep=sleep)

        assert operation.await_count == 1
        sleep.assert_not_awaited()

    async def test_predicate_stops_retrying(self) -> None:
        operation = AsyncMock(side_effect=AnalysisFormatError("not JSON"))
        sleep = AsyncMock()

        with pytest.raises(AnalysisFormatError):
            await with_retry(operation, retry_on=is_retryable_error, sleep=sleep)

        assert operation.await_count == 1
        sleep.assert_not_awaited()

    async def test_lambda_returning_coroutine_is_awaited(self) -> None:
        """Callers pass `lambda: client.fetch(x)`, a sync factory of coroutines."""
        calls: List[int] = []

        async def fetch(barcode: str) -> str:
            calls.append(1)
            if len(calls) < 2:
                raise TransientNetworkError("timeout")
            return f"product {barcode}"

        result = await with_retry(
            lambda: fetch("12345678"), max_retries=3, delay_ms=10, sleep=AsyncMock()
        )

        assert result == "product 12345678"
        assert len(calls) == 2

    @pytest.mark.parametrize("max_retries,delay_ms", [(0, 100), (3, -1)])
    async def test_invalid_arguments(self, max_retries: int, delay_ms: int) -> None:
        with pytest.raises(ValueError):
            await with_retry(AsyncMock(), max_retries=max_retries, delay_ms=delay_ms)


class TestIsRetryableError:
    """Test retryability classification."""

    @pytest.mark.parametrize(
        "error",
        [
            TransientNetworkError("anything"),
            asyncio.TimeoutError(),
            ConnectionResetError(),
            RuntimeError("Network request failed"),
            RuntimeError("fetch failed"),
            ExternalServiceError("OpenAI API failed: 503"),
        ],
    )
    def test_retryable(self, error: BaseException) -> None:
        assert is_retryable_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            AnalysisFormatError("timeout while parsing"),
            InvalidInputError("network image empty"),
            ExternalServiceError("OpenAI API failed: 401"),
            ValueError("bad value"),
        ],
    )
    def test_not_retryable(self, error: BaseException) -> None:
        assert not is_retryable_error(error)
