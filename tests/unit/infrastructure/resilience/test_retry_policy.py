"""Unit tests for RetryPolicy."""

import asyncio

import httpx
import pytest

from scanlyf.domain.shared.errors import ServiceTimeoutError, ValidationError
from scanlyf.infrastructure.resilience.retry import RetryPolicy, is_transient_error


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://world.openfoodfacts.org/api/v2/product/1.json")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class Flaky:
    """Raises ``error`` for the first ``failures`` calls, then returns ``result``."""

    def __init__(self, failures: int, error: Exception, result: str = "ok") -> None:
        self.failures = failures
        self.error = error
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


@pytest.fixture
def delays() -> list[float]:
    return []


@pytest.fixture
def policy(delays: list[float]) -> RetryPolicy:
    async def record(seconds: float) -> None:
        delays.append(seconds)

    return RetryPolicy(max_retries=3, initial_delay_s=1.0, backoff_multiplier=2, sleep=record)


@pytest.mark.asyncio
async def test_exhaustion_reraises_last_error_after_backoff(
    policy: RetryPolicy, delays: list[float]
) -> None:
    func = Flaky(failures=10, error=httpx.ConnectError("refused"))

    with pytest.raises(httpx.ConnectError):
        await policy.run(func)

    assert func.calls == 4
    assert delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_recovers_after_transient_failures(policy: RetryPolicy, delays: list[float]) -> None:
    func = Flaky(failures=2, error=_status_error(503))

    assert await policy.run(func) == "ok"
    assert func.calls == 3
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_non_retryable_error_is_raised_immediately(
    policy: RetryPolicy, delays: list[float]
) -> None:
    func = Flaky(failures=10, error=ValidationError("bad barcode"))

    with pytest.raises(ValidationError):
        await policy.run(func)

    assert func.calls == 1
    assert delays == []


@pytest.mark.asyncio
async def test_zero_retries_means_one_attempt() -> None:
    policy = RetryPolicy(max_retries=0)
    func = Flaky(failures=1, error=httpx.ReadTimeout("slow"))

    with pytest.raises(httpx.ReadTimeout):
        await policy.run(func)

    assert func.calls == 1


@pytest.mark.asyncio
async def test_custom_predicate() -> None:
    async def no_sleep(_seconds: float) -> None:
        return None

    policy = RetryPolicy(max_retries=2, should_retry=lambda e: isinstance(e, KeyError), sleep=no_sleep)
    func = Flaky(failures=1, error=KeyError("items"))

    assert await policy.run(func) == "ok"
    assert func.calls == 2


def test_delay_for() -> None:
    policy = RetryPolicy(initial_delay_s=0.5, backoff_multiplier=3)

    assert [policy.delay_for(k) for k in range(3)] == [0.5, 1.5, 4.5]


def test_negative_retries_rejected() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)


@pytest.mark.parametrize(
    "error, expected",
    [
        (httpx.ConnectError("refused"), True),
        (httpx.ReadTimeout("slow"), True),
        (asyncio.TimeoutError(), True),
        (ConnectionResetError(), True),
        (ServiceTimeoutError("slow", service="x"), True),
        (_status_error(502), True),
        (_status_error(404), False),
        (_status_error(429), False),
        (ValidationError("bad"), False),
        (ValueError("bad"), False),
    ],
)
def test_is_transient_error(error: Exception, expected: bool) -> None:
    assert is_transient_error(error) is expected
