"""Unit tests for ResilientCaller (breaker + timeout + retry)."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from scanlyf.domain.shared.errors import (
    AuthenticationError,
    CircuitOpenError,
    ExternalAPIError,
    RetryExhaustedError,
    ServiceConnectionError,
    ServiceTimeoutError,
    ValidationError,
)
from scanlyf.infrastructure.resilience.circuit_breaker import (
    CircuitBreakerRegistry,
    CircuitStatus,
)
from scanlyf.infrastructure.resilience.guard import ResilientCaller
from scanlyf.infrastructure.resilience.retry import RetryPolicy


async def _no_sleep(_seconds: float) -> None:
    return None


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://vision.googleapis.com/v1/images:annotate")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


def _caller(threshold: int = 5, max_retries: int = 3, timeout_s: float = 5.0) -> ResilientCaller:
    return ResilientCaller(
        breakers=CircuitBreakerRegistry(failure_threshold=threshold, reset_timeout_s=30),
        retry_policy=RetryPolicy(max_retries=max_retries, sleep=_no_sleep),
        timeout_s=timeout_s,
    )


@pytest.mark.asyncio
async def test_passes_arguments_and_result() -> None:
    func = AsyncMock(return_value="product")

    result = await _caller().call("openfoodfacts", func, "0123456789012", fields="all")

    assert result == "product"
    func.assert_awaited_once_with("0123456789012", fields="all")


@pytest.mark.asyncio
async def test_hard_timeout_becomes_service_timeout() -> None:
    async def hang() -> None:
        await asyncio.sleep(5)

    with pytest.raises(ServiceTimeoutError) as exc_info:
        await _caller(max_retries=0, timeout_s=0.05).call("google_vision", hang)

    assert exc_info.value.service == "google_vision"
    assert exc_info.value.error_type == "TIMEOUT"


@pytest.mark.asyncio
async def test_per_call_timeout_override() -> None:
    async def slow() -> str:
        await asyncio.sleep(0.2)
        return "late"

    with pytest.raises(ServiceTimeoutError):
        await _caller(timeout_s=10).call("openai_vision", slow, timeout_s=0.05)


@pytest.mark.asyncio
async def test_exhausted_server_errors_become_retry_exhausted() -> None:
    func = AsyncMock(side_effect=_status_error(503))

    with pytest.raises(RetryExhaustedError) as exc_info:
        await _caller(max_retries=2).call("openfoodfacts", func)

    assert func.await_count == 3
    assert isinstance(exc_info.value, ExternalAPIError)
    assert exc_info.value.service == "openfoodfacts"


@pytest.mark.asyncio
async def test_refused_connections_keep_their_type() -> None:
    func = AsyncMock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(ServiceConnectionError) as exc_info:
        await _caller().call("openfoodfacts", func)

    assert func.await_count == 4
    assert exc_info.value.service == "openfoodfacts"


@pytest.mark.asyncio
async def test_auth_errors_are_not_retried() -> None:
    func = AsyncMock(side_effect=_status_error(401))

    with pytest.raises(AuthenticationError):
        await _caller().call("google_vision", func)

    assert func.await_count == 1


@pytest.mark.asyncio
async def test_domain_errors_propagate_unchanged() -> None:
    error = ValidationError("bad payload")
    func = AsyncMock(side_effect=error)

    with pytest.raises(ValidationError) as exc_info:
        await _caller().call("openfoodfacts", func)

    assert exc_info.value is error
    assert func.await_count == 1


@pytest.mark.asyncio
async def test_breaker_counts_one_failure_per_guarded_call() -> None:
    caller = _caller(threshold=2)
    func = AsyncMock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(ServiceConnectionError):
        await caller.call("openfoodfacts", func)
    assert caller.breakers.state("openfoodfacts").failure_count == 1

    with pytest.raises(ServiceConnectionError):
        await caller.call("openfoodfacts", func)
    assert caller.breakers.state("openfoodfacts").state == CircuitStatus.OPEN

    func.reset_mock()
    with pytest.raises(CircuitOpenError):
        await caller.call("openfoodfacts", func)
    func.assert_not_awaited()
