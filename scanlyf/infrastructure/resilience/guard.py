"""
Resilient call guard.

Composes the resilience primitives around one external call:

    circuit breaker -> hard timeout -> retry with backoff -> collaborator

A guarded call that times out, exhausts its retries or hits an open
circuit surfaces as an ExternalAPIError subtype. Domain errors raised by
the collaborator (validation, authentication, rate limit) propagate
unchanged after being counted by the breaker.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from scanlyf.domain.shared.errors import (
    AuthenticationError,
    ExternalAPIError,
    RetryExhaustedError,
    ScanlyfError,
    ServiceTimeoutError,
    classify_error,
)
from scanlyf.infrastructure.resilience.circuit_breaker import CircuitBreakerRegistry
from scanlyf.infrastructure.resilience.retry import RetryPolicy

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_CALL_TIMEOUT_S = 60.0


class ResilientCaller:
    """
    Runs collaborator calls under breaker, timeout and retry.

    Example:
        >>> caller = ResilientCaller(CircuitBreakerRegistry(), RetryPolicy())
        >>> record = await caller.call("openfoodfacts", off.lookup_barcode, barcode)
    """

    def __init__(
        self,
        breakers: Optional[CircuitBreakerRegistry] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_s: float = DEFAULT_CALL_TIMEOUT_S,
    ) -> None:
        self.breakers = breakers or CircuitBreakerRegistry()
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout_s = timeout_s

    async def call(
        self,
        name: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        timeout_s: Optional[float] = None,
        **kwargs: Any,
    ) -> T:
        """
        Call ``func(*args, **kwargs)`` as dependency ``name``.

        Raises:
            CircuitOpenError: Breaker open, ``func`` not called
            ServiceTimeoutError: Hard timeout elapsed
            RetryExhaustedError: Last transient error after all retries
            ScanlyfError: Domain error raised by the collaborator
        """
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        try:
            return await self.breakers.call(name, self._attempt, name, func, timeout, args, kwargs)
        except ScanlyfError:
            raise
        except Exception as e:
            error = self._translate(name, e)
            logger.warning(
                "External call failed",
                dependency=name,
                error=str(e),
                error_type=error.error_type,
            )
            raise error from e

    def _translate(self, name: str, error: Exception) -> ScanlyfError:
        classified = classify_error(error)
        if isinstance(classified, AuthenticationError):
            return classified
        if isinstance(classified, ExternalAPIError) and type(classified) is not ExternalAPIError:
            classified.service = name
            return classified
        if self.retry_policy.should_retry(error):
            return RetryExhaustedError(
                f"{name}: retries exhausted ({type(error).__name__}: {error})", service=name
            )
        return ExternalAPIError(f"{name}: {type(error).__name__}: {error}", service=name)

    async def _attempt(
        self,
        name: str,
        func: Callable[..., Awaitable[T]],
        timeout: float,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> T:
        try:
            return await asyncio.wait_for(
                self.retry_policy.run(func, *args, **kwargs), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            logger.error("External call timed out", dependency=name, timeout_s=timeout)
            raise ServiceTimeoutError(
                f"{name}: no response within {timeout}s", service=name
            ) from e
