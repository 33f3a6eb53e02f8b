"""
Retry with exponential backoff.

Thin policy object over tenacity. Delay before retry ``k`` (0-indexed)
is ``initial_delay_s * backoff_multiplier ** k``; with the defaults the
waits are 1s, 2s, 4s for three retries.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from scanlyf.domain.shared.errors import ServiceConnectionError, ServiceTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def is_transient_error(error: BaseException) -> bool:
    """
    Default retry predicate: transient network errors only.

    Timeouts, refused/dropped connections and upstream 5xx responses are
    retried; validation, authentication, rate limit and every other error
    are not.
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(
        error,
        (
            httpx.TransportError,
            asyncio.TimeoutError,
            ConnectionError,
            ServiceTimeoutError,
            ServiceConnectionError,
        ),
    )


class RetryPolicy:
    """
    Retry-with-backoff policy.

    Non-retryable errors and exhaustion re-raise the last error unchanged.

    Args:
        max_retries: Retries after the first attempt (default 3)
        initial_delay_s: Delay before the first retry (default 1.0)
        backoff_multiplier: Growth factor between delays (default 2)
        should_retry: Predicate deciding whether an error is retryable
        sleep: Awaitable sleep (injected in tests to record delays)

    Example:
        >>> policy = RetryPolicy(max_retries=3)
        >>> product = await policy.run(client.lookup_barcode, barcode)
    """

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay_s: float = 1.0,
        backoff_multiplier: float = 2.0,
        should_retry: Callable[[BaseException], bool] = is_transient_error,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0: {max_retries}")
        self.max_retries = max_retries
        self.initial_delay_s = initial_delay_s
        self.backoff_multiplier = backoff_multiplier
        self.should_retry = should_retry
        self._sleep = sleep or asyncio.sleep

    def delay_for(self, retry_index: int) -> float:
        """Delay before retry ``retry_index`` (0-indexed)."""
        return self.initial_delay_s * self.backoff_multiplier**retry_index

    def _log_retry(self, state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "Retrying after transient error",
            attempt=state.attempt_number,
            max_attempts=self.max_retries + 1,
            wait_s=state.next_action.sleep if state.next_action else None,
            error=str(error),
            error_class=type(error).__name__,
        )

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Call ``func`` under the policy."""
        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.initial_delay_s,
                exp_base=self.backoff_multiplier,
                min=0,
            ),
            retry=retry_if_exception(self.should_retry),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await func(*args, **kwargs)
        raise AssertionError("unreachable: tenacity re-raises on exhaustion")
