"""
Per-dependency circuit breakers.

One ``circuitbreaker.CircuitBreaker`` per named external dependency,
owned by a registry instance instead of the library's global monitor.

States:
- closed: calls pass, consecutive failures are counted
- open: calls fail immediately until the reset timeout elapses
- half_open: one trial call passes; success closes, failure re-opens
"""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Set, TypeVar

import structlog
from circuitbreaker import STATE_CLOSED, STATE_HALF_OPEN, STATE_OPEN, CircuitBreaker
from pydantic import BaseModel, ConfigDict

from scanlyf.domain.shared.errors import CircuitOpenError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitStatus(str, Enum):
    CLOSED = STATE_CLOSED
    OPEN = STATE_OPEN
    HALF_OPEN = STATE_HALF_OPEN


class CircuitState(BaseModel):
    """Snapshot of one dependency's breaker."""

    model_config = ConfigDict(frozen=True)

    name: str
    state: CircuitStatus
    failure_count: int
    last_failure_at: Optional[float] = None


class CircuitBreakerRegistry:
    """
    Registry of named circuit breakers.

    Example:
        >>> registry = CircuitBreakerRegistry(failure_threshold=5, reset_timeout_s=30)
        >>> await registry.call("openfoodfacts", client.lookup_barcode, barcode)
        >>> registry.state("openfoodfacts").state
        <CircuitStatus.CLOSED: 'closed'>
    """

    def __init__(self, failure_threshold: int = 5, reset_timeout_s: float = 30.0) -> None:
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1: {failure_threshold}")
        if reset_timeout_s <= 0:
            raise ValueError(f"reset_timeout_s must be positive: {reset_timeout_s}")
        self.failure_threshold = failure_threshold
        self.reset_timeout_s = reset_timeout_s
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._last_failure_at: Dict[str, float] = {}
        self._trials: Set[str] = set()
        self._lock = threading.Lock()

    def get(self, name: str) -> CircuitBreaker:
        """Breaker for ``name``, created on first use."""
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    failure_threshold=self.failure_threshold,
                    recovery_timeout=self.reset_timeout_s,
                    name=name,
                )
                self._breakers[name] = breaker
            return breaker

    def state(self, name: str) -> CircuitState:
        breaker = self.get(name)
        return CircuitState(
            name=name,
            state=CircuitStatus(breaker.state),
            failure_count=breaker.failure_count,
            last_failure_at=self._last_failure_at.get(name),
        )

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._breakers)

    def _enter(self, name: str, breaker: CircuitBreaker) -> bool:
        """Admit a call. Returns True when it is the half-open trial."""
        with self._lock:
            state = breaker.state
            if state == STATE_OPEN or (state == STATE_HALF_OPEN and name in self._trials):
                raise CircuitOpenError(
                    f"Circuit '{name}' is open; retry in {max(breaker.open_remaining, 0)}s",
                    service=name,
                )
            if state == STATE_HALF_OPEN:
                self._trials.add(name)
                return True
            return False

    async def call(
        self, name: str, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """
        Call ``func`` through the breaker for ``name``.

        Raises:
            CircuitOpenError: Breaker open, ``func`` not called
        """
        breaker = self.get(name)
        trial = self._enter(name, breaker)
        was_closed = not trial
        try:
            with breaker:
                return await func(*args, **kwargs)
        except Exception:
            self._last_failure_at[name] = time.time()
            if breaker.state == STATE_OPEN:
                logger.error(
                    "Circuit opened" if was_closed else "Circuit re-opened after trial",
                    circuit=name,
                    failure_count=breaker.failure_count,
                    reset_timeout_s=self.reset_timeout_s,
                )
            raise
        finally:
            if trial:
                with self._lock:
                    self._trials.discard(name)
                if breaker.closed:
                    logger.info("Circuit closed after successful trial", circuit=name)
