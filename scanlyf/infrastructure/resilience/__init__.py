"""Retry, circuit breaking, timeouts and caching for external calls."""

from scanlyf.infrastructure.resilience.cache import TTLCache
from scanlyf.infrastructure.resilience.circuit_breaker import (
    CircuitBreakerRegistry,
    CircuitState,
    CircuitStatus,
)
from scanlyf.infrastructure.resilience.guard import ResilientCaller
from scanlyf.infrastructure.resilience.retry import RetryPolicy, is_transient_error

__all__ = [
    "CircuitBreakerRegistry",
    "CircuitState",
    "CircuitStatus",
    "ResilientCaller",
    "RetryPolicy",
    "TTLCache",
    "is_transient_error",
]
