"""
Domain exceptions.

Typed exceptions for explicit error handling.
Every error carries a stable ``error_type`` used for logging and for the
degraded responses built by the analysis orchestrator.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class ScanlyfError(Exception):
    """
    Base exception for all scanlyf errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    error_type = "BUSINESS_LOGIC_ERROR"


# ═══════════════════════════════════════════════════════════
# INPUT EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(ScanlyfError):
    """
    Input validation failed.

    Raised when:
    - Barcode does not match 8-13 digits
    - Image payload cannot be decoded
    - Empty text input

    Never retried.

    Example:
        >>> raise ValidationError("Invalid barcode format: 12ab")
    """

    error_type = "VALIDATION_ERROR"


class AuthenticationError(ScanlyfError):
    """
    Credentials rejected by an external service.

    Raised when:
    - Vision API key is invalid (HTTP 401/403)
    - OpenAI key is revoked
    """

    error_type = "AUTHENTICATION_ERROR"


class NotFoundError(ScanlyfError):
    """
    Resource not found.

    Raised when:
    - Pending analysis ID doesn't exist
    - Pending analysis TTL expired
    - Pending analysis was cancelled

    Example:
        >>> raise NotFoundError("Analysis analysis_abc123abc123 not found")
    """

    error_type = "NOT_FOUND"


class BusinessLogicError(ScanlyfError):
    """
    Catch-all for rule violations inside the pipeline.

    Raised when:
    - Unsupported input type
    - Confirmation left no items to analyze
    """

    error_type = "BUSINESS_LOGIC_ERROR"


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalAPIError(ScanlyfError):
    """
    External collaborator failed.

    Raised when:
    - Retries against a dependency are exhausted
    - Circuit breaker for a dependency is open
    - Call exceeded its hard timeout

    Attributes:
        service: Name of the dependency (circuit name)
    """

    error_type = "EXTERNAL_API_ERROR"

    def __init__(self, message: str, service: Optional[str] = None) -> None:
        super().__init__(message)
        self.service = service


class ServiceTimeoutError(ExternalAPIError):
    """Call to an external service exceeded its timeout."""

    error_type = "TIMEOUT"


class ServiceConnectionError(ExternalAPIError):
    """Connection to an external service was refused or dropped."""

    error_type = "CONNECTION_REFUSED"


class CircuitOpenError(ExternalAPIError):
    """
    Circuit breaker is open.

    The dependency was not called. Callers must not retry.
    """

    error_type = "CIRCUIT_OPEN"


class RetryExhaustedError(ExternalAPIError):
    """All retry attempts against a dependency failed."""

    error_type = "RETRY_EXHAUSTED"


class RateLimitError(ExternalAPIError):
    """
    External service rejected the call with HTTP 429.

    Example:
        >>> raise RateLimitError("Vision quota exceeded", service="google_vision")
    """

    error_type = "RATE_LIMIT"


# ═══════════════════════════════════════════════════════════
# CLASSIFICATION
# ═══════════════════════════════════════════════════════════


def classify_error(error: BaseException) -> ScanlyfError:
    """
    Map any exception onto the error taxonomy.

    Domain errors are returned unchanged; library errors (httpx,
    asyncio, builtin connection errors) are wrapped in the matching
    domain type with the original message preserved.

    Args:
        error: Exception raised somewhere in the pipeline

    Returns:
        ScanlyfError instance suitable for logging and responses

    Example:
        >>> classify_error(asyncio.TimeoutError()).error_type
        'TIMEOUT'
    """
    if isinstance(error, ScanlyfError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status in (401, 403):
            return AuthenticationError(str(error))
        if status == 429:
            return RateLimitError(str(error))
        return ExternalAPIError(str(error))

    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ServiceTimeoutError(str(error) or "Operation timed out")

    if isinstance(error, (ConnectionError, httpx.ConnectError)):
        return ServiceConnectionError(str(error) or "Connection refused")

    if isinstance(error, httpx.HTTPError):
        return ExternalAPIError(str(error))

    return BusinessLogicError(str(error) or type(error).__name__)
