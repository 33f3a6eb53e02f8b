"""Pending analysis storage."""

from scanlyf.infrastructure.persistence.in_memory_pending_repository import (
    InMemoryPendingAnalysisRepository,
)

__all__ = ["InMemoryPendingAnalysisRepository"]
