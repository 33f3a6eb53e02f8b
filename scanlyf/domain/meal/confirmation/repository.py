"""
Pending analysis repository port.

Keyed, TTL-expiring storage for analyses awaiting confirmation.
"""

from typing import Optional, Protocol, runtime_checkable

from scanlyf.domain.meal.confirmation.models import PendingAnalysis
from scanlyf.domain.shared.value_objects import AnalysisId


@runtime_checkable
class IPendingAnalysisRepository(Protocol):
    """
    Port for pending analysis storage.

    Implementations must treat expired entries as absent.
    """

    async def save(self, analysis: PendingAnalysis) -> None:
        """Store (or replace) a pending analysis under its ID."""
        ...

    async def get(self, analysis_id: AnalysisId) -> Optional[PendingAnalysis]:
        """Get pending analysis, or None if unknown or expired."""
        ...

    async def take(self, analysis_id: AnalysisId) -> Optional[PendingAnalysis]:
        """Atomically get and remove a pending analysis (None if unknown or expired)."""
        ...

    async def delete(self, analysis_id: AnalysisId) -> bool:
        """Drop pending analysis. Returns True if something was removed."""
        ...
