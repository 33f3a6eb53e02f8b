"""
In-memory pending analysis repository.

Keyed by analysis ID; entries expire at ``PendingAnalysis.expires_at``.
Suitable for a single process. A multi-instance deployment needs a shared
store (Redis or similar) behind the same port.
"""

import threading
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog

from scanlyf.domain.meal.confirmation.models import PendingAnalysis
from scanlyf.domain.shared.value_objects import AnalysisId

logger = structlog.get_logger(__name__)


class InMemoryPendingAnalysisRepository:
    """In-memory implementation of IPendingAnalysisRepository."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self._store: Dict[str, PendingAnalysis] = {}
        self._lock = threading.Lock()

    async def save(self, analysis: PendingAnalysis) -> None:
        """Store pending analysis under its ID.

        Args:
            analysis: Pending analysis to store (replaces existing entry)
        """
        with self._lock:
            self._store[analysis.analysis_id.value] = analysis
        logger.debug(
            "Pending analysis saved",
            analysis_id=analysis.analysis_id.value,
            state=analysis.state.value,
            items=len(analysis.items),
        )

    async def get(self, analysis_id: AnalysisId) -> Optional[PendingAnalysis]:
        """Get pending analysis.

        Args:
            analysis_id: Analysis identifier

        Returns:
            Pending analysis if found and not expired, None otherwise
        """
        with self._lock:
            analysis = self._store.get(analysis_id.value)
            if analysis is None:
                return None
            if analysis.is_expired(datetime.now(timezone.utc)):
                del self._store[analysis_id.value]
                logger.info("Pending analysis expired", analysis_id=analysis_id.value)
                return None
            return analysis

    async def take(self, analysis_id: AnalysisId) -> Optional[PendingAnalysis]:
        """Remove and return a pending analysis.

        Only one caller can take a given analysis; later callers get None.
        """
        with self._lock:
            analysis = self._store.pop(analysis_id.value, None)
        if analysis is None:
            return None
        if analysis.is_expired(datetime.now(timezone.utc)):
            logger.info("Pending analysis expired", analysis_id=analysis_id.value)
            return None
        return analysis

    async def delete(self, analysis_id: AnalysisId) -> bool:
        """Drop pending analysis.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            return self._store.pop(analysis_id.value, None) is not None

    async def purge_expired(self) -> int:
        """Remove every expired entry. Returns count removed."""
        now = datetime.now(timezone.utc)
        with self._lock:
            expired = [k for k, a in self._store.items() if a.is_expired(now)]
            for key in expired:
                del self._store[key]
        return len(expired)

    def count(self) -> int:
        """Number of stored entries (including not yet purged expired ones)."""
        with self._lock:
            return len(self._store)
