"""
Confirmation domain models.

A PendingAnalysis holds an ambiguous detection while the user confirms or
corrects it. Items keep detection order: their positions are the index
space referenced by corrections.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from scanlyf.domain.meal.detection.models import DetectedFoodItem
from scanlyf.domain.shared.errors import BusinessLogicError
from scanlyf.domain.shared.value_objects import AnalysisId

DEFAULT_PENDING_TTL = timedelta(minutes=15)


class ConfirmationState(str, Enum):
    """Lifecycle of a pending analysis."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CORRECTED = "corrected"
    FINALIZED = "finalized"


ALLOWED_TRANSITIONS = {
    ConfirmationState.PENDING: {ConfirmationState.CONFIRMED, ConfirmationState.CORRECTED},
    ConfirmationState.CONFIRMED: {ConfirmationState.FINALIZED},
    ConfirmationState.CORRECTED: {ConfirmationState.FINALIZED},
    ConfirmationState.FINALIZED: set(),
}


class PendingAnalysis(BaseModel):
    """
    Detection awaiting user confirmation.

    Immutable: transitions return a new instance.

    Example:
        >>> pending = PendingAnalysis.create_new(items=[item])
        >>> confirmed = pending.transition(ConfirmationState.CONFIRMED)
        >>> confirmed.state
        <ConfirmationState.CONFIRMED: 'confirmed'>
    """

    model_config = ConfigDict(frozen=True)

    analysis_id: AnalysisId
    items: list[DetectedFoodItem] = Field(..., min_length=1)
    state: ConfirmationState = ConfirmationState.PENDING
    created_at: datetime
    expires_at: datetime

    @classmethod
    def create_new(
        cls,
        items: list[DetectedFoodItem],
        ttl: timedelta = DEFAULT_PENDING_TTL,
        analysis_id: Optional[AnalysisId] = None,
    ) -> PendingAnalysis:
        """Create pending analysis with fresh ID and expiry."""
        now = datetime.now(timezone.utc)
        return cls(
            analysis_id=analysis_id or AnalysisId.generate(),
            items=list(items),
            created_at=now,
            expires_at=now + ttl,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if TTL elapsed."""
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def transition(
        self,
        state: ConfirmationState,
        items: Optional[list[DetectedFoodItem]] = None,
    ) -> PendingAnalysis:
        """
        Move to ``state``, optionally replacing items.

        Raises:
            BusinessLogicError: If the transition is not allowed
        """
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise BusinessLogicError(
                f"Cannot move analysis {self.analysis_id} from "
                f"{self.state.value} to {state.value}"
            )
        update: dict[str, object] = {"state": state}
        if items is not None:
            update["items"] = list(items)
        return self.model_copy(update=update)


class CorrectionSet(BaseModel):
    """
    Edits parsed from a free-text user reply.

    Attributes:
        confirmed: User accepted the items as-is
        updates: (index, new name) pairs, 0-based
        additions: New item names
        removals: 0-based indices to drop
    """

    model_config = ConfigDict(frozen=True)

    confirmed: bool = False
    updates: list[tuple[int, str]] = Field(default_factory=list)
    additions: list[str] = Field(default_factory=list)
    removals: list[int] = Field(default_factory=list)

    def is_empty(self) -> bool:
        """No confirmation and no edits recognized."""
        return not (self.confirmed or self.updates or self.additions or self.removals)
