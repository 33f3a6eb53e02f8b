"""
Confirmation service.

Drives the PendingAnalysis state machine:

    PENDING -> CONFIRMED | CORRECTED -> FINALIZED

A pending analysis is created for ambiguous detections, resolved by a
free-text user reply, and deleted once finalized or cancelled.
"""

from datetime import timedelta
from typing import Optional, Sequence

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from scanlyf.application.nutrition.service import NutritionService
from scanlyf.domain.meal.confirmation.corrections import (
    apply_corrections,
    parse_corrections,
)
from scanlyf.domain.meal.confirmation.models import (
    DEFAULT_PENDING_TTL,
    ConfirmationState,
    CorrectionSet,
    PendingAnalysis,
)
from scanlyf.domain.meal.confirmation.repository import IPendingAnalysisRepository
from scanlyf.domain.meal.detection.models import DetectedFoodItem
from scanlyf.domain.meal.detection.rules import FoodClassifier
from scanlyf.domain.meal.nutrition.models import NutritionRecord, NutritionTotals
from scanlyf.domain.shared.errors import BusinessLogicError, NotFoundError
from scanlyf.domain.shared.value_objects import AnalysisId

logger = structlog.get_logger(__name__)


class FinalizedAnalysis(BaseModel):
    """Outcome of a resolved confirmation."""

    model_config = ConfigDict(frozen=True)

    analysis_id: AnalysisId
    state: ConfirmationState
    corrections: CorrectionSet
    items: list[DetectedFoodItem]
    nutrition: list[NutritionRecord]
    totals: NutritionTotals


class ConfirmationService:
    """
    Pending analysis lifecycle.

    Example:
        >>> pending = await service.create_pending(items)
        >>> final = await service.resolve(pending.analysis_id.value, "change 1 to banana")
        >>> final.state
        <ConfirmationState.FINALIZED: 'finalized'>
    """

    def __init__(
        self,
        repository: IPendingAnalysisRepository,
        nutrition: NutritionService,
        classifier: Optional[FoodClassifier] = None,
        pending_ttl: timedelta = DEFAULT_PENDING_TTL,
    ) -> None:
        self._repository = repository
        self._nutrition = nutrition
        self._classifier = classifier or FoodClassifier()
        self._pending_ttl = pending_ttl

    async def create_pending(self, items: Sequence[DetectedFoodItem]) -> PendingAnalysis:
        """Store items awaiting confirmation under a fresh analysis ID."""
        pending = PendingAnalysis.create_new(items=list(items), ttl=self._pending_ttl)
        await self._repository.save(pending)
        logger.info(
            "Pending analysis created",
            analysis_id=pending.analysis_id.value,
            items=len(pending.items),
            expires_at=pending.expires_at.isoformat(),
        )
        return pending

    async def resolve(self, analysis_id: str, user_text: str) -> FinalizedAnalysis:
        """
        Apply the user's reply and fetch nutrition for the final items.

        A reply with no recognizable correction confirms the items as-is.

        Raises:
            NotFoundError: Unknown, expired or cancelled analysis
            BusinessLogicError: Corrections removed every item
        """
        key = self._parse_id(analysis_id)
        # Claimed up front so a concurrent reply for the same ID gets NotFoundError
        pending = await self._repository.take(key)
        if pending is None:
            raise NotFoundError(f"Analysis {analysis_id} not found or expired")

        corrections = parse_corrections(user_text or "")
        if corrections.confirmed or corrections.is_empty():
            resolved = pending.transition(ConfirmationState.CONFIRMED)
        else:
            items = apply_corrections(pending.items, corrections, self._classifier)
            if not items:
                await self._repository.save(pending)
                raise BusinessLogicError("No items left to analyze after corrections")
            resolved = pending.transition(ConfirmationState.CORRECTED, items=items)

        logger.info(
            "Pending analysis resolved",
            analysis_id=analysis_id,
            state=resolved.state.value,
            updates=len(corrections.updates),
            additions=len(corrections.additions),
            removals=len(corrections.removals),
        )

        records = await self._nutrition.lookup_many(resolved.items)
        finalized = resolved.transition(ConfirmationState.FINALIZED)

        return FinalizedAnalysis(
            analysis_id=key,
            state=finalized.state,
            corrections=corrections,
            items=finalized.items,
            nutrition=records,
            totals=NutritionService.totals(records),
        )

    async def cancel(self, analysis_id: str) -> bool:
        """Drop a pending analysis. Returns False if it did not exist."""
        try:
            key = self._parse_id(analysis_id)
        except NotFoundError:
            return False
        removed = await self._repository.delete(key)
        logger.info("Pending analysis cancelled", analysis_id=analysis_id, removed=removed)
        return removed

    @staticmethod
    def _parse_id(analysis_id: str) -> AnalysisId:
        try:
            return AnalysisId(value=analysis_id)
        except PydanticValidationError as e:
            raise NotFoundError(f"Analysis {analysis_id} not found") from e
