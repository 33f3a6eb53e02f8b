"""
Analysis orchestrator.

Single entry point composing detection, confirmation, nutrition, risk
scoring and personalization.

Flow (analyze):
1. Dispatch on input type (text analyzer or detection cascade)
2. Auto-confirmed: attach nutrition, tips, packaging claims, alternatives
3. Ambiguous: create pending analysis, return confirmation message
4. Personalize and health-check when a profile and a nutrition record
   are present

``analyze`` and ``resolve_confirmation`` are the only boundary where
errors become degraded results; both return, never raise.
"""

import time
from typing import Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from scanlyf.application.confirmation.service import ConfirmationService
from scanlyf.application.detection.cascade import DetectionCascade
from scanlyf.application.detection.text_analyzer import TextAnalyzer
from scanlyf.application.nutrition.service import NutritionService
from scanlyf.application.personalization.service import (
    PersonalizationService,
    basic_recommendation,
)
from scanlyf.domain.meal.confirmation.corrections import format_confirmation_message
from scanlyf.domain.meal.detection.models import (
    AutoConfirmed,
    DetectedFoodItem,
    DetectionSource,
    Failed,
    InputType,
)
from scanlyf.domain.meal.nutrition.fallback import estimate_nutrition
from scanlyf.domain.meal.nutrition.models import NutritionRecord, NutritionTotals
from scanlyf.domain.meal.risk.engine import IngredientRiskEngine
from scanlyf.domain.meal.risk.health import HealthAdvisor
from scanlyf.domain.meal.risk.models import Alternative, HealthAssessment, MarketingClaim
from scanlyf.domain.shared.errors import (
    BusinessLogicError,
    NotFoundError,
    ScanlyfError,
    ValidationError,
    classify_error,
)
from scanlyf.domain.user.models import UserProfile

logger = structlog.get_logger(__name__)

BARCODE_TIP = "Check the ingredients list for hidden sugars and additives!"
MULTI_ITEM_TIP = "Great job logging a complete meal! This helps track nutrition more accurately."


# ═══════════════════════════════════════════════════════════
# REQUEST / RESULT MODELS
# ═══════════════════════════════════════════════════════════


class AnalysisRequest(BaseModel):
    """
    One analysis call.

    Attributes:
        input: Text, image (bytes, base64, data URI or URL) or barcode
        input_type: ``text`` | ``image`` | ``barcode``
        user_profile: Optional profile for personalization and risk
    """

    model_config = ConfigDict(frozen=True)

    input: Union[bytes, str]
    input_type: str
    user_profile: Optional[UserProfile] = None


class AnalysisResult(BaseModel):
    """Result of ``analyze``; ``success=False`` results carry the error."""

    model_config = ConfigDict(frozen=True)

    success: bool
    nutrition: Optional[NutritionRecord] = None
    needs_confirmation: bool = False
    confirmation_message: Optional[str] = None
    detected_items: list[DetectedFoodItem] = Field(default_factory=list)
    analysis_id: Optional[str] = None
    auto_confirmed: bool = False
    needs_text_input: bool = False
    error: Optional[str] = None
    error_type: Optional[str] = None
    fallback: bool = False
    personalized_message: Optional[str] = None
    tips: list[str] = Field(default_factory=list)
    marketing_claims: list[MarketingClaim] = Field(default_factory=list)
    alternatives: list[Alternative] = Field(default_factory=list)
    health_assessment: Optional[HealthAssessment] = None
    processing_time_ms: int = 0


class ConfirmationResult(BaseModel):
    """Result of ``resolve_confirmation``."""

    model_config = ConfigDict(frozen=True)

    success: bool
    final_items: list[DetectedFoodItem] = Field(default_factory=list)
    nutrition_data: list[NutritionRecord] = Field(default_factory=list)
    totals: Optional[NutritionTotals] = None
    personalized_message: Optional[str] = None
    tips: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None


# ═══════════════════════════════════════════════════════════
# ORCHESTRATOR
# ═══════════════════════════════════════════════════════════


class AnalysisOrchestrator:
    """
    Food analysis entry point.

    Example:
        >>> orchestrator = build_orchestrator(get_settings())
        >>> result = await orchestrator.analyze(
        ...     AnalysisRequest(input="3017620422003", input_type="barcode")
        ... )
        >>> result.nutrition.source
        'openfoodfacts'
    """

    def __init__(
        self,
        cascade: DetectionCascade,
        text_analyzer: TextAnalyzer,
        confirmation: ConfirmationService,
        nutrition: NutritionService,
        personalization: PersonalizationService,
        risk_engine: Optional[IngredientRiskEngine] = None,
        health_advisor: Optional[HealthAdvisor] = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            cascade: Barcode and image detection
            text_analyzer: Free-text detection
            confirmation: Pending analysis lifecycle
            nutrition: Item nutrition lookup with estimates
            personalization: Personalized messages (never raises)
            risk_engine: Packaging claims and alternatives
            health_advisor: Per-food health check against the profile
        """
        self._cascade = cascade
        self._text = text_analyzer
        self._confirmation = confirmation
        self._nutrition = nutrition
        self._personalization = personalization
        self._risk_engine = risk_engine or IngredientRiskEngine()
        self._health_advisor = health_advisor or HealthAdvisor()

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Analyze one input. Never raises."""
        start_time = time.time()
        logger.info("Starting analysis", input_type=str(request.input_type))

        try:
            result = await self._dispatch(request)
        except Exception as e:
            error = classify_error(e)
            self._log_failure("Analysis failed", error, input_type=str(request.input_type))
            return AnalysisResult(
                success=False,
                error=str(error),
                error_type=error.error_type,
                fallback=True,
                nutrition=estimate_nutrition("Unknown food", 1),
                processing_time_ms=_elapsed_ms(start_time),
            )

        if result.success and result.nutrition and request.user_profile:
            items = result.detected_items or [
                DetectedFoodItem(name=result.nutrition.name, confidence=1.0)
            ]
            message = await self._personalize(
                request.user_profile,
                items,
                NutritionTotals.from_records([result.nutrition]),
            )
            assessment = self._health_advisor.assess(result.nutrition, request.user_profile)
            result = result.model_copy(
                update={"personalized_message": message, "health_assessment": assessment}
            )

        result = result.model_copy(update={"processing_time_ms": _elapsed_ms(start_time)})
        logger.info(
            "Analysis complete",
            success=result.success,
            needs_confirmation=result.needs_confirmation,
            processing_time_ms=result.processing_time_ms,
        )
        return result

    async def resolve_confirmation(
        self,
        analysis_id: str,
        user_text: str,
        user_profile: Optional[UserProfile] = None,
    ) -> ConfirmationResult:
        """Apply the user's reply to a pending analysis. Never raises."""
        try:
            final = await self._confirmation.resolve(analysis_id, user_text)
        except Exception as e:
            error = classify_error(e)
            self._log_failure("Confirmation failed", error, analysis_id=analysis_id)
            return ConfirmationResult(
                success=False, error=str(error), error_type=error.error_type
            )

        message = None
        if user_profile is not None:
            message = await self._personalize(user_profile, final.items, final.totals)

        return ConfirmationResult(
            success=True,
            final_items=final.items,
            nutrition_data=final.nutrition,
            totals=final.totals,
            personalized_message=message,
            tips=[MULTI_ITEM_TIP] if len(final.items) > 1 else [],
        )

    async def cancel(self, analysis_id: str) -> bool:
        """Drop a pending analysis."""
        return await self._confirmation.cancel(analysis_id)

    # ═══════════════════════════════════════════════════════════
    # DISPATCH
    # ═══════════════════════════════════════════════════════════

    async def _dispatch(self, request: AnalysisRequest) -> AnalysisResult:
        try:
            input_type = InputType(request.input_type)
        except ValueError as e:
            raise BusinessLogicError(f"Unsupported input type: {request.input_type}") from e

        if input_type == InputType.TEXT:
            return await self._analyze_text(request.input)

        outcome = await self._cascade.detect(request.input, input_type, request.user_profile)

        if isinstance(outcome, Failed):
            error_type = outcome.error_type or NotFoundError.error_type
            log = logger.error if outcome.error_type else logger.info
            log("Detection failed", reason=outcome.reason, error_type=error_type)
            return AnalysisResult(
                success=False,
                error=outcome.reason,
                error_type=error_type,
                needs_text_input=outcome.needs_text_input,
                fallback=True,
                nutrition=estimate_nutrition("Unknown food", 1),
            )

        if isinstance(outcome, AutoConfirmed):
            return await self._auto_confirmed(outcome)

        pending = await self._confirmation.create_pending(outcome.items)
        return AnalysisResult(
            success=True,
            needs_confirmation=True,
            confirmation_message=format_confirmation_message(pending.items),
            detected_items=pending.items,
            analysis_id=pending.analysis_id.value,
        )

    async def _analyze_text(self, payload: Union[bytes, str]) -> AnalysisResult:
        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ValidationError("Text input is not valid UTF-8") from e

        analysis = await self._text.analyze(payload)
        return AnalysisResult(
            success=True,
            nutrition=analysis.combined_record(),
            detected_items=analysis.items,
            auto_confirmed=True,
            tips=[MULTI_ITEM_TIP] if len(analysis.items) > 1 else [],
        )

    async def _auto_confirmed(self, outcome: AutoConfirmed) -> AnalysisResult:
        item = outcome.item
        nutrition = outcome.nutrition or await self._nutrition.lookup(item)

        tips: list[str] = []
        claims: list[MarketingClaim] = []
        alternatives: list[Alternative] = []
        if item.source == DetectionSource.BARCODE:
            tips.append(BARCODE_TIP)
            claims = self._risk_engine.expose_marketing_tricks(
                nutrition.name, nutrition.ingredients
            )
            if nutrition.risk_analysis is not None:
                alternatives = self._risk_engine.suggest_alternatives(
                    nutrition.name, nutrition.risk_analysis.processing_level
                )

        return AnalysisResult(
            success=True,
            nutrition=nutrition,
            detected_items=[item],
            auto_confirmed=True,
            tips=tips,
            marketing_claims=claims,
            alternatives=alternatives,
        )

    async def _personalize(
        self,
        profile: UserProfile,
        items: list[DetectedFoodItem],
        totals: NutritionTotals,
    ) -> str:
        try:
            return await self._personalization.recommend(profile, items, totals)
        except Exception as e:
            error = classify_error(e)
            self._log_failure("Personalization failed", error)
            return basic_recommendation(profile, totals)

    @staticmethod
    def _log_failure(event: str, error: ScanlyfError, **context: object) -> None:
        log = logger.warning if isinstance(error, (ValidationError, NotFoundError)) else logger.error
        log(event, error=str(error), error_type=error.error_type, **context)


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)
