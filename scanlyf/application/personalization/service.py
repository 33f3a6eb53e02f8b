"""
Personalized nutrition messages.

Wraps the LLM personalization collaborator; any failure (or an
unconfigured collaborator) degrades to the rule-based message, so this
service never raises for collaborator errors.
"""

from typing import Optional, Sequence

import structlog

from scanlyf.domain.meal.detection.models import DetectedFoodItem
from scanlyf.domain.meal.nutrition.models import NutritionTotals
from scanlyf.domain.meal.nutrition.ports import IPersonalizationService
from scanlyf.domain.shared.errors import (
    AuthenticationError,
    BusinessLogicError,
    ExternalAPIError,
)
from scanlyf.domain.user.models import UserProfile
from scanlyf.infrastructure.resilience.guard import ResilientCaller

logger = structlog.get_logger(__name__)

PERSONALIZATION = "openai_personalization"

DIABETES_SUGAR_LIMIT_G = 15
HYPERTENSION_SODIUM_LIMIT_MG = 600


def basic_recommendation(profile: UserProfile, totals: NutritionTotals) -> str:
    """
    Rule-based message.

    Example:
        >>> profile = UserProfile(name="Asha", health_conditions=["diabetes"], calorie_target=2000)
        >>> message = basic_recommendation(profile, NutritionTotals(calories=400, sugar=20))
        >>> "high in sugar" in message
        True
    """
    parts = [f"Great job tracking your meal, {profile.name or 'there'}!"]

    if profile.has_condition("diabetes") and totals.sugar > DIABETES_SUGAR_LIMIT_G:
        parts.append(
            "This meal is quite high in sugar. Consider pairing it with protein "
            "or fiber to slow absorption."
        )
    elif (
        profile.has_condition("hypertension")
        and totals.sodium > HYPERTENSION_SODIUM_LIMIT_MG
    ):
        parts.append(
            "Watch the sodium content in this meal. Try seasoning with herbs and "
            "spices instead of salt next time."
        )
    else:
        parts.append("This meal provides good energy.")

    if profile.calorie_target:
        progress = (profile.consumed_calories + totals.calories) / profile.calorie_target * 100
        if progress < 30:
            parts.append(
                f"You're at {round(progress)}% of your daily calories - plenty of "
                "room for nutritious choices today!"
            )
        elif progress < 70:
            parts.append(
                "You're making good progress toward your daily goals. Keep balancing your meals!"
            )
        else:
            parts.append(
                "You're close to your daily targets. Consider lighter options for "
                "your remaining meals."
            )

    return " ".join(parts)


class PersonalizationService:
    """LLM personalization with a rule-based fallback."""

    def __init__(
        self,
        caller: ResilientCaller,
        recommender: Optional[IPersonalizationService] = None,
    ) -> None:
        self._caller = caller
        self._recommender = recommender

    async def recommend(
        self,
        profile: UserProfile,
        items: Sequence[DetectedFoodItem],
        totals: NutritionTotals,
    ) -> str:
        if self._recommender is not None:
            try:
                message = await self._caller.call(
                    PERSONALIZATION, self._recommender.recommend, profile, list(items), totals
                )
                if message:
                    return message
            except (ExternalAPIError, AuthenticationError, BusinessLogicError) as e:
                logger.warning(
                    "Personalization failed, using rule-based message",
                    error=str(e),
                    error_type=e.error_type,
                )
        return basic_recommendation(profile, totals)
