"""
Ports (Interfaces) for nutrition collaborators.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Optional, Protocol, runtime_checkable

from scanlyf.domain.meal.detection.models import DetectedFoodItem
from scanlyf.domain.meal.nutrition.models import NutritionRecord, NutritionTotals
from scanlyf.domain.meal.text.parser import ParsedFood
from scanlyf.domain.shared.value_objects import Barcode
from scanlyf.domain.user.models import UserProfile


@runtime_checkable
class INutritionLookup(Protocol):
    """
    Port for food-name nutrition lookup.

    Implementations may use a text nutrition database or an LLM.
    """

    async def lookup(
        self, food_name: str, quantity: float, unit: str
    ) -> Optional[NutritionRecord]:
        """
        Look up nutrition for a portion of food.

        Args:
            food_name: Food name (e.g. "banana")
            quantity: Portion amount
            unit: Portion unit

        Returns:
            NutritionRecord, or None when the food is unknown

        Raises:
            ExternalAPIError: On collaborator failure
        """
        ...


@runtime_checkable
class IBarcodeLookup(Protocol):
    """
    Port for product lookup by barcode.

    Both the primary product database and the alternative sources
    implement this port.
    """

    @property
    def name(self) -> str:
        """Dependency name (used as circuit breaker key)."""
        ...

    async def lookup_barcode(self, barcode: Barcode) -> Optional[NutritionRecord]:
        """
        Look up product by barcode.

        Returns:
            NutritionRecord if found, None if not found

        Raises:
            ExternalAPIError: On network or API errors
        """
        ...


@runtime_checkable
class IFoodTextParser(Protocol):
    """Port for structured parsing of free-text food descriptions."""

    async def parse(self, text: str) -> Optional[ParsedFood]:
        """Parse text into food name, quantity and unit (None if unsure)."""
        ...


@runtime_checkable
class IPersonalizationService(Protocol):
    """Port for personalized nutrition advice."""

    async def recommend(
        self,
        profile: UserProfile,
        items: list[DetectedFoodItem],
        totals: NutritionTotals,
    ) -> str:
        """
        Build a personalized message.

        Raises:
            ExternalAPIError: On collaborator failure
        """
        ...

