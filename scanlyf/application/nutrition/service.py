"""
Nutrition lookup service.

Fetches nutrition for detected items through the resilient caller and
degrades per item to the static estimate table, so a single failing
lookup never sinks a multi-item analysis.
"""

import asyncio
from typing import Optional, Sequence

import structlog

from scanlyf.domain.meal.detection.models import DetectedFoodItem
from scanlyf.domain.meal.nutrition.fallback import estimate_nutrition
from scanlyf.domain.meal.nutrition.models import NutritionRecord, NutritionTotals
from scanlyf.domain.meal.nutrition.ports import INutritionLookup
from scanlyf.domain.shared.errors import AuthenticationError, ExternalAPIError
from scanlyf.infrastructure.resilience.guard import ResilientCaller

logger = structlog.get_logger(__name__)


class NutritionService:
    """
    Item-level nutrition lookup with fallback estimates.

    Example:
        >>> service = NutritionService(caller, off_client, dependency_name="openfoodfacts_search")
        >>> records = await service.lookup_many(items)
        >>> totals = NutritionService.totals(records)
    """

    def __init__(
        self,
        caller: ResilientCaller,
        lookup: Optional[INutritionLookup] = None,
        dependency_name: str = "nutrition_lookup",
    ) -> None:
        """
        Initialize service.

        Args:
            caller: Resilient caller (retry, breaker, timeout)
            lookup: Nutrition collaborator (None: estimates only)
            dependency_name: Circuit breaker key for the collaborator
        """
        self._caller = caller
        self._lookup = lookup
        self._dependency_name = dependency_name

    async def lookup(self, item: DetectedFoodItem) -> NutritionRecord:
        """Nutrition for one item; never raises for collaborator failures."""
        if self._lookup is not None:
            try:
                record = await self._caller.call(
                    self._dependency_name,
                    self._lookup.lookup,
                    item.name,
                    item.quantity,
                    item.unit,
                )
                if record is not None:
                    return record
                logger.info("No nutrition match, using estimate", food=item.name)
            except (ExternalAPIError, AuthenticationError) as e:
                logger.warning(
                    "Nutrition lookup failed, using estimate",
                    food=item.name,
                    error=str(e),
                    error_type=e.error_type,
                )
        return estimate_nutrition(item.name, item.quantity, item.unit)

    async def lookup_many(self, items: Sequence[DetectedFoodItem]) -> list[NutritionRecord]:
        """Concurrent lookups; result order matches ``items``."""
        return list(await asyncio.gather(*(self.lookup(item) for item in items)))

    @staticmethod
    def totals(records: Sequence[NutritionRecord]) -> NutritionTotals:
        return NutritionTotals.from_records(records)
