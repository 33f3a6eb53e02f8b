"""
Free-text food analysis.

Text is not confidence gated: every parsed item is treated as confirmed.
A structured (LLM) parser is asked first when configured; the
deterministic parser takes over on absence, failure or an empty answer.
Recipe-style text is split into clauses analyzed concurrently.
"""

import asyncio
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from scanlyf.application.nutrition.service import NutritionService
from scanlyf.domain.meal.detection.models import DetectedFoodItem, DetectionSource
from scanlyf.domain.meal.detection.rules import FoodClassifier
from scanlyf.domain.meal.nutrition.models import NutritionRecord, NutritionTotals
from scanlyf.domain.meal.nutrition.ports import IFoodTextParser
from scanlyf.domain.meal.text.parser import (
    ParsedFood,
    is_recipe,
    parse_food_text,
    split_recipe,
)
from scanlyf.domain.shared.errors import (
    AuthenticationError,
    ExternalAPIError,
    ValidationError,
)
from scanlyf.infrastructure.resilience.guard import ResilientCaller

logger = structlog.get_logger(__name__)

TEXT_PARSER = "openai_text"


class TextAnalysis(BaseModel):
    """Items and nutrition parsed from a text description."""

    model_config = ConfigDict(frozen=True)

    items: list[DetectedFoodItem]
    nutrition: list[NutritionRecord]
    totals: NutritionTotals
    is_recipe: bool = False

    def combined_record(self) -> NutritionRecord:
        """Single record: the item itself, or recipe totals."""
        if not self.is_recipe and len(self.nutrition) == 1:
            return self.nutrition[0]
        name = ", ".join(item.name for item in self.items)
        return self.totals.to_record(name=name, source="recipe")


class TextAnalyzer:
    """
    Text description -> items with nutrition.

    Example:
        >>> analyzer = TextAnalyzer(caller, nutrition_service)
        >>> analysis = await analyzer.analyze("2 chapati with dal and rice")
        >>> [i.name for i in analysis.items]
        ['chapati', 'dal', 'rice']
    """

    def __init__(
        self,
        caller: ResilientCaller,
        nutrition: NutritionService,
        parser: Optional[IFoodTextParser] = None,
        classifier: Optional[FoodClassifier] = None,
    ) -> None:
        self._caller = caller
        self._nutrition = nutrition
        self._parser = parser
        self._classifier = classifier or FoodClassifier()

    async def analyze(self, text: str) -> TextAnalysis:
        """
        Parse text and look up nutrition for every item.

        Raises:
            ValidationError: If text is empty
        """
        cleaned = text.strip() if isinstance(text, str) else ""
        if not cleaned:
            raise ValidationError("Food description cannot be empty")

        recipe = is_recipe(cleaned)
        clauses = split_recipe(cleaned) if recipe else [cleaned]
        logger.info("Analyzing text", clauses=len(clauses), is_recipe=recipe)

        results = await asyncio.gather(*(self._analyze_clause(c) for c in clauses))
        items = [item for item, _ in results]
        records = [record for _, record in results]
        return TextAnalysis(
            items=items,
            nutrition=records,
            totals=NutritionService.totals(records),
            is_recipe=recipe,
        )

    async def _analyze_clause(self, clause: str) -> tuple[DetectedFoodItem, NutritionRecord]:
        parsed = await self._parse(clause)
        item = DetectedFoodItem(
            name=parsed.food_name,
            quantity=parsed.quantity,
            unit=parsed.unit,
            confidence=1.0,
            category=self._classifier.category(parsed.food_name),
            source=DetectionSource.USER,
        )
        return item, await self._nutrition.lookup(item)

    async def _parse(self, clause: str) -> ParsedFood:
        if self._parser is not None:
            try:
                parsed = await self._caller.call(TEXT_PARSER, self._parser.parse, clause)
                if parsed is not None:
                    return parsed
            except (ExternalAPIError, AuthenticationError) as e:
                logger.warning(
                    "Structured text parser failed, using pattern parser",
                    error=str(e),
                    error_type=e.error_type,
                )
        return parse_food_text(clause)
