"""
Nutrition domain models.

Records returned by nutrition collaborators and the totals built from
them.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from scanlyf.domain.meal.risk.models import RiskAnalysis

SUMMED_FIELDS = ("calories", "protein", "carbs", "fat", "fiber", "sugar", "sodium")


class NutritionRecord(BaseModel):
    """
    Nutrition facts for one food item or product.

    Attributes:
        name: Food or product name
        calories: Energy in kcal
        protein: Protein in g
        carbs: Carbohydrates in g
        fat: Total fat in g
        fiber: Fiber in g (optional)
        sugar: Sugar in g (optional)
        sodium: Sodium in mg (optional)
        portion_size: Human readable portion ("100 g", "2 slices")
        ingredients: Raw ingredient text, when known
        source: Data source identifier
        brand: Product brand (barcode lookups)
        risk_analysis: Ingredient analysis (barcode lookups)

    Example:
        >>> record = NutritionRecord(
        ...     name="apple", calories=95, protein=0, carbs=25, fat=0,
        ...     fiber=4, sugar=19, sodium=2, source="usda",
        ... )
        >>> record.calories
        95.0
    """

    model_config = ConfigDict(frozen=True)

    name: str
    calories: float = Field(0.0, ge=0, description="Energy in kcal")
    protein: float = Field(0.0, ge=0, description="Protein in g")
    carbs: float = Field(0.0, ge=0, description="Carbohydrates in g")
    fat: float = Field(0.0, ge=0, description="Total fat in g")
    fiber: Optional[float] = Field(None, ge=0, description="Fiber in g")
    sugar: Optional[float] = Field(None, ge=0, description="Sugar in g")
    sodium: Optional[float] = Field(None, ge=0, description="Sodium in mg")

    portion_size: str = Field("1 serving", description="Portion description")
    ingredients: Optional[str] = Field(None, description="Ingredient text")
    source: str = Field(..., min_length=1, description="Data source")
    brand: Optional[str] = None
    risk_analysis: Optional[RiskAnalysis] = None


class NutritionTotals(BaseModel):
    """
    Field-wise sum of several nutrition records.

    Missing optional fields count as 0.

    Example:
        >>> a = NutritionRecord(name="a", calories=100, source="x")
        >>> b = NutritionRecord(name="b", calories=50, sugar=3, source="x")
        >>> totals = NutritionTotals.from_records([a, b])
        >>> (totals.calories, totals.sugar)
        (150.0, 3.0)
    """

    model_config = ConfigDict(frozen=True)

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0

    @classmethod
    def from_records(cls, records: Iterable[NutritionRecord]) -> NutritionTotals:
        """Sum records field by field."""
        sums = dict.fromkeys(SUMMED_FIELDS, 0.0)
        for record in records:
            for field in SUMMED_FIELDS:
                sums[field] += getattr(record, field) or 0.0
        return cls(**{k: round(v, 1) for k, v in sums.items()})

    def to_record(self, name: str, source: str) -> NutritionRecord:
        """Express totals as a single combined record."""
        return NutritionRecord(
            name=name,
            source=source,
            portion_size="combined",
            **self.model_dump(),
        )
