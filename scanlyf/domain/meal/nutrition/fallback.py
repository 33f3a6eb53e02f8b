"""
Best-effort nutrition estimates.

Static per-serving values used when every real source failed, so a
degraded response still carries a usable nutrition value.
"""

from __future__ import annotations

from scanlyf.domain.meal.nutrition.models import NutritionRecord

FALLBACK_SOURCE = "fallback_estimate"

# kcal, protein g, carbs g, fat g, fiber g, sugar g, sodium mg (per serving)
ESTIMATES: dict[str, tuple[float, ...]] = {
    "bread": (80, 3, 15, 1, 1, 2, 150),
    "chicken": (165, 31, 0, 4, 0, 0, 70),
    "rice": (130, 3, 28, 0, 1, 0, 5),
    "apple": (95, 0, 25, 0, 4, 19, 2),
    "egg": (70, 6, 1, 5, 0, 1, 70),
    "milk": (150, 8, 12, 8, 0, 12, 125),
    "banana": (105, 1, 27, 0, 3, 14, 1),
    "chocolate": (200, 2, 25, 12, 2, 20, 20),
    "pizza": (285, 12, 36, 10, 2, 4, 640),
    "coffee": (2, 0, 0, 0, 0, 0, 5),
}
DEFAULT_ESTIMATE = (100, 5, 15, 3, 1, 5, 100)


def estimate_nutrition(
    food_name: str = "Unknown food", quantity: float = 1, unit: str = "serving"
) -> NutritionRecord:
    """
    Estimate nutrition from the static table, scaled by quantity.

    Example:
        >>> estimate_nutrition("2 slices of bread", quantity=2).calories
        160.0
    """
    lowered = food_name.lower()
    values = next(
        (v for key, v in ESTIMATES.items() if key in lowered), DEFAULT_ESTIMATE
    )
    scale = quantity if quantity > 0 else 1
    calories, protein, carbs, fat, fiber, sugar, sodium = (round(v * scale) for v in values)
    return NutritionRecord(
        name=food_name,
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        fiber=fiber,
        sugar=sugar,
        sodium=sodium,
        portion_size=f"{quantity:g} {unit}",
        source=FALLBACK_SOURCE,
    )
