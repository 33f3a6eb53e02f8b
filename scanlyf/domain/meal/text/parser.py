"""
Deterministic food text parser.

Fallback used when no structured (LLM) parser is configured or when it
fails. Handles inputs like ``"200g chicken"``, ``"2 slices of bread"``
and recipe-style lists (``"rice, dal and curd"``).
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

QUANTITY_PATTERN = re.compile(
    r"^(\d+(?:\.\d+)?)\s*"
    r"(?:(g|kg|oz|lb|cups|cup|slices|slice|pieces|piece|servings|serving)\b)?\s*"
    r"(?:of\s+)?(.+)$",
    re.IGNORECASE,
)
RECIPE_SPLIT_PATTERN = re.compile(r"\s*,\s*|\s+with\s+|\s+and\s+", re.IGNORECASE)


class ParsedFood(BaseModel):
    """
    Food name with portion extracted from text.

    Example:
        >>> parse_food_text("2 slices of bread")
        ParsedFood(food_name='bread', quantity=2.0, unit='slices')
    """

    model_config = ConfigDict(frozen=True)

    food_name: str = Field(..., min_length=1)
    quantity: float = Field(1.0, gt=0)
    unit: str = "serving"


def parse_food_text(text: str) -> ParsedFood:
    """
    Parse ``<qty> <unit> [of] <food>``; anything else is one serving.

    Raises:
        ValueError: If text is empty
    """
    cleaned = text.strip()
    if not cleaned:
        raise ValueError("Food text cannot be empty")

    match = QUANTITY_PATTERN.match(cleaned)
    if match:
        quantity = float(match.group(1))
        if quantity > 0:
            return ParsedFood(
                food_name=match.group(3).strip(),
                quantity=quantity,
                unit=(match.group(2) or "serving").lower(),
            )
    return ParsedFood(food_name=cleaned, quantity=1.0, unit="serving")


def is_recipe(text: str) -> bool:
    """Several comma-separated clauses, or the connector `` with ``."""
    lowered = text.lower()
    clauses = [c for c in lowered.split(",") if c.strip()]
    return len(clauses) > 1 or " with " in lowered


def split_recipe(text: str) -> list[str]:
    """Split recipe text into ingredient clauses, order preserved."""
    return [part.strip() for part in RECIPE_SPLIT_PATTERN.split(text) if part.strip()]
