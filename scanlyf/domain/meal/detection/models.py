"""
Detection domain models.

Items produced by the detection cascade and the outcome types returned to
the orchestrator.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from scanlyf.domain.meal.nutrition.models import NutritionRecord


class InputType(str, Enum):
    """Kind of input submitted for analysis."""

    TEXT = "text"
    IMAGE = "image"
    BARCODE = "barcode"


class DetectionSource(str, Enum):
    """Origin of a detected item."""

    PRIMARY_LABEL = "primary_label"  # Vision label / best guess
    WEB_ENTITY = "web_entity"  # Vision web detection
    AI_VISION = "ai_vision"  # Secondary AI model
    BARCODE = "barcode"  # Resolved through product lookup
    USER = "user"  # Added through a correction


class FoodCategory(str, Enum):
    """Coarse food category."""

    PROTEIN = "protein"
    CARBS = "carbs"
    VEGETABLE = "vegetable"
    FRUIT = "fruit"
    DAIRY = "dairy"
    BEVERAGE = "beverage"
    OTHER = "other"


class RawDetection(BaseModel):
    """
    Unenriched label returned by a vision detector.

    The cascade turns it into a DetectedFoodItem by adding portion and
    category estimates.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: DetectionSource


class DetectedFoodItem(BaseModel):
    """
    Food item identified by the cascade.

    Attributes:
        name: Food label as shown to the user
        quantity: Estimated portion amount
        unit: Portion unit (slice, cup, serving, ...)
        confidence: Detector confidence (0.0 - 1.0)
        category: Coarse category
        source: Which detector produced it

    Example:
        >>> item = DetectedFoodItem(
        ...     name="apple", quantity=1, unit="medium",
        ...     confidence=0.95, source=DetectionSource.PRIMARY_LABEL,
        ... )
        >>> item.display()
        'apple - 1 medium'
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Food label")
    quantity: float = Field(1.0, gt=0, description="Portion amount")
    unit: str = Field("serving", description="Portion unit")
    confidence: float = Field(1.0, ge=0.0, le=1.0, description="Detector confidence")
    category: FoodCategory = Field(FoodCategory.OTHER, description="Coarse category")
    source: DetectionSource = Field(DetectionSource.USER, description="Origin")

    def display(self) -> str:
        """Render as ``name - qty unit``."""
        qty = int(self.quantity) if float(self.quantity).is_integer() else self.quantity
        return f"{self.name} - {qty} {self.unit}"


# ═══════════════════════════════════════════════════════════
# DETECTION OUTCOMES
# ═══════════════════════════════════════════════════════════


class AutoConfirmed(BaseModel):
    """Single confident item; no user dialogue needed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["auto_confirmed"] = "auto_confirmed"
    item: DetectedFoodItem
    nutrition: Optional[NutritionRecord] = Field(
        None, description="Present when resolved through barcode lookup"
    )


class NeedsConfirmation(BaseModel):
    """Ambiguous or multi-item detection; user must confirm or correct."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["needs_confirmation"] = "needs_confirmation"
    items: list[DetectedFoodItem] = Field(..., min_length=1)


class Failed(BaseModel):
    """
    Detection failed.

    Attributes:
        reason: Human readable reason
        needs_text_input: Caller should ask the user to describe the food
        error_type: Taxonomy type of the underlying error, if any
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    reason: str
    needs_text_input: bool = False
    error_type: Optional[str] = None


DetectionOutcome = Union[AutoConfirmed, NeedsConfirmation, Failed]
