"""Pydantic models for OpenAI JSON replies.

Replies are requested with ``response_format={"type": "json_object"}``
and validated with these models. Vision replies that are not valid JSON
fall back to the numbered-line parser.
"""

import json
import re
from typing import List

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

logger = structlog.get_logger(__name__)

NUMBERED_LINE_PATTERN = re.compile(r"\d+\.\s*(.+?)\s*-\s*(\d+(?:\.\d+)?)\s*(.+)")
LINE_PARSE_CONFIDENCE = 0.6


class AIFoodItem(BaseModel):
    """Single food item identified by the model."""

    name: str = Field(..., min_length=1, description="Food name in English")
    quantity: float = Field(1.0, gt=0, description="Portion amount")
    unit: str = Field("serving", description="Portion unit")
    confidence: float = Field(0.7, ge=0.0, le=1.0, description="Identification confidence")


class AIVisionResponse(BaseModel):
    """Root model of the vision reply."""

    items: List[AIFoodItem] = Field(default_factory=list, max_length=10)


class AITextParseResponse(BaseModel):
    """Root model of the text parse reply."""

    food_name: str = ""
    quantity: float = Field(1.0, gt=0)
    unit: str = "serving"


def parse_vision_reply(content: str) -> List[AIFoodItem]:
    """
    Parse a vision reply.

    JSON replies are validated against AIVisionResponse. Anything else is
    scanned for lines like ``"1. Apple - 1 medium"`` (confidence 0.6).

    Example:
        >>> [i.name for i in parse_vision_reply("1. Apple - 1 medium")]
        ['Apple']
    """
    try:
        return AIVisionResponse.model_validate(json.loads(content)).items
    except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
        logger.debug("Vision reply is not structured JSON", error=str(e))

    items: List[AIFoodItem] = []
    for line in content.splitlines():
        match = NUMBERED_LINE_PATTERN.search(line)
        if not match:
            continue
        quantity = float(match.group(2))
        if quantity <= 0:
            continue
        items.append(
            AIFoodItem(
                name=match.group(1).strip(),
                quantity=quantity,
                unit=match.group(3).strip(),
                confidence=LINE_PARSE_CONFIDENCE,
            )
        )
    return items
