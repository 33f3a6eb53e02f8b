"""OpenAI adapters.

One client implementing three ports:
- ISecondaryVisionDetector: food items from an image (fallback detector)
- IFoodTextParser: structured parse of a food description
- IPersonalizationService: short personalized advice

Without an API key the client reports ``is_configured == False`` and the
cascade treats the AI detector as permanently unavailable.

The OpenAI SDK's own retries are disabled; retries, timeouts and circuit
breaking are applied by ResilientCaller. SDK errors are translated into
the domain taxonomy so the retry predicate can classify them.
"""

import base64
import json
import time
from typing import Any, Dict, List, Optional

import openai
import structlog
from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError

from scanlyf.domain.meal.detection.models import DetectedFoodItem, DetectionSource
from scanlyf.domain.meal.nutrition.models import NutritionTotals
from scanlyf.domain.meal.text.parser import ParsedFood
from scanlyf.domain.shared.errors import (
    AuthenticationError,
    BusinessLogicError,
    ExternalAPIError,
    RateLimitError,
    ServiceConnectionError,
    ServiceTimeoutError,
)
from scanlyf.domain.user.models import UserProfile
from scanlyf.infrastructure.ai.models import AITextParseResponse, parse_vision_reply
from scanlyf.infrastructure.ai.prompts import (
    PERSONALIZATION_SYSTEM_PROMPT,
    TEXT_PARSE_SYSTEM_PROMPT,
    VISION_SYSTEM_PROMPT,
)

logger = structlog.get_logger(__name__)


class OpenAIFoodClient:
    """
    OpenAI client for vision fallback, text parsing and personalization.

    Example:
        >>> client = OpenAIFoodClient(api_key="sk-...")
        >>> items = await client.detect(image_bytes)
        >>> print([i.name for i in items])
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        temperature: float = 0.1,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (None leaves the client unconfigured)
            model: Chat model supporting image input and JSON mode
            temperature: Sampling temperature (low for consistency)
            client: Pre-built AsyncOpenAI client (tests)
        """
        self._model = model
        self._temperature = temperature
        if client is not None:
            self._client: Optional[AsyncOpenAI] = client
        elif api_key:
            self._client = AsyncOpenAI(api_key=api_key, max_retries=0)
        else:
            self._client = None

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    # ═══════════════════════════════════════════════════════════
    # ISecondaryVisionDetector
    # ═══════════════════════════════════════════════════════════

    async def detect(self, image_bytes: bytes) -> List[DetectedFoodItem]:
        """
        Identify food items in an image.

        Returns:
            Items with quantity, unit and confidence (category left to the
            cascade's classifier)

        Raises:
            BusinessLogicError: If the client is not configured
            ExternalAPIError: On OpenAI failures
        """
        start_time = time.time()
        data_url = f"data:{_mime_type(image_bytes)};base64," + base64.b64encode(
            image_bytes
        ).decode("ascii")

        content = await self._complete(
            system_prompt=VISION_SYSTEM_PROMPT,
            user_content=[
                {"type": "text", "text": "Identify the foods in this photo."},
                {"type": "image_url", "image_url": {"url": data_url}},
            ],
            max_tokens=500,
        )

        items = [
            DetectedFoodItem(
                name=item.name,
                quantity=item.quantity,
                unit=item.unit,
                confidence=item.confidence,
                source=DetectionSource.AI_VISION,
            )
            for item in parse_vision_reply(content)
        ]
        logger.info(
            "AI vision analysis complete",
            item_count=len(items),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return items

    # ═══════════════════════════════════════════════════════════
    # IFoodTextParser
    # ═══════════════════════════════════════════════════════════

    async def parse(self, text: str) -> Optional[ParsedFood]:
        """Parse a food description; None when the model finds no food."""
        content = await self._complete(
            system_prompt=TEXT_PARSE_SYSTEM_PROMPT,
            user_content=text,
            max_tokens=100,
        )
        try:
            reply = AITextParseResponse.model_validate(json.loads(content))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.warning("Unparseable text parse reply", error=str(e))
            return None
        if not reply.food_name.strip():
            return None
        return ParsedFood(
            food_name=reply.food_name.strip(), quantity=reply.quantity, unit=reply.unit
        )

    # ═══════════════════════════════════════════════════════════
    # IPersonalizationService
    # ═══════════════════════════════════════════════════════════

    async def recommend(
        self,
        profile: UserProfile,
        items: List[DetectedFoodItem],
        totals: NutritionTotals,
    ) -> str:
        """Short personalized advice for what was just logged."""
        summary = {
            "profile": {
                "name": profile.name,
                "health_conditions": profile.health_conditions,
                "goals": sorted(profile.goals),
                "calorie_target": profile.calorie_target,
                "consumed_calories": profile.consumed_calories,
                "protein_target": profile.protein_target,
                "consumed_protein": profile.consumed_protein,
            },
            "items": [item.display() for item in items],
            "totals": totals.model_dump(),
        }
        content = await self._complete(
            system_prompt=PERSONALIZATION_SYSTEM_PROMPT,
            user_content=json.dumps(summary),
            max_tokens=200,
            json_mode=False,
        )
        return content.strip()

    # ═══════════════════════════════════════════════════════════
    # INTERNALS
    # ═══════════════════════════════════════════════════════════

    async def _complete(
        self,
        system_prompt: str,
        user_content: Any,
        max_tokens: int,
        json_mode: bool = True,
    ) -> str:
        if self._client is None:
            raise BusinessLogicError("OpenAI client is not configured")

        kwargs: Dict[str, Any] = {
            "model": self._model,
            "temperature": self._temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug("Calling OpenAI completion", model=self._model, json_mode=json_mode)
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            raise ServiceTimeoutError(f"OpenAI timeout: {e}", service="openai") from e
        except openai.APIConnectionError as e:
            raise ServiceConnectionError(f"OpenAI connection error: {e}", service="openai") from e
        except openai.RateLimitError as e:
            raise RateLimitError(f"OpenAI rate limit: {e}", service="openai") from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthenticationError(f"OpenAI rejected credentials: {e}") from e
        except openai.APIStatusError as e:
            if e.status_code >= 500:
                raise ServiceConnectionError(
                    f"OpenAI server error {e.status_code}", service="openai"
                ) from e
            raise ExternalAPIError(f"OpenAI error {e.status_code}: {e}", service="openai") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def _mime_type(image_bytes: bytes) -> str:
    if image_bytes.startswith(b"\x89PNG"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes.startswith(b"GIF8"):
        return "image/gif"
    return "image/jpeg"
