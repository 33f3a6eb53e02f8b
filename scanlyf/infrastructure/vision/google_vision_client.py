"""Google Cloud Vision REST client.

Implements IPrimaryVisionDetector using ``images:annotate`` with label and
web detection, then filters the annotations down to concrete foods.
"""

import base64
from typing import Any, Dict, List, Optional

import httpx
import structlog

from scanlyf.domain.meal.detection.models import DetectionSource, RawDetection
from scanlyf.domain.meal.detection.rules import is_excluded_label, names_known_food
from scanlyf.domain.shared.errors import AuthenticationError

logger = structlog.get_logger(__name__)

BEST_GUESS_CONFIDENCE = 0.9
WEB_ENTITY_MIN_SCORE = 0.5


class GoogleVisionClient:
    """
    Google Vision label/web detection client.

    Example:
        >>> async with GoogleVisionClient(api_key="...") as vision:
        ...     detections = await vision.detect(image_bytes)
        ...     print([d.name for d in detections])
    """

    ANNOTATE_URL = "https://vision.googleapis.com/v1/images:annotate"
    TIMEOUT_S = 15.0

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        max_labels: int = 10,
        max_web_results: int = 5,
    ) -> None:
        if not api_key:
            raise AuthenticationError("Google Vision API key is required")
        self.api_key = api_key
        self.max_labels = max_labels
        self.max_web_results = max_web_results
        self._session = client
        self._owns_session = client is None

    async def __aenter__(self) -> "GoogleVisionClient":
        self._ensure_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def _ensure_session(self) -> httpx.AsyncClient:
        if self._session is None:
            self._session = httpx.AsyncClient(timeout=httpx.Timeout(self.TIMEOUT_S))
            self._owns_session = True
        return self._session

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.aclose()
            self._session = None

    async def detect(self, image_bytes: bytes) -> List[RawDetection]:
        """
        Detect foods in an image.

        Returns:
            Filtered detections, highest confidence first

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
        """
        session = self._ensure_session()
        payload = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": [
                        {"type": "LABEL_DETECTION", "maxResults": self.max_labels},
                        {"type": "WEB_DETECTION", "maxResults": self.max_web_results},
                    ],
                }
            ]
        }
        response = await session.post(
            self.ANNOTATE_URL, params={"key": self.api_key}, json=payload
        )
        response.raise_for_status()

        responses = response.json().get("responses") or [{}]
        result = responses[0]
        if "error" in result:
            logger.warning("Vision annotate error", error=result["error"])
            return []

        detections = extract_food_items(result)
        logger.info(
            "Vision detection complete",
            detected=len(detections),
            top=detections[0].name if detections else None,
        )
        return detections


def extract_food_items(annotation: Dict[str, Any]) -> List[RawDetection]:
    """
    Filter a Vision annotation down to concrete foods.

    - Labels: drop generic categories, keep known foods
    - Best guess labels: always kept at confidence 0.9
    - Web entities: score > 0.5, not generic, known food
    - Result de-duplicated by lower-cased name, sorted by confidence
    """
    detected: List[RawDetection] = []
    added = set()

    for label in annotation.get("labelAnnotations") or []:
        name = (label.get("description") or "").strip()
        lowered = name.lower()
        if not name or is_excluded_label(name) or lowered in added:
            continue
        if names_known_food(name):
            added.add(lowered)
            detected.append(
                RawDetection(
                    name=name,
                    confidence=_clamp(label.get("score", 0.0)),
                    source=DetectionSource.PRIMARY_LABEL,
                )
            )

    web = annotation.get("webDetection") or {}
    for guess in web.get("bestGuessLabels") or []:
        name = (guess.get("label") or "").strip()
        if name:
            detected.append(
                RawDetection(
                    name=name,
                    confidence=BEST_GUESS_CONFIDENCE,
                    source=DetectionSource.PRIMARY_LABEL,
                )
            )

    for entity in web.get("webEntities") or []:
        name = (entity.get("description") or "").strip()
        score = entity.get("score") or 0.0
        lowered = name.lower()
        if not name or score <= WEB_ENTITY_MIN_SCORE or lowered in added:
            continue
        if is_excluded_label(name) or not names_known_food(name):
            continue
        added.add(lowered)
        detected.append(
            RawDetection(
                name=name, confidence=_clamp(score), source=DetectionSource.WEB_ENTITY
            )
        )

    unique: List[RawDetection] = []
    seen = set()
    for item in sorted(detected, key=lambda d: d.confidence, reverse=True):
        key = item.name.lower()
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


def _clamp(score: Any) -> float:
    try:
        return min(1.0, max(0.0, float(score)))
    except (TypeError, ValueError):
        return 0.0
