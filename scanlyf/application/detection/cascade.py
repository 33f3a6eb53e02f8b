"""
Detection-and-fallback cascade.

Turns a barcode or an image into a DetectionOutcome:

Barcode:
1. Validate format (no external call on mismatch)
2. Cache (24h) -> primary product database -> alternative sources
3. Score product ingredients with the risk engine

Image:
1. Resolve payload (URL download, data URI, base64)
2. Barcode scan -> redirect to the barcode path
3. Primary vision detector -> secondary AI detector
4. Enrich labels with portion and category, apply the decision rule

External failures are retried by the resilience layer first; once they
surface here they become ``Failed`` outcomes, never exceptions.
"""

import base64
import binascii
import re
import time
from typing import Optional, Sequence, Union

import structlog

from scanlyf.domain.meal.detection.models import (
    AutoConfirmed,
    DetectedFoodItem,
    DetectionOutcome,
    DetectionSource,
    Failed,
    InputType,
    NeedsConfirmation,
    RawDetection,
)
from scanlyf.domain.meal.detection.ports import (
    IImageBarcodeScanner,
    IImageFetcher,
    IPrimaryVisionDetector,
    ISecondaryVisionDetector,
)
from scanlyf.domain.meal.detection.rules import FoodClassifier
from scanlyf.domain.meal.nutrition.models import NutritionRecord
from scanlyf.domain.meal.nutrition.ports import IBarcodeLookup
from scanlyf.domain.meal.risk.engine import IngredientRiskEngine
from scanlyf.domain.shared.errors import (
    AuthenticationError,
    BusinessLogicError,
    ExternalAPIError,
    ValidationError,
)
from scanlyf.domain.shared.value_objects import Barcode
from scanlyf.domain.user.models import UserProfile
from scanlyf.infrastructure.resilience.cache import BARCODE_TTL_SECONDS, TTLCache
from scanlyf.infrastructure.resilience.guard import ResilientCaller

logger = structlog.get_logger(__name__)

AUTO_CONFIRM_THRESHOLD = 0.9
DATA_URI_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)

PRIMARY_VISION = "google_vision"
SECONDARY_VISION = "openai_vision"
IMAGE_FETCH = "image_fetch"


class DetectionCascade:
    """
    Barcode and image detection with ordered fallbacks.

    Example:
        >>> cascade = DetectionCascade(caller, barcode_lookup=off_client, ...)
        >>> outcome = await cascade.detect("3017620422003", InputType.BARCODE)
        >>> outcome.kind
        'auto_confirmed'
    """

    def __init__(
        self,
        caller: ResilientCaller,
        barcode_lookup: IBarcodeLookup,
        primary_vision: Optional[IPrimaryVisionDetector] = None,
        secondary_vision: Optional[ISecondaryVisionDetector] = None,
        barcode_scanner: Optional[IImageBarcodeScanner] = None,
        image_fetcher: Optional[IImageFetcher] = None,
        alternative_barcode_sources: Sequence[IBarcodeLookup] = (),
        risk_engine: Optional[IngredientRiskEngine] = None,
        classifier: Optional[FoodClassifier] = None,
        cache: Optional[TTLCache] = None,
        auto_confirm_threshold: float = AUTO_CONFIRM_THRESHOLD,
    ) -> None:
        self._caller = caller
        self._barcode_sources = [barcode_lookup, *alternative_barcode_sources]
        self._primary_vision = primary_vision
        self._secondary_vision = secondary_vision
        self._barcode_scanner = barcode_scanner
        self._image_fetcher = image_fetcher
        self._risk_engine = risk_engine or IngredientRiskEngine()
        self._classifier = classifier or FoodClassifier()
        self.cache = cache or TTLCache()
        self.auto_confirm_threshold = auto_confirm_threshold

    async def detect(
        self,
        payload: Union[bytes, str],
        input_type: InputType,
        profile: Optional[UserProfile] = None,
    ) -> DetectionOutcome:
        """
        Dispatch on input type.

        Raises:
            ValidationError: Malformed barcode or image payload
            BusinessLogicError: Text input (handled by TextAnalyzer)
        """
        if input_type == InputType.BARCODE:
            raw = payload.decode("ascii", errors="replace") if isinstance(payload, bytes) else payload
            return await self.detect_barcode(raw, profile)
        if input_type == InputType.IMAGE:
            return await self.detect_image(payload, profile)
        raise BusinessLogicError(f"Cascade does not handle input type: {input_type}")

    # ═══════════════════════════════════════════════════════════
    # BARCODE
    # ═══════════════════════════════════════════════════════════

    async def detect_barcode(
        self, raw: str, profile: Optional[UserProfile] = None
    ) -> DetectionOutcome:
        """
        Resolve a barcode to a product.

        Raises:
            ValidationError: If ``raw`` is not 8-13 digits
        """
        barcode = Barcode.parse(raw)

        record = self.cache.get(barcode.cache_key)
        if record is not None:
            logger.info("Barcode cache hit", barcode=barcode.value)
        else:
            record, error = await self._lookup_barcode_sources(barcode)
            if record is None:
                if error is not None:
                    return Failed(
                        reason=f"Product lookup unavailable: {error}",
                        error_type=error.error_type,
                    )
                return Failed(reason="barcode not found")
            self.cache.set(barcode.cache_key, record, BARCODE_TTL_SECONDS)

        scored = record.model_copy(
            update={"risk_analysis": self._risk_engine.score(record.ingredients, profile)}
        )
        item = DetectedFoodItem(
            name=scored.name,
            quantity=1,
            unit="serving",
            confidence=1.0,
            category=self._classifier.category(scored.name),
            source=DetectionSource.BARCODE,
        )
        return AutoConfirmed(item=item, nutrition=scored)

    async def _lookup_barcode_sources(
        self, barcode: Barcode
    ) -> tuple[Optional[NutritionRecord], Optional[ExternalAPIError]]:
        """Try each source in order; returns (record, last error)."""
        last_error: Optional[ExternalAPIError] = None
        for source in self._barcode_sources:
            try:
                record = await self._caller.call(source.name, source.lookup_barcode, barcode)
            except ExternalAPIError as e:
                logger.warning(
                    "Barcode source failed",
                    barcode=barcode.value,
                    source=source.name,
                    error_type=e.error_type,
                )
                last_error = e
                continue
            if record is not None:
                logger.info(
                    "Barcode resolved",
                    barcode=barcode.value,
                    source=source.name,
                    product_name=record.name,
                )
                return record, None
            logger.debug("Barcode not in source", barcode=barcode.value, source=source.name)
        return None, last_error

    # ═══════════════════════════════════════════════════════════
    # IMAGE
    # ═══════════════════════════════════════════════════════════

    async def detect_image(
        self, payload: Union[bytes, str], profile: Optional[UserProfile] = None
    ) -> DetectionOutcome:
        """
        Identify food in an image.

        Raises:
            ValidationError: If the payload cannot be decoded
        """
        start_time = time.time()
        try:
            image_bytes = await self._resolve_image(payload)
        except (ExternalAPIError, AuthenticationError) as e:
            return Failed(
                reason=f"Could not download image: {e}",
                needs_text_input=True,
                error_type=e.error_type,
            )

        digits = await self._scan_barcode(image_bytes)
        if digits:
            logger.info("Barcode found in image, switching to barcode lookup", barcode=digits)
            return await self.detect_barcode(digits, profile)

        items = await self._detect_primary(image_bytes)
        if not items:
            fallback = await self._detect_secondary(image_bytes)
            if isinstance(fallback, Failed):
                return fallback
            items = fallback

        outcome = self.decide(items)
        logger.info(
            "Image detection complete",
            outcome=outcome.kind,
            items=len(items),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return outcome

    async def _scan_barcode(self, image_bytes: bytes) -> Optional[str]:
        """Barcode scan is best effort: failures fall through to vision."""
        if self._barcode_scanner is None:
            return None
        try:
            return await self._barcode_scanner.scan(image_bytes)
        except Exception as e:
            logger.warning(
                "Barcode scan failed, continuing with vision",
                error=str(e),
                error_class=type(e).__name__,
            )
            return None

    async def _resolve_image(self, payload: Union[bytes, str]) -> bytes:
        if isinstance(payload, bytes):
            if not payload:
                raise ValidationError("Image payload is empty")
            return payload

        text = payload.strip()
        if text.startswith(("http://", "https://")):
            if self._image_fetcher is None:
                raise ValidationError("Image URLs are not supported without an image fetcher")
            return await self._caller.call(IMAGE_FETCH, self._image_fetcher.fetch, text)

        encoded = "".join(DATA_URI_PREFIX.sub("", text).split())
        try:
            image_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"Image payload is not valid base64: {e}") from e
        if not image_bytes:
            raise ValidationError("Image payload is empty")
        return image_bytes

    async def _detect_primary(self, image_bytes: bytes) -> list[DetectedFoodItem]:
        if self._primary_vision is None:
            return []
        try:
            raw = await self._caller.call(PRIMARY_VISION, self._primary_vision.detect, image_bytes)
        except (ExternalAPIError, AuthenticationError) as e:
            logger.warning(
                "Primary vision failed, trying AI vision",
                error=str(e),
                error_type=e.error_type,
            )
            return []
        return [self.enrich(detection) for detection in raw]

    async def _detect_secondary(
        self, image_bytes: bytes
    ) -> Union[list[DetectedFoodItem], Failed]:
        secondary = self._secondary_vision
        if secondary is None or not secondary.is_configured:
            logger.info("AI vision not configured, asking for text input")
            return Failed(reason="Could not identify food in image", needs_text_input=True)

        try:
            detected = await self._caller.call(SECONDARY_VISION, secondary.detect, image_bytes)
        except (ExternalAPIError, AuthenticationError) as e:
            logger.warning("AI vision failed", error=str(e), error_type=e.error_type)
            return Failed(
                reason="Could not identify food in image",
                needs_text_input=True,
                error_type=e.error_type,
            )

        if not detected:
            return Failed(reason="Could not identify food in image", needs_text_input=True)
        return [
            item.model_copy(update={"category": self._classifier.category(item.name)})
            for item in detected
        ]

    # ═══════════════════════════════════════════════════════════
    # ENRICHMENT AND DECISION
    # ═══════════════════════════════════════════════════════════

    def enrich(self, detection: RawDetection) -> DetectedFoodItem:
        """Add portion and category estimates to a raw label."""
        quantity, unit = self._classifier.portion(detection.name)
        return DetectedFoodItem(
            name=detection.name,
            quantity=quantity,
            unit=unit,
            confidence=detection.confidence,
            category=self._classifier.category(detection.name),
            source=detection.source,
        )

    def decide(self, items: Sequence[DetectedFoodItem]) -> DetectionOutcome:
        """Exactly one item above the threshold auto-confirms."""
        if not items:
            return Failed(reason="Could not identify food in image", needs_text_input=True)
        if len(items) == 1 and items[0].confidence > self.auto_confirm_threshold:
            return AutoConfirmed(item=items[0])
        return NeedsConfirmation(items=list(items))
