"""
Ports (Interfaces) for detection collaborators.

Defines the interfaces the detection cascade depends on. Concrete
adapters live in the infrastructure layer.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Optional, Protocol, runtime_checkable

from scanlyf.domain.meal.detection.models import DetectedFoodItem, RawDetection


@runtime_checkable
class IPrimaryVisionDetector(Protocol):
    """
    Port for the primary image label detector.

    Returns raw labels sorted by confidence; an empty list means nothing
    food-like was recognized (the cascade then tries the secondary
    detector).
    """

    async def detect(self, image_bytes: bytes) -> list[RawDetection]:
        """
        Detect food labels in an image.

        Args:
            image_bytes: Raw image content

        Returns:
            Raw detections, highest confidence first

        Raises:
            ExternalAPIError: If the detector call fails
        """
        ...


@runtime_checkable
class ISecondaryVisionDetector(Protocol):
    """
    Port for the AI vision fallback detector.

    May be unconfigured (no API key), in which case the cascade treats it
    as permanently unavailable and never calls ``detect``.
    """

    @property
    def is_configured(self) -> bool:
        """Whether the detector can be called at all."""
        ...

    async def detect(self, image_bytes: bytes) -> list[DetectedFoodItem]:
        """
        Detect food items with quantities.

        Raises:
            ExternalAPIError: If the model call fails
        """
        ...


@runtime_checkable
class IImageBarcodeScanner(Protocol):
    """Port for extracting a product barcode from an image."""

    async def scan(self, image_bytes: bytes) -> Optional[str]:
        """
        Scan image for a barcode.

        Returns:
            Barcode digits, or None when no barcode is visible
        """
        ...


@runtime_checkable
class IImageFetcher(Protocol):
    """Port for downloading images referenced by URL."""

    async def fetch(self, url: str) -> bytes:
        """
        Download image bytes.

        Raises:
            ValidationError: If the URL does not point to an image
            ExternalAPIError: If the download fails
        """
        ...
