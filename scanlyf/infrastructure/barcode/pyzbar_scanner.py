"""Barcode scanning from images with Pillow + pyzbar.

Implements IImageBarcodeScanner. Decoding is CPU bound and runs in a
worker thread so the event loop is not blocked.
"""

import asyncio
import io
from typing import Optional

import structlog
from PIL import Image, UnidentifiedImageError

from scanlyf.domain.shared.value_objects import Barcode

logger = structlog.get_logger(__name__)

PRODUCT_SYMBOLOGIES = {"EAN13", "EAN8", "UPCA", "UPCE"}


class PyzbarBarcodeScanner:
    """
    Detects retail product barcodes in photos.

    Example:
        >>> scanner = PyzbarBarcodeScanner()
        >>> await scanner.scan(photo_bytes)
        '3017620422003'
    """

    async def scan(self, image_bytes: bytes) -> Optional[str]:
        """
        Return the first product barcode found, or None.

        Unreadable images yield None so the cascade continues with vision
        detection.
        """
        return await asyncio.to_thread(self._scan_sync, image_bytes)

    def _scan_sync(self, image_bytes: bytes) -> Optional[str]:
        # pyzbar loads the native zbar library on import
        try:
            from pyzbar import pyzbar
        except ImportError as e:
            logger.warning("zbar library unavailable, skipping barcode scan", error=str(e))
            return None

        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                decoded = pyzbar.decode(image.convert("L"))
        except (UnidentifiedImageError, OSError) as e:
            logger.debug("Image not decodable for barcode scan", error=str(e))
            return None

        for symbol in decoded:
            if symbol.type not in PRODUCT_SYMBOLOGIES:
                continue
            digits = symbol.data.decode("ascii", errors="ignore").strip()
            if Barcode.is_valid(digits):
                logger.info("Barcode found in image", barcode=digits, symbology=symbol.type)
                return digits
        return None
