"""Image download for URL inputs.

Implements IImageFetcher. Downloads are cached for one hour under
``image:<sha256(url)>`` so the same photo link sent twice is fetched once.
"""

import hashlib
from typing import Optional

import httpx
import structlog

from scanlyf.domain.shared.errors import ValidationError
from scanlyf.infrastructure.resilience.cache import IMAGE_TTL_SECONDS, TTLCache

logger = structlog.get_logger(__name__)

# Maximum image size: 10MB
MAX_IMAGE_SIZE = 10 * 1024 * 1024

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}


def image_cache_key(url: str) -> str:
    """Cache fingerprint of an image URL."""
    return "image:" + hashlib.sha256(url.encode("utf-8")).hexdigest()


class HttpImageFetcher:
    """
    Cached HTTP image downloader.

    Example:
        >>> fetcher = HttpImageFetcher(cache=TTLCache())
        >>> image_bytes = await fetcher.fetch("https://example.com/meal.jpg")
    """

    TIMEOUT_S = 15.0

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        ttl_seconds: float = IMAGE_TTL_SECONDS,
    ) -> None:
        self.cache = cache or TTLCache()
        self.ttl_seconds = ttl_seconds
        self._session = client
        self._owns_session = client is None

    def _ensure_session(self) -> httpx.AsyncClient:
        if self._session is None:
            self._session = httpx.AsyncClient(
                timeout=httpx.Timeout(self.TIMEOUT_S), follow_redirects=True
            )
            self._owns_session = True
        return self._session

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.aclose()
            self._session = None

    async def fetch(self, url: str) -> bytes:
        """
        Download image bytes (cached).

        Raises:
            ValidationError: Non-image content type or oversized body
            httpx.HTTPError: On download failure
        """
        return await self.cache.get_or_set(
            image_cache_key(url), lambda: self._download(url), self.ttl_seconds
        )

    async def _download(self, url: str) -> bytes:
        session = self._ensure_session()
        response = await session.get(url)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(f"URL does not point to an image ({content_type or 'unknown'})")

        content = response.content
        if not content:
            raise ValidationError("Downloaded image is empty")
        if len(content) > MAX_IMAGE_SIZE:
            raise ValidationError(f"Image too large: {len(content)} bytes")

        logger.info("Image downloaded", size=len(content), content_type=content_type)
        return content
