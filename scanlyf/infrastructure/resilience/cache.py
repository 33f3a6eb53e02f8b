"""In-memory TTL cache.

Read-through guard in front of external lookups with a stable key
(barcode digits, image URL digest). Owned by the service that uses it,
never a module global, so tests get isolated state.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

BARCODE_TTL_SECONDS = 24 * 60 * 60
IMAGE_TTL_SECONDS = 60 * 60


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


class TTLCache:
    """
    Keyed cache where every entry carries its own TTL.

    Example:
        >>> cache = TTLCache()
        >>> cache.set("barcode:3017620422003", product, ttl_seconds=86400)
        >>> cache.get("barcode:3017620422003") is product
        True
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock
        self._data: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _now(self) -> float:
        return self._clock() if self._clock else time.time()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._now():
                del self._data[key]
                logger.debug("Cache expired", key=key)
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"TTL must be positive: {ttl_seconds}")
        with self._lock:
            self._data[key] = CacheEntry(
                key=key, value=value, expires_at=self._now() + ttl_seconds
            )

    def expires_at(self, key: str) -> Optional[float]:
        """Expiry timestamp of a live entry (None if absent)."""
        with self._lock:
            entry = self._data.get(key)
            return entry.expires_at if entry else None

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._now()
        with self._lock:
            expired = [k for k, e in self._data.items() if e.expires_at <= now]
            for k in expired:
                del self._data[k]
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl_seconds: float,
    ) -> Any:
        """
        Return cached value or compute, store and return it.

        ``None`` results are not cached, so a later call tries again.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache hit", key=key)
            return cached

        logger.debug("Cache miss", key=key)
        value = await factory()
        if value is not None:
            self.set(key, value, ttl_seconds)
        return value
