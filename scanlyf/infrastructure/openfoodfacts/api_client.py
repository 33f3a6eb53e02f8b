"""OpenFoodFacts API client.

Implements IBarcodeLookup (product by barcode) and INutritionLookup
(product search by food name).

Key Features:
- OpenFoodFacts API v2 product lookup, v1 search
- Nutrient extraction with fallbacks (energy kJ -> kcal, salt -> sodium)
- 404 / status=0 mapped to "not found" (None), never an error
- Server errors raised as httpx.HTTPStatusError for the retry policy

The client performs a single HTTP request per call; retries, circuit
breaking and caching are applied by the caller through ResilientCaller.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from scanlyf.domain.meal.nutrition.models import NutritionRecord
from scanlyf.domain.shared.value_objects import Barcode

logger = structlog.get_logger(__name__)


class OpenFoodFactsClient:
    """
    OpenFoodFacts API client.

    Example:
        >>> async with OpenFoodFactsClient() as client:
        ...     record = await client.lookup_barcode(Barcode(value="3017620422003"))
        ...     if record:
        ...         print(f"Found: {record.name} ({record.calories} kcal/100g)")
    """

    BASE_URL = "https://world.openfoodfacts.org"
    USER_AGENT = "Scanlyf/1.0 (Nutrition Tracking)"
    TIMEOUT_S = 8.0
    SOURCE = "openfoodfacts"

    def __init__(
        self,
        base_url: Optional[str] = None,
        name: str = "openfoodfacts",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: API host (alternative mirrors use the same API)
            name: Dependency name used as circuit breaker key
            client: Pre-built httpx client (tests inject MockTransport)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self._name = name
        self._session: Optional[httpx.AsyncClient] = client
        self._owns_session = client is None

    @property
    def name(self) -> str:
        return self._name

    async def __aenter__(self) -> "OpenFoodFactsClient":
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    def _ensure_session(self) -> httpx.AsyncClient:
        if self._session is None:
            self._session = httpx.AsyncClient(
                timeout=httpx.Timeout(self.TIMEOUT_S),
                headers={"User-Agent": self.USER_AGENT},
            )
            self._owns_session = True
        return self._session

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.aclose()
            self._session = None

    async def lookup_barcode(self, barcode: Barcode) -> Optional[NutritionRecord]:
        """
        Look up product by barcode.

        Args:
            barcode: Validated barcode

        Returns:
            NutritionRecord (per 100 g) if found, None if not found

        Raises:
            httpx.HTTPStatusError: On 4xx (other than 404) and 5xx responses
            httpx.TransportError: On network failures
        """
        session = self._ensure_session()
        url = f"{self.base_url}/api/v2/product/{barcode.value}.json"

        logger.debug("Looking up barcode", barcode=barcode.value, source=self._name)
        response = await session.get(url)

        if response.status_code == 404:
            logger.info("Barcode not found", barcode=barcode.value, source=self._name)
            return None

        response.raise_for_status()
        data = response.json()

        product = data.get("product") or {}
        if data.get("status") != 1 or not product:
            logger.info(
                "Barcode not found (status=0)", barcode=barcode.value, source=self._name
            )
            return None

        record = self._map_product(product, fallback_name="Unknown product")
        logger.info(
            "Barcode lookup successful",
            barcode=barcode.value,
            product_name=record.name,
            source=self._name,
        )
        return record

    async def lookup(
        self, food_name: str, quantity: float = 1, unit: str = "serving"
    ) -> Optional[NutritionRecord]:
        """
        Search product by food name and scale per-100g values by quantity.

        Returns:
            NutritionRecord for the best match, None if nothing matched
        """
        session = self._ensure_session()
        response = await session.get(
            f"{self.base_url}/cgi/search.pl",
            params={
                "search_terms": food_name,
                "search_simple": 1,
                "action": "process",
                "json": 1,
                "page_size": 5,
            },
        )
        response.raise_for_status()
        products = response.json().get("products") or []
        if not products:
            logger.info("No search results", query=food_name, source=self._name)
            return None

        record = self._map_product(products[0], fallback_name=food_name)
        scale = quantity if quantity > 0 else 1
        return record.model_copy(
            update={
                "calories": round(record.calories * scale),
                "protein": round(record.protein * scale, 1),
                "carbs": round(record.carbs * scale, 1),
                "fat": round(record.fat * scale, 1),
                "fiber": round((record.fiber or 0) * scale, 1),
                "sugar": round((record.sugar or 0) * scale, 1),
                "sodium": round((record.sodium or 0) * scale),
                "portion_size": f"{quantity:g} {unit}",
                "risk_analysis": None,
            }
        )

    def _map_product(self, product: Dict[str, Any], fallback_name: str) -> NutritionRecord:
        """Map OpenFoodFacts product JSON to NutritionRecord."""
        name = product.get("product_name") or product.get("generic_name") or fallback_name
        brands = product.get("brands") or ""
        brand = brands.split(",")[0].strip() if brands else None
        nutrients = self._extract_nutrients(product)
        return NutritionRecord(
            name=name,
            brand=brand or None,
            portion_size=product.get("serving_size") or "100g",
            ingredients=product.get("ingredients_text") or None,
            source=self.SOURCE,
            **nutrients,
        )

    @staticmethod
    def _extract_nutrients(product: Dict[str, Any]) -> Dict[str, Optional[float]]:
        """
        Extract per-100g nutrients.

        - Calories: prefer energy-kcal_100g, fallback to energy_100g / 4.184
        - Sodium (mg): prefer sodium_100g (g) * 1000, fallback to salt_100g * 400
        """
        nutriments = product.get("nutriments") or {}

        def get_float(key: str) -> Optional[float]:
            value = nutriments.get(key)
            try:
                return float(value) if value is not None else None
            except (TypeError, ValueError):
                return None

        calories = get_float("energy-kcal_100g")
        if calories is None:
            energy_kj = get_float("energy_100g")
            if energy_kj is not None:
                calories = energy_kj / 4.184

        sodium_g = get_float("sodium_100g")
        if sodium_g is not None:
            sodium: Optional[float] = sodium_g * 1000
        else:
            salt_g = get_float("salt_100g")
            sodium = salt_g * 400 if salt_g is not None else None

        def rounded(value: Optional[float], digits: int = 1) -> Optional[float]:
            return round(max(value, 0.0), digits) if value is not None else None

        return {
            "calories": float(round(max(calories or 0.0, 0.0))),
            "protein": rounded(get_float("proteins_100g")) or 0.0,
            "carbs": rounded(get_float("carbohydrates_100g")) or 0.0,
            "fat": rounded(get_float("fat_100g")) or 0.0,
            "fiber": rounded(get_float("fiber_100g")),
            "sugar": rounded(get_float("sugars_100g")),
            "sodium": rounded(sodium, 0),
        }
