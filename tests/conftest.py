"""
Shared fixtures for scanlyf tests.

External collaborators are replaced with ``AsyncMock(spec=...)`` so tests
fail loudly when a port changes shape. The resilient caller uses a no-op
sleep so retries never slow the suite down.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from scanlyf.application.analysis.orchestrator import AnalysisOrchestrator
from scanlyf.application.confirmation.service import ConfirmationService
from scanlyf.application.detection.cascade import DetectionCascade
from scanlyf.application.detection.text_analyzer import TextAnalyzer
from scanlyf.application.nutrition.service import NutritionService
from scanlyf.application.personalization.service import PersonalizationService
from scanlyf.domain.meal.detection.models import (
    DetectedFoodItem,
    DetectionSource,
    FoodCategory,
)
from scanlyf.domain.meal.nutrition.models import NutritionRecord
from scanlyf.domain.shared.value_objects import Barcode
from scanlyf.domain.user.models import UserProfile
from scanlyf.infrastructure.ai.openai_client import OpenAIFoodClient
from scanlyf.infrastructure.barcode.pyzbar_scanner import PyzbarBarcodeScanner
from scanlyf.infrastructure.images.image_fetcher import HttpImageFetcher
from scanlyf.infrastructure.openfoodfacts.api_client import OpenFoodFactsClient
from scanlyf.infrastructure.persistence.in_memory_pending_repository import (
    InMemoryPendingAnalysisRepository,
)
from scanlyf.infrastructure.resilience.cache import TTLCache
from scanlyf.infrastructure.resilience.circuit_breaker import CircuitBreakerRegistry
from scanlyf.infrastructure.resilience.guard import ResilientCaller
from scanlyf.infrastructure.resilience.retry import RetryPolicy
from scanlyf.infrastructure.vision.google_vision_client import GoogleVisionClient

FROZEN_CLOCK_S = 1_000_000.0


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def sample_barcode() -> Barcode:
    """Barcode used by the end-to-end scenarios."""
    return Barcode(value="0123456789012")


@pytest.fixture
def sample_product() -> NutritionRecord:
    """Packaged product as returned by OpenFoodFacts."""
    return NutritionRecord(
        name="Chocolate Wafer Bar",
        brand="Crunchy Co",
        calories=520,
        protein=6.5,
        carbs=60.0,
        fat=28.0,
        fiber=2.0,
        sugar=45.0,
        sodium=120,
        portion_size="100g",
        ingredients="sugar, wheat flour, palm oil, cocoa, soy lecithin, e322, flavouring",
        source="openfoodfacts",
    )


@pytest.fixture
def banana_record() -> NutritionRecord:
    return NutritionRecord(
        name="banana",
        calories=105,
        protein=1.3,
        carbs=27,
        fat=0.4,
        fiber=3.1,
        sugar=14.4,
        sodium=1,
        portion_size="1 medium",
        source="openfoodfacts",
    )


def make_item(
    name: str,
    confidence: float = 0.8,
    quantity: float = 1,
    unit: str = "serving",
    source: DetectionSource = DetectionSource.PRIMARY_LABEL,
) -> DetectedFoodItem:
    return DetectedFoodItem(
        name=name,
        quantity=quantity,
        unit=unit,
        confidence=confidence,
        category=FoodCategory.OTHER,
        source=source,
    )


@pytest.fixture
def item_factory() -> Any:
    """Factory for detected items."""
    return make_item


@pytest.fixture
def abc_items() -> list[DetectedFoodItem]:
    """Three pending items A, B, C."""
    return [make_item("A"), make_item("B"), make_item("C")]


@pytest.fixture
def pregnancy_profile() -> UserProfile:
    return UserProfile(name="Asha", health_conditions=["pregnancy"], calorie_target=2000)


@pytest.fixture
def diabetic_profile() -> UserProfile:
    return UserProfile(
        name="Ravi",
        health_conditions=["diabetes"],
        goals={"weight_loss"},
        calorie_target=1800,
        consumed_calories=200,
    )


# ═══════════════════════════════════════════════════════════
# RESILIENCE FIXTURES
# ═══════════════════════════════════════════════════════════


async def _no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def breakers() -> CircuitBreakerRegistry:
    return CircuitBreakerRegistry(failure_threshold=5, reset_timeout_s=30)


@pytest.fixture
def caller(breakers: CircuitBreakerRegistry) -> ResilientCaller:
    """Caller with production policy shape but instant retries."""
    return ResilientCaller(
        breakers=breakers,
        retry_policy=RetryPolicy(max_retries=3, sleep=_no_sleep),
        timeout_s=5.0,
    )


@pytest.fixture
def frozen_clock_s() -> float:
    return FROZEN_CLOCK_S


@pytest.fixture
def frozen_cache() -> TTLCache:
    """Cache whose clock never moves."""
    return TTLCache(clock=lambda: FROZEN_CLOCK_S)


# ═══════════════════════════════════════════════════════════
# MOCK COLLABORATOR FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def mock_barcode_lookup() -> AsyncMock:
    """Mock OpenFoodFacts client.

    Default behavior: barcode and name lookups return None (not found).
    """
    client = AsyncMock(spec=OpenFoodFactsClient)
    client.name = "openfoodfacts"
    client.lookup_barcode.return_value = None
    client.lookup.return_value = None
    return client


@pytest.fixture
def mock_primary_vision() -> AsyncMock:
    """Mock Google Vision client (default: nothing detected)."""
    client = AsyncMock(spec=GoogleVisionClient)
    client.detect.return_value = []
    return client


@pytest.fixture
def mock_ai_client() -> AsyncMock:
    """Mock OpenAI client (configured, default: nothing detected)."""
    client = AsyncMock(spec=OpenAIFoodClient)
    client.is_configured = True
    client.detect.return_value = []
    client.parse.return_value = None
    client.recommend.return_value = "Nice choice!"
    return client


@pytest.fixture
def mock_barcode_scanner() -> AsyncMock:
    """Mock image barcode scanner (default: no barcode in image)."""
    scanner = AsyncMock(spec=PyzbarBarcodeScanner)
    scanner.scan.return_value = None
    return scanner


@pytest.fixture
def mock_image_fetcher() -> AsyncMock:
    fetcher = AsyncMock(spec=HttpImageFetcher)
    fetcher.fetch.return_value = b"\xff\xd8\xff\xe0fake-jpeg"
    return fetcher


# ═══════════════════════════════════════════════════════════
# SERVICE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def pending_repository() -> InMemoryPendingAnalysisRepository:
    return InMemoryPendingAnalysisRepository()


@pytest.fixture
def nutrition_service(caller: ResilientCaller, mock_barcode_lookup: Any) -> NutritionService:
    return NutritionService(caller, lookup=mock_barcode_lookup)


@pytest.fixture
def cascade(
    caller: ResilientCaller,
    mock_barcode_lookup: Any,
    mock_primary_vision: Any,
    mock_ai_client: Any,
    mock_barcode_scanner: Any,
    mock_image_fetcher: Any,
    frozen_cache: TTLCache,
) -> DetectionCascade:
    return DetectionCascade(
        caller,
        barcode_lookup=mock_barcode_lookup,
        primary_vision=mock_primary_vision,
        secondary_vision=mock_ai_client,
        barcode_scanner=mock_barcode_scanner,
        image_fetcher=mock_image_fetcher,
        cache=frozen_cache,
    )


@pytest.fixture
def confirmation_service(
    pending_repository: InMemoryPendingAnalysisRepository,
    nutrition_service: NutritionService,
) -> ConfirmationService:
    return ConfirmationService(pending_repository, nutrition_service)


@pytest.fixture
def orchestrator(
    caller: ResilientCaller,
    cascade: DetectionCascade,
    nutrition_service: NutritionService,
    confirmation_service: ConfirmationService,
    mock_ai_client: Any,
) -> AnalysisOrchestrator:
    """Orchestrator wired with mocks (no structured text parser)."""
    return AnalysisOrchestrator(
        cascade=cascade,
        text_analyzer=TextAnalyzer(caller, nutrition_service),
        confirmation=confirmation_service,
        nutrition=nutrition_service,
        personalization=PersonalizationService(caller, recommender=mock_ai_client),
    )
