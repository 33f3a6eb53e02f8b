"""
Dependency wiring.

Builds the orchestrator with concrete adapters chosen from Settings.
Collaborators whose credentials are missing are left out, and the
pipeline degrades around them (no Google key: AI vision only; no
OpenAI key: pattern text parser and rule-based personalization).
"""

from datetime import timedelta
from typing import Optional, Sequence

import structlog

from scanlyf.application.analysis.orchestrator import AnalysisOrchestrator
from scanlyf.application.confirmation.service import ConfirmationService
from scanlyf.application.detection.cascade import DetectionCascade
from scanlyf.application.detection.text_analyzer import TextAnalyzer
from scanlyf.application.nutrition.service import NutritionService
from scanlyf.application.personalization.service import PersonalizationService
from scanlyf.config import Settings, get_settings
from scanlyf.domain.meal.detection.rules import FoodClassifier
from scanlyf.domain.meal.nutrition.ports import IBarcodeLookup
from scanlyf.domain.meal.risk.engine import IngredientRiskEngine
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
from scanlyf.logging import configure_logging

logger = structlog.get_logger(__name__)


def build_caller(settings: Settings) -> ResilientCaller:
    """Resilient caller configured from settings."""
    return ResilientCaller(
        breakers=CircuitBreakerRegistry(
            failure_threshold=settings.breaker_threshold,
            reset_timeout_s=settings.breaker_reset_s,
        ),
        retry_policy=RetryPolicy(
            max_retries=settings.retry_max,
            initial_delay_s=settings.retry_initial_delay_s,
            backoff_multiplier=settings.retry_backoff,
        ),
        timeout_s=settings.call_timeout_s,
    )


def build_orchestrator(
    settings: Optional[Settings] = None,
    alternative_barcode_sources: Sequence[IBarcodeLookup] = (),
    configure_logs: bool = False,
) -> AnalysisOrchestrator:
    """
    Build a fully wired orchestrator.

    Args:
        settings: Settings (default: read from environment)
        alternative_barcode_sources: Extra barcode databases tried in order
            after OpenFoodFacts reports "not found"
        configure_logs: Apply structlog configuration from settings

    Example:
        >>> orchestrator = build_orchestrator()
        >>> result = await orchestrator.analyze(
        ...     AnalysisRequest(input="2 slices of bread", input_type="text")
        ... )
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings.log_level, settings.log_json)

    caller = build_caller(settings)
    cache = TTLCache()
    classifier = FoodClassifier()
    risk_engine = IngredientRiskEngine()

    off_client = OpenFoodFactsClient(base_url=settings.openfoodfacts_base_url)
    openai_client = OpenAIFoodClient(
        api_key=settings.openai_api_key, model=settings.openai_vision_model
    )
    primary_vision = (
        GoogleVisionClient(api_key=settings.google_vision_api_key)
        if settings.google_vision_api_key
        else None
    )

    nutrition = NutritionService(
        caller, lookup=off_client, dependency_name="openfoodfacts_search"
    )
    cascade = DetectionCascade(
        caller,
        barcode_lookup=off_client,
        primary_vision=primary_vision,
        secondary_vision=openai_client,
        barcode_scanner=PyzbarBarcodeScanner(),
        image_fetcher=HttpImageFetcher(cache=cache),
        alternative_barcode_sources=alternative_barcode_sources,
        risk_engine=risk_engine,
        classifier=classifier,
        cache=cache,
    )
    text_analyzer = TextAnalyzer(
        caller,
        nutrition,
        parser=openai_client if openai_client.is_configured else None,
        classifier=classifier,
    )
    confirmation = ConfirmationService(
        InMemoryPendingAnalysisRepository(),
        nutrition,
        classifier=classifier,
        pending_ttl=timedelta(seconds=settings.pending_ttl_s),
    )
    personalization = PersonalizationService(
        caller, recommender=openai_client if openai_client.is_configured else None
    )

    logger.info(
        "Orchestrator built",
        primary_vision=primary_vision is not None,
        ai_configured=openai_client.is_configured,
        alternative_barcode_sources=len(alternative_barcode_sources),
    )
    return AnalysisOrchestrator(
        cascade=cascade,
        text_analyzer=text_analyzer,
        confirmation=confirmation,
        nutrition=nutrition,
        personalization=personalization,
        risk_engine=risk_engine,
    )
