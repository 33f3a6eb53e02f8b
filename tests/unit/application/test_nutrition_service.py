"""Tests for NutritionService."""

from typing import Any

import httpx
import pytest

from scanlyf.application.nutrition.service import NutritionService
from scanlyf.domain.meal.nutrition.fallback import FALLBACK_SOURCE
from scanlyf.domain.meal.nutrition.models import NutritionRecord
from scanlyf.infrastructure.resilience.guard import ResilientCaller


@pytest.mark.asyncio
async def test_lookup_returns_collaborator_record(
    nutrition_service: NutritionService,
    mock_barcode_lookup: Any,
    banana_record: NutritionRecord,
    item_factory: Any,
) -> None:
    mock_barcode_lookup.lookup.return_value = banana_record

    record = await nutrition_service.lookup(item_factory("banana", unit="medium"))

    assert record == banana_record
    mock_barcode_lookup.lookup.assert_awaited_once_with("banana", 1, "medium")


@pytest.mark.asyncio
async def test_no_match_falls_back_to_estimate(
    nutrition_service: NutritionService, item_factory: Any
) -> None:
    record = await nutrition_service.lookup(item_factory("apple", quantity=2))

    assert record.source == FALLBACK_SOURCE
    assert record.calories == 190


@pytest.mark.asyncio
async def test_collaborator_failure_falls_back_to_estimate(
    nutrition_service: NutritionService, mock_barcode_lookup: Any, item_factory: Any
) -> None:
    mock_barcode_lookup.lookup.side_effect = httpx.ReadTimeout("slow")

    record = await nutrition_service.lookup(item_factory("pizza"))

    assert record.source == FALLBACK_SOURCE
    assert record.calories == 285


@pytest.mark.asyncio
async def test_without_collaborator_only_estimates(
    caller: ResilientCaller, item_factory: Any
) -> None:
    service = NutritionService(caller)

    record = await service.lookup(item_factory("coffee"))

    assert record.calories == 2


@pytest.mark.asyncio
async def test_lookup_many_keeps_item_order(
    nutrition_service: NutritionService,
    mock_barcode_lookup: Any,
    banana_record: NutritionRecord,
    item_factory: Any,
) -> None:
    async def lookup(name: str, quantity: float, unit: str) -> Any:
        return banana_record if name == "banana" else None

    mock_barcode_lookup.lookup.side_effect = lookup
    items = [item_factory("rice"), item_factory("banana"), item_factory("egg")]

    records = await nutrition_service.lookup_many(items)

    assert [r.name for r in records] == ["rice", "banana", "egg"]
    assert [r.source for r in records] == [FALLBACK_SOURCE, "openfoodfacts", FALLBACK_SOURCE]
    totals = NutritionService.totals(records)
    assert totals.calories == 130 + 105 + 70
