"""Tests for ConfirmationService."""

import asyncio
from typing import Any, Optional

import pytest
from freezegun import freeze_time

from scanlyf.application.confirmation.service import ConfirmationService
from scanlyf.domain.meal.confirmation.models import ConfirmationState
from scanlyf.domain.meal.detection.models import DetectedFoodItem, DetectionSource
from scanlyf.domain.shared.errors import BusinessLogicError, NotFoundError
from scanlyf.domain.shared.value_objects import AnalysisId
from scanlyf.infrastructure.persistence.in_memory_pending_repository import (
    InMemoryPendingAnalysisRepository,
)


@pytest.mark.asyncio
async def test_create_pending_stores_items(
    confirmation_service: ConfirmationService,
    pending_repository: InMemoryPendingAnalysisRepository,
    abc_items: list[DetectedFoodItem],
) -> None:
    pending = await confirmation_service.create_pending(abc_items)

    assert pending.state == ConfirmationState.PENDING
    assert await pending_repository.get(pending.analysis_id) == pending


@pytest.mark.asyncio
async def test_yes_confirms_items_as_detected(
    confirmation_service: ConfirmationService,
    pending_repository: InMemoryPendingAnalysisRepository,
    abc_items: list[DetectedFoodItem],
) -> None:
    pending = await confirmation_service.create_pending(abc_items)

    final = await confirmation_service.resolve(pending.analysis_id.value, "Yes")

    assert final.state == ConfirmationState.FINALIZED
    assert final.corrections.confirmed
    assert final.items == abc_items
    assert len(final.nutrition) == 3
    assert final.totals.calories == 300
    assert await pending_repository.get(pending.analysis_id) is None


@pytest.mark.asyncio
async def test_corrections_are_applied(
    confirmation_service: ConfirmationService,
    mock_barcode_lookup: Any,
    abc_items: list[DetectedFoodItem],
) -> None:
    pending = await confirmation_service.create_pending(abc_items)

    final = await confirmation_service.resolve(pending.analysis_id.value, "change 1 to X, add Y")

    assert [i.name for i in final.items] == ["X", "B", "C", "Y"]
    assert final.items[-1].source == DetectionSource.USER
    assert [r.name for r in final.nutrition] == ["X", "B", "C", "Y"]
    assert mock_barcode_lookup.lookup.await_count == 4


@pytest.mark.asyncio
async def test_unrecognized_reply_confirms(
    confirmation_service: ConfirmationService, abc_items: list[DetectedFoodItem]
) -> None:
    pending = await confirmation_service.create_pending(abc_items)

    final = await confirmation_service.resolve(pending.analysis_id.value, "looks fine I guess")

    assert [i.name for i in final.items] == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_removing_everything_is_rejected_and_keeps_pending(
    confirmation_service: ConfirmationService,
    pending_repository: InMemoryPendingAnalysisRepository,
    abc_items: list[DetectedFoodItem],
) -> None:
    pending = await confirmation_service.create_pending(abc_items)

    with pytest.raises(BusinessLogicError):
        await confirmation_service.resolve(
            pending.analysis_id.value, "remove item 1, remove item 2, remove item 3"
        )

    assert await pending_repository.get(pending.analysis_id) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("analysis_id", ["bogus", "", AnalysisId.generate().value])
async def test_unknown_analysis(
    confirmation_service: ConfirmationService, analysis_id: str
) -> None:
    with pytest.raises(NotFoundError):
        await confirmation_service.resolve(analysis_id, "yes")


@pytest.mark.asyncio
async def test_resolving_twice_fails(
    confirmation_service: ConfirmationService, abc_items: list[DetectedFoodItem]
) -> None:
    pending = await confirmation_service.create_pending(abc_items)
    await confirmation_service.resolve(pending.analysis_id.value, "yes")

    with pytest.raises(NotFoundError):
        await confirmation_service.resolve(pending.analysis_id.value, "yes")


@pytest.mark.asyncio
async def test_concurrent_replies_finalize_once(
    confirmation_service: ConfirmationService,
    pending_repository: InMemoryPendingAnalysisRepository,
    mock_barcode_lookup: Any,
    abc_items: list[DetectedFoodItem],
) -> None:
    async def slow_lookup(name: str, quantity: float, unit: str) -> Optional[Any]:
        await asyncio.sleep(0)
        return None

    mock_barcode_lookup.lookup.side_effect = slow_lookup
    pending = await confirmation_service.create_pending(abc_items)

    results = await asyncio.gather(
        confirmation_service.resolve(pending.analysis_id.value, "yes"),
        confirmation_service.resolve(pending.analysis_id.value, "remove item 1"),
        return_exceptions=True,
    )

    finalized = [r for r in results if not isinstance(r, Exception)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(finalized) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], NotFoundError)
    assert await pending_repository.get(pending.analysis_id) is None


@pytest.mark.asyncio
async def test_expired_analysis_is_not_found(
    confirmation_service: ConfirmationService, abc_items: list[DetectedFoodItem]
) -> None:
    with freeze_time("2026-05-10 18:30:00") as frozen:
        pending = await confirmation_service.create_pending(abc_items)

        frozen.tick(16 * 60)

        with pytest.raises(NotFoundError):
            await confirmation_service.resolve(pending.analysis_id.value, "yes")


@pytest.mark.asyncio
async def test_cancel(
    confirmation_service: ConfirmationService, abc_items: list[DetectedFoodItem]
) -> None:
    pending = await confirmation_service.create_pending(abc_items)

    assert await confirmation_service.cancel(pending.analysis_id.value)
    assert not await confirmation_service.cancel(pending.analysis_id.value)
    assert not await confirmation_service.cancel("not-an-id")
    with pytest.raises(NotFoundError):
        await confirmation_service.resolve(pending.analysis_id.value, "yes")
