"""Tests for PendingAnalysis lifecycle."""

from datetime import datetime, timedelta, timezone

import pytest

from scanlyf.domain.meal.confirmation.models import (
    ConfirmationState,
    CorrectionSet,
    PendingAnalysis,
)
from scanlyf.domain.meal.detection.models import DetectedFoodItem
from scanlyf.domain.shared.errors import BusinessLogicError


def test_create_new_sets_expiry(abc_items: list[DetectedFoodItem]) -> None:
    pending = PendingAnalysis.create_new(abc_items, ttl=timedelta(minutes=5))

    assert pending.state == ConfirmationState.PENDING
    assert pending.expires_at - pending.created_at == timedelta(minutes=5)
    assert pending.analysis_id.value.startswith("analysis_")


def test_expiry_is_inclusive(abc_items: list[DetectedFoodItem]) -> None:
    pending = PendingAnalysis.create_new(abc_items)

    assert not pending.is_expired(pending.expires_at - timedelta(seconds=1))
    assert pending.is_expired(pending.expires_at)
    assert pending.is_expired(datetime.now(timezone.utc) + timedelta(hours=1))


@pytest.mark.parametrize("state", [ConfirmationState.CONFIRMED, ConfirmationState.CORRECTED])
def test_pending_moves_to_confirmed_or_corrected(
    abc_items: list[DetectedFoodItem], state: ConfirmationState
) -> None:
    pending = PendingAnalysis.create_new(abc_items)

    moved = pending.transition(state)
    finalized = moved.transition(ConfirmationState.FINALIZED)

    assert pending.state == ConfirmationState.PENDING
    assert finalized.state == ConfirmationState.FINALIZED


def test_transition_replaces_items(abc_items: list[DetectedFoodItem]) -> None:
    pending = PendingAnalysis.create_new(abc_items)

    corrected = pending.transition(ConfirmationState.CORRECTED, items=abc_items[:1])

    assert [i.name for i in corrected.items] == ["A"]
    assert len(pending.items) == 3


@pytest.mark.parametrize(
    "path",
    [
        [ConfirmationState.FINALIZED],
        [ConfirmationState.CONFIRMED, ConfirmationState.CORRECTED],
        [ConfirmationState.CONFIRMED, ConfirmationState.FINALIZED, ConfirmationState.PENDING],
    ],
)
def test_illegal_transitions_are_rejected(
    abc_items: list[DetectedFoodItem], path: list[ConfirmationState]
) -> None:
    pending = PendingAnalysis.create_new(abc_items)

    with pytest.raises(BusinessLogicError):
        for state in path:
            pending = pending.transition(state)


def test_pending_requires_items() -> None:
    with pytest.raises(ValueError):
        PendingAnalysis.create_new([])


def test_correction_set_emptiness() -> None:
    assert CorrectionSet().is_empty()
    assert not CorrectionSet(removals=[0]).is_empty()
    assert not CorrectionSet(confirmed=True).is_empty()
