"""Tests for UserProfile normalization."""

from scanlyf.domain.user.models import UserProfile


def test_conditions_are_normalized_in_order() -> None:
    profile = UserProfile(health_conditions=["Heart Disease", " ", "Pregnancy"])

    assert profile.health_conditions == ["heart_disease", "pregnancy"]
    assert profile.has_condition("pregnancy")
    assert not profile.has_condition("diabetes")


def test_goals_accept_single_string_or_iterable() -> None:
    assert UserProfile(goals="Weight Loss").goals == frozenset({"weight_loss"})
    assert UserProfile(goals=["muscle_gain", "MUSCLE_GAIN"]).goals == frozenset({"muscle_gain"})
    assert UserProfile(goals=None).has_goal("weight_loss") is False
