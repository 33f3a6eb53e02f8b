"""
User profile models.

The profile is owned by the caller and only read by the pipeline.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserProfile(BaseModel):
    """
    Health profile used for personalization and risk scoring.

    ``health_conditions`` keeps caller order: the risk engine takes the
    first condition that has an override for a substance.

    Example:
        >>> profile = UserProfile(
        ...     name="Asha",
        ...     health_conditions=["Pregnancy", "diabetes"],
        ...     goals={"weight_loss"},
        ... )
        >>> profile.has_condition("pregnancy")
        True
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(None, description="Display name")
    health_conditions: list[str] = Field(
        default_factory=list, description="Ordered condition tokens"
    )
    goals: frozenset[str] = Field(default_factory=frozenset, description="Goal tokens")
    has_children: bool = Field(False, description="Household includes children")

    calorie_target: Optional[float] = Field(None, gt=0, description="Daily kcal target")
    protein_target: Optional[float] = Field(None, gt=0, description="Daily protein g")
    consumed_calories: float = Field(0.0, ge=0, description="Kcal eaten today")
    consumed_protein: float = Field(0.0, ge=0, description="Protein eaten today (g)")

    @field_validator("health_conditions")
    @classmethod
    def normalize_conditions(cls, v: list[str]) -> list[str]:
        """Lower-case tokens and map spaces to underscores."""
        return [c.strip().lower().replace(" ", "_") for c in v if c.strip()]

    @field_validator("goals", mode="before")
    @classmethod
    def normalize_goals(cls, v: object) -> frozenset[str]:
        """Accept any iterable (or a single string) of goal tokens."""
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(str(g).strip().lower().replace(" ", "_") for g in v)  # type: ignore[attr-defined]

    def has_condition(self, condition: str) -> bool:
        """Check whether profile lists a condition."""
        return condition in self.health_conditions

    def has_goal(self, goal: str) -> bool:
        """Check whether profile lists a goal."""
        return goal in self.goals
