"""
Per-food health check.

Checks one resolved food (name, nutrients, ingredient text) against the
user's health conditions and allergies:
- diabetes: sugar, carbs without fiber
- hypertension: sodium
- pregnancy: foods to avoid, caffeine
- allergies: trigger words from health_rules.yaml

Nutrient thresholds live here; word lists live in the YAML rule table.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import structlog
import yaml

from scanlyf.domain.meal.nutrition.models import NutritionRecord
from scanlyf.domain.meal.risk.models import (
    RISK_LEVEL_ORDER,
    HealthAssessment,
    HealthWarning,
    RiskLevel,
    Severity,
)
from scanlyf.domain.user.models import UserProfile

logger = structlog.get_logger(__name__)

DEFAULT_HEALTH_RULES_PATH = Path(__file__).with_name("health_rules.yaml")

# Nutrient thresholds (per record)
DIABETES_SUGAR_G = 10
DIABETES_CARBS_G = 30
LOW_FIBER_G = 3
HIGH_FIBER_G = 5
SODIUM_HIGH_MG = 600
SODIUM_MEDIUM_MG = 400
PREGNANCY_PROTEIN_G = 20
HIGH_CALORIES = 500
HIGH_FAT_G = 20
HIGH_SUGAR_G = 20
GOOD_PROTEIN_G = 15
LOW_CALORIES = 200

OVERALL_RECOMMENDATIONS = {
    RiskLevel.HIGH: "NOT RECOMMENDED based on your health conditions",
    RiskLevel.MEDIUM: "CONSUME WITH CAUTION - Check portion size",
    RiskLevel.LOW: "SAFE TO CONSUME - Fits your health profile",
}


@dataclass
class HealthRules:
    allergens: Dict[str, List[str]] = field(default_factory=dict)
    avoid_foods: Dict[str, List[str]] = field(default_factory=dict)
    caffeine_keywords: List[str] = field(default_factory=list)
    healthier_swaps: Dict[str, str] = field(default_factory=dict)
    default_swap: str = "Consider a lower calorie, nutrient-dense alternative"

    def validate(self) -> None:
        for condition, triggers in self.allergens.items():
            if not triggers:
                raise ValueError(f"Allergen rule {condition} has no triggers")


def _word_lists(raw: object) -> Dict[str, List[str]]:
    return {
        str(k).strip().lower(): [str(w).lower() for w in v or []]
        for k, v in (raw or {}).items()  # type: ignore[attr-defined]
    }


def load_health_rules_from_yaml_text(yaml_text: str) -> HealthRules:
    """Parse YAML string into validated HealthRules."""
    data = yaml.safe_load(yaml_text) or {}
    rules = HealthRules(
        allergens=_word_lists(data.get("allergens")),
        avoid_foods=_word_lists(data.get("avoid_foods")),
        caffeine_keywords=[str(w).lower() for w in data.get("caffeine_keywords") or []],
        healthier_swaps={
            str(k).lower(): str(v) for k, v in (data.get("healthier_swaps") or {}).items()
        },
    )
    if data.get("default_swap"):
        rules.default_swap = str(data["default_swap"])
    rules.validate()
    return rules


@lru_cache(maxsize=1)
def default_health_rules() -> HealthRules:
    """Health rules bundled with the package (parsed once)."""
    return load_health_rules_from_yaml_text(
        DEFAULT_HEALTH_RULES_PATH.read_text(encoding="utf-8")
    )


class HealthAdvisor:
    """
    Health check of a single food for a user profile.

    Example:
        >>> advisor = HealthAdvisor()
        >>> profile = UserProfile(health_conditions=["nut allergy"])
        >>> record = NutritionRecord(name="Peanut butter", calories=190, source="x")
        >>> advisor.assess(record, profile).risk_level
        <RiskLevel.HIGH: 'high'>
    """

    def __init__(self, rules: Optional[HealthRules] = None) -> None:
        self.rules = rules or default_health_rules()

    def assess(
        self, record: NutritionRecord, profile: Optional[UserProfile] = None
    ) -> HealthAssessment:
        profile = profile or UserProfile()
        name = record.name.lower()
        ingredients = (record.ingredients or "").lower()

        warnings: list[HealthWarning] = []
        risk_level = RiskLevel.LOW
        pros: list[str] = []
        cons: list[str] = []

        if profile.has_condition("diabetes"):
            if record.sugar and record.sugar > DIABETES_SUGAR_G:
                warnings.append(
                    HealthWarning(
                        condition="diabetes",
                        severity=Severity.HIGH,
                        message=(
                            f"High sugar content ({record.sugar:g}g)"
                            " - may cause a blood sugar spike"
                        ),
                    )
                )
                risk_level = _higher(risk_level, RiskLevel.HIGH)
            if record.carbs > DIABETES_CARBS_G and (not record.fiber or record.fiber < LOW_FIBER_G):
                warnings.append(
                    HealthWarning(
                        condition="diabetes",
                        severity=Severity.MEDIUM,
                        message="High carbs with low fiber - consider a smaller portion",
                    )
                )
                risk_level = _higher(risk_level, RiskLevel.MEDIUM)
            if record.fiber and record.fiber > HIGH_FIBER_G:
                pros.append("High fiber helps regulate blood sugar")

        if profile.has_condition("hypertension") and record.sodium:
            if record.sodium > SODIUM_HIGH_MG:
                warnings.append(
                    HealthWarning(
                        condition="hypertension",
                        severity=Severity.HIGH,
                        message=f"Very high sodium ({record.sodium:g}mg) - avoid or limit portion",
                    )
                )
                risk_level = _higher(risk_level, RiskLevel.HIGH)
            elif record.sodium > SODIUM_MEDIUM_MG:
                warnings.append(
                    HealthWarning(
                        condition="hypertension",
                        severity=Severity.MEDIUM,
                        message=f"High sodium ({record.sodium:g}mg) - consume in moderation",
                    )
                )
                risk_level = _higher(risk_level, RiskLevel.MEDIUM)

        if profile.has_condition("pregnancy"):
            if any(food in name for food in self.rules.avoid_foods.get("pregnancy", [])):
                warnings.append(
                    HealthWarning(
                        condition="pregnancy",
                        severity=Severity.HIGH,
                        message="Not recommended during pregnancy - may pose health risks",
                    )
                )
                risk_level = _higher(risk_level, RiskLevel.HIGH)
            # Advisory only: caffeine does not raise the risk level
            if any(_starts_word(kw, name) for kw in self.rules.caffeine_keywords):
                warnings.append(
                    HealthWarning(
                        condition="pregnancy",
                        severity=Severity.MEDIUM,
                        message="Contains caffeine - limit to 200mg per day during pregnancy",
                    )
                )
            if record.protein > PREGNANCY_PROTEIN_G:
                pros.append("High protein - important for fetal development")

        for condition, triggers in self.rules.allergens.items():
            if not profile.has_condition(condition):
                continue
            if any(t in name or t in ingredients for t in triggers):
                warnings.append(
                    HealthWarning(
                        condition=condition,
                        severity=Severity.HIGH,
                        message=f"ALLERGY ALERT: contains {_allergen_label(condition)}",
                    )
                )
                risk_level = _higher(risk_level, RiskLevel.HIGH)

        if record.calories > HIGH_CALORIES:
            cons.append(f"Very high calorie ({record.calories:g} kcal) - 25% of daily intake")
        if record.fat > HIGH_FAT_G:
            cons.append(f"High fat ({record.fat:g}g)")
        if record.sugar and record.sugar > HIGH_SUGAR_G:
            cons.append(f"High sugar ({record.sugar:g}g) - limit intake")
        if record.protein > GOOD_PROTEIN_G:
            pros.append(f"Excellent protein source ({record.protein:g}g)")
        if record.fiber and record.fiber > HIGH_FIBER_G:
            pros.append(f"High fiber ({record.fiber:g}g) - aids digestion")

        if not pros:
            pros.append(
                "Low calorie option" if record.calories < LOW_CALORIES else "Provides energy"
            )
        if not cons and not warnings:
            cons.append("No significant concerns for your health profile")

        recommendations: list[str] = []
        if risk_level != RiskLevel.LOW:
            half = _half_portion(record.portion_size)
            if half:
                recommendations.append(f"Consider having half a portion ({half})")
        if risk_level == RiskLevel.HIGH:
            recommendations.append(self.healthier_swap(record.name))

        logger.debug(
            "Health check complete",
            food=record.name,
            warnings=len(warnings),
            risk_level=risk_level.value,
        )
        return HealthAssessment(
            warnings=warnings,
            pros=pros,
            cons=cons,
            recommendations=recommendations,
            risk_level=risk_level,
            overall_recommendation=OVERALL_RECOMMENDATIONS[risk_level],
        )

    def healthier_swap(self, food_name: str) -> str:
        """First matching swap for the food, else the generic suggestion."""
        lowered = food_name.lower()
        for food, swap in self.rules.healthier_swaps.items():
            if food in lowered:
                return swap
        return self.rules.default_swap


def _starts_word(keyword: str, text: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}", text) is not None


def _allergen_label(condition: str) -> str:
    # nut_allergy -> "nut allergen", lactose_intolerant -> "lactose intolerant"
    return condition.replace("_", " ", 1).replace("allergy", "allergen")


def _higher(current: RiskLevel, candidate: RiskLevel) -> RiskLevel:
    if RISK_LEVEL_ORDER.index(candidate) > RISK_LEVEL_ORDER.index(current):
        return candidate
    return current


def _half_portion(portion_size: str) -> Optional[str]:
    parts = portion_size.split(" ", 1)
    if len(parts) != 2:
        return None
    try:
        quantity = float(parts[0])
    except ValueError:
        return None
    return f"{quantity / 2:g} {parts[1]}"
