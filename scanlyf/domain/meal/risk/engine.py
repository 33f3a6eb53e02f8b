"""
Ingredient risk scoring engine.

Pure, deterministic scoring of ingredient text against the harmful
ingredient knowledge base, personalized by the user's health profile.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence, Union

import structlog

from scanlyf.domain.meal.risk.knowledge_base import KnowledgeBase, default_knowledge_base
from scanlyf.domain.meal.risk.models import (
    Alternative,
    IngredientFinding,
    MarketingClaim,
    ProcessingLevel,
    RiskAnalysis,
    Severity,
)
from scanlyf.domain.user.models import UserProfile

logger = structlog.get_logger(__name__)

SPLIT_PATTERN = re.compile(r",|\(|\)|;")
E_NUMBER_PATTERN = re.compile(r"^e\d{3}")

# Processing thresholds: (min indicators, min additives, level, deduction)
ULTRA_INDICATORS, ULTRA_ADDITIVES = 3, 10
HIGHLY_INDICATORS, HIGHLY_ADDITIVES = 1, 5
PROCESSED_ADDITIVES = 2

PROCESSING_DEDUCTIONS = {
    ProcessingLevel.ULTRA_PROCESSED: 20,
    ProcessingLevel.HIGHLY_PROCESSED: 10,
    ProcessingLevel.PROCESSED: 5,
    ProcessingLevel.MINIMAL: 0,
}

DIABETES_SUGAR_LIMIT = 3
GUT_HARMFUL_CATEGORIES = ("emulsifier", "thickener", "preservative")

IngredientInput = Union[str, Sequence[str], None]


class IngredientRiskEngine:
    """
    Scores ingredient lists for personalized health risk.

    The engine holds no per-request state, so one instance can be shared
    by every request.

    Example:
        >>> engine = IngredientRiskEngine()
        >>> profile = UserProfile(health_conditions=["pregnancy"])
        >>> analysis = engine.score("aspartame, modified corn starch", profile)
        >>> analysis.health_score
        80
    """

    def __init__(self, knowledge_base: Optional[KnowledgeBase] = None) -> None:
        self.kb = knowledge_base or default_knowledge_base()

    def score(
        self, ingredients: IngredientInput, profile: Optional[UserProfile] = None
    ) -> RiskAnalysis:
        """
        Analyze ingredients and compute a bounded health score.

        Args:
            ingredients: Ingredient text or list of ingredient strings
            profile: User profile for severity overrides and warnings

        Returns:
            RiskAnalysis with findings, processing level and score in [0, 100]
        """
        text = _normalize(ingredients)
        if not text:
            return RiskAnalysis.neutral()

        profile = profile or UserProfile()
        tokens = [t.strip() for t in SPLIT_PATTERN.split(text)]
        tokens = [t for t in tokens if t]

        findings: list[IngredientFinding] = []
        health_score = 100

        for substance in self.kb.substances:
            matched = [
                name
                for name in substance.names
                if name in text or any(name in tok for tok in tokens)
            ]
            if not matched:
                continue

            personal = substance.severity_for(profile.health_conditions)
            findings.append(
                IngredientFinding(
                    canonical_name=substance.name,
                    severity=substance.severity,
                    personal_severity=personal,
                    category=substance.category,
                    risks=list(substance.risks),
                    aliases_matched=matched,
                )
            )
            health_score = max(0, health_score - personal.deduction)

        additive_count = sum(1 for tok in tokens if _looks_like_additive(tok))
        indicator_count = sum(
            1 for word in self.kb.ultra_processed_indicators if word in text
        )
        level = _processing_level(indicator_count, additive_count)
        health_score -= PROCESSING_DEDUCTIONS[level]

        hidden_sugars = [
            tok for tok in tokens if any(k in tok for k in self.kb.sugar_keywords)
        ]

        analysis = RiskAnalysis(
            findings=findings,
            hidden_sugars=hidden_sugars,
            additive_count=additive_count,
            processing_level=level,
            health_score=min(100, max(0, health_score)),
        )
        warnings = personalized_warnings(analysis, profile)

        logger.debug(
            "Ingredients scored",
            findings=len(findings),
            processing_level=level.value,
            health_score=analysis.health_score,
        )
        return analysis.model_copy(update={"warnings": warnings})

    def expose_marketing_tricks(self, *texts: Optional[str]) -> list[MarketingClaim]:
        """Find packaging claims in the given texts (labels, claims, names)."""
        haystack = " ".join(t.lower() for t in texts if t)
        return [
            MarketingClaim(claim=claim, truth=truth)
            for claim, truth in self.kb.marketing_claims.items()
            if claim in haystack
        ]

    def suggest_alternatives(
        self, product_name: Optional[str], processing_level: ProcessingLevel
    ) -> list[Alternative]:
        """
        Suggest healthier alternatives.

        Product type match wins; ultra-processed products without a match
        get generic whole-food suggestions; everything else gets none.
        """
        name = (product_name or "food").lower()
        for product_type, names in self.kb.alternatives.items():
            if product_type in name:
                return [
                    Alternative(
                        name=alt,
                        why_better=self.kb.alternative_benefits.get(
                            alt, "Minimally processed, nutrient-dense whole food"
                        ),
                    )
                    for alt in names
                ]

        if processing_level == ProcessingLevel.ULTRA_PROCESSED:
            return [
                Alternative(name=alt, why_better=why)
                for alt, why in self.kb.ultra_processed_alternatives.items()
            ]
        return []


def _normalize(ingredients: IngredientInput) -> str:
    if not ingredients:
        return ""
    if isinstance(ingredients, str):
        return ingredients.lower().strip()
    return ", ".join(str(i) for i in ingredients).lower().strip()


def _looks_like_additive(token: str) -> bool:
    return bool(E_NUMBER_PATTERN.match(token)) or any(
        len(word) > 15 for word in token.split(" ")
    )


def _processing_level(indicators: int, additives: int) -> ProcessingLevel:
    if indicators > ULTRA_INDICATORS or additives > ULTRA_ADDITIVES:
        return ProcessingLevel.ULTRA_PROCESSED
    if indicators > HIGHLY_INDICATORS or additives > HIGHLY_ADDITIVES:
        return ProcessingLevel.HIGHLY_PROCESSED
    if additives > PROCESSED_ADDITIVES:
        return ProcessingLevel.PROCESSED
    return ProcessingLevel.MINIMAL


def personalized_warnings(analysis: RiskAnalysis, profile: UserProfile) -> list[str]:
    """Warnings for combinations of profile and findings."""
    warnings: list[str] = []

    if profile.has_condition("diabetes") and len(analysis.hidden_sugars) > DIABETES_SUGAR_LIMIT:
        warnings.append(
            f"DIABETES ALERT: contains {len(analysis.hidden_sugars)} different "
            "types of sugar. Look for items with less than 5g total sugars."
        )

    if profile.has_children or profile.has_condition("pregnancy"):
        severe = [
            f
            for f in analysis.findings
            if f.personal_severity == Severity.VERY_HIGH or f.severity == Severity.HIGH
        ]
        if severe:
            warnings.append(
                f"CHILD SAFETY: contains {len(severe)} ingredients linked to "
                "developmental issues and hyperactivity."
            )

    if (
        profile.has_goal("weight_loss")
        and analysis.processing_level == ProcessingLevel.ULTRA_PROCESSED
    ):
        warnings.append(
            "WEIGHT LOSS: ultra-processed foods are designed to make you "
            "overeat. Choose whole foods instead."
        )

    if profile.has_condition("ibs") or profile.has_condition("digestive_issues"):
        gut = [f for f in analysis.findings if f.category in GUT_HARMFUL_CATEGORIES]
        if gut:
            warnings.append(
                f"GUT HEALTH: contains {len(gut)} ingredients that can irritate "
                "the gut lining."
            )

    return warnings
