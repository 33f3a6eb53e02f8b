"""
Ingredient risk models.

Results of the ingredient risk engine. Recomputed per request and never
persisted.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Risk severity of a substance."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def deduction(self) -> int:
        """Health score points removed for one finding at this severity."""
        return SEVERITY_DEDUCTIONS[self]


SEVERITY_DEDUCTIONS = {
    Severity.VERY_HIGH: 20,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
}


class ProcessingLevel(str, Enum):
    """How industrially processed a product looks."""

    MINIMAL = "minimal"
    PROCESSED = "processed"
    HIGHLY_PROCESSED = "highly_processed"
    ULTRA_PROCESSED = "ultra_processed"


class IngredientFinding(BaseModel):
    """
    Harmful substance found in an ingredient list.

    Attributes:
        canonical_name: Knowledge base name of the substance
        severity: Base severity
        personal_severity: Severity after applying profile overrides
        category: Substance category (preservative, emulsifier, ...)
        risks: Known health risks
        aliases_matched: Names (canonical or alias) that matched the text
    """

    model_config = ConfigDict(frozen=True)

    canonical_name: str
    severity: Severity
    personal_severity: Severity
    category: str
    risks: list[str] = Field(default_factory=list)
    aliases_matched: list[str] = Field(default_factory=list)


class MarketingClaim(BaseModel):
    """Packaging claim paired with what it usually hides."""

    model_config = ConfigDict(frozen=True)

    claim: str
    truth: str


class Alternative(BaseModel):
    """Healthier product suggestion."""

    model_config = ConfigDict(frozen=True)

    name: str
    why_better: str


class RiskAnalysis(BaseModel):
    """
    Personalized ingredient risk analysis.

    Example:
        >>> analysis = RiskAnalysis.neutral()
        >>> analysis.health_score
        100
    """

    model_config = ConfigDict(frozen=True)

    findings: list[IngredientFinding] = Field(default_factory=list)
    hidden_sugars: list[str] = Field(default_factory=list)
    additive_count: int = Field(0, ge=0)
    processing_level: ProcessingLevel = ProcessingLevel.MINIMAL
    health_score: int = Field(100, ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def neutral(cls) -> RiskAnalysis:
        """Analysis for empty or missing ingredient input."""
        return cls()

    def has_findings(self) -> bool:
        """True when at least one harmful substance was matched."""
        return bool(self.findings)


class RiskLevel(str, Enum):
    """Overall risk of one food for a given profile."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


RISK_LEVEL_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH]


class HealthWarning(BaseModel):
    """Condition-specific warning about a food."""

    model_config = ConfigDict(frozen=True)

    condition: str
    severity: Severity
    message: str


class HealthAssessment(BaseModel):
    """
    Health check of one resolved food against the user's conditions.

    Attributes:
        warnings: Condition and allergy warnings
        pros: Positive nutritional aspects
        cons: Negative nutritional aspects
        recommendations: Portion advice and healthier swaps
        risk_level: Highest risk raised by any warning
        overall_recommendation: One-line verdict for the risk level
    """

    model_config = ConfigDict(frozen=True)

    warnings: list[HealthWarning] = Field(default_factory=list)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW
    overall_recommendation: str = ""

    @property
    def allergy_alerts(self) -> list[HealthWarning]:
        """Warnings raised by allergen triggers."""
        return [w for w in self.warnings if w.message.startswith("ALLERGY ALERT")]
