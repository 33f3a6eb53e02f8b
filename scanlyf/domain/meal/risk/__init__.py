"""Ingredient risk scoring."""

from scanlyf.domain.meal.risk.engine import IngredientRiskEngine, personalized_warnings
from scanlyf.domain.meal.risk.models import RiskAnalysis, Severity

__all__ = ["IngredientRiskEngine", "RiskAnalysis", "Severity", "personalized_warnings"]
