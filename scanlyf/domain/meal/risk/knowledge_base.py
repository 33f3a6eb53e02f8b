"""Ingredient knowledge base loader.

Parses the YAML rule table of harmful substances, processing indicators,
sugar keywords, marketing claims and healthier alternatives.

Supported layout (see harmful_ingredients.yaml):
- ``substances: [ {name, severity, category, risks, aliases, personalized_risk} ]``
- ``ultra_processed_indicators: [word, ...]``
- ``sugar_keywords: [substring, ...]``
- ``marketing_claims: {claim: truth}``
- ``alternatives: {product_type: [name, ...]}``
- ``alternative_benefits: {name: why_better}``
- ``ultra_processed_alternatives: {name: why_better}``

Validation is strict: unknown severities or duplicate names are rejected
at load time so a bad edit never reaches scoring.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml

from scanlyf.domain.meal.risk.models import Severity

DEFAULT_KNOWLEDGE_BASE_PATH = Path(__file__).with_name("harmful_ingredients.yaml")


@dataclass
class Substance:
    name: str
    severity: Severity
    category: str
    risks: List[str] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)
    common_in: List[str] = field(default_factory=list)
    personalized_risk: Dict[str, Severity] = field(default_factory=dict)

    @property
    def names(self) -> List[str]:
        """Canonical name followed by aliases, all lower-case."""
        return [self.name.lower()] + [a.lower() for a in self.aliases]

    def severity_for(self, conditions: List[str]) -> Severity:
        """First condition with an override wins, else base severity."""
        for condition in conditions:
            if condition in self.personalized_risk:
                return self.personalized_risk[condition]
        return self.severity

    def validate(self) -> None:
        if not self.name:
            raise ValueError("Substance name required")
        if not self.category:
            raise ValueError(f"Substance {self.name} has no category")


@dataclass
class KnowledgeBase:
    substances: List[Substance]
    ultra_processed_indicators: List[str] = field(default_factory=list)
    sugar_keywords: List[str] = field(default_factory=list)
    marketing_claims: Dict[str, str] = field(default_factory=dict)
    alternatives: Dict[str, List[str]] = field(default_factory=dict)
    alternative_benefits: Dict[str, str] = field(default_factory=dict)
    ultra_processed_alternatives: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        seen = set()
        for s in self.substances:
            s.validate()
            if s.name in seen:
                raise ValueError(f"Duplicate substance: {s.name}")
            seen.add(s.name)


def _severity(raw: Any, where: str) -> Severity:
    try:
        return Severity(str(raw).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown severity {raw!r} in {where}") from None


def _parse_substance(data: Dict[str, Any]) -> Substance:
    name = str(data.get("name") or "").strip().lower()
    overrides = {
        str(cond).lower(): _severity(sev, f"{name}.personalized_risk")
        for cond, sev in (data.get("personalized_risk") or {}).items()
    }
    return Substance(
        name=name,
        severity=_severity(data.get("severity"), name),
        category=str(data.get("category") or ""),
        risks=[str(r) for r in data.get("risks") or []],
        aliases=[str(a) for a in data.get("aliases") or []],
        common_in=[str(c) for c in data.get("common_in") or []],
        personalized_risk=overrides,
    )


def load_knowledge_base_from_yaml_text(yaml_text: str) -> KnowledgeBase:
    """Parse YAML string into a validated KnowledgeBase."""
    data = yaml.safe_load(yaml_text) or {}
    kb = KnowledgeBase(
        substances=[_parse_substance(s) for s in data.get("substances") or []],
        ultra_processed_indicators=[
            str(w).lower() for w in data.get("ultra_processed_indicators") or []
        ],
        sugar_keywords=[str(w).lower() for w in data.get("sugar_keywords") or []],
        marketing_claims={
            str(k).lower(): str(v) for k, v in (data.get("marketing_claims") or {}).items()
        },
        alternatives={
            str(k).lower(): [str(a) for a in v]
            for k, v in (data.get("alternatives") or {}).items()
        },
        alternative_benefits={
            str(k): str(v) for k, v in (data.get("alternative_benefits") or {}).items()
        },
        ultra_processed_alternatives={
            str(k): str(v)
            for k, v in (data.get("ultra_processed_alternatives") or {}).items()
        },
    )
    kb.validate()
    return kb


def load_knowledge_base(path: Path) -> KnowledgeBase:
    """Load knowledge base from a YAML file."""
    return load_knowledge_base_from_yaml_text(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def default_knowledge_base() -> KnowledgeBase:
    """Knowledge base bundled with the package (parsed once)."""
    return load_knowledge_base(DEFAULT_KNOWLEDGE_BASE_PATH)
