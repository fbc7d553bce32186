"""
Audit risk scoring.

Weighted heuristic over three signals:
- Business expenses large relative to income
- High income
- Self-employment income

The level is a pure function of the score.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tax_advisor.brackets import AdvisorThresholds
from tax_advisor.scenario import TaxScenario

logger = logging.getLogger(__name__)


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskFactor(Enum):
    HIGH_EXPENSE_RATIO = "High business expense ratio"
    HIGH_INCOME = "High income bracket"
    SELF_EMPLOYMENT = "Self-employment income"


@dataclass(frozen=True)
class AuditRiskAssessment:
    """Scored audit risk with the triggering factors."""

    score: int
    level: RiskLevel
    risk_factors: tuple[str, ...]
    recommendations: tuple[str, ...]


# -----------------------------------------------------------------------
# Mitigation recommendations per factor
# -----------------------------------------------------------------------

_RECOMMENDATIONS: dict[RiskFactor, tuple[str, ...]] = {
    RiskFactor.HIGH_EXPENSE_RATIO: (
        "Maintain detailed records and receipts for all business expenses",
        "Ensure business expenses have clear business purpose documentation",
    ),
    RiskFactor.HIGH_INCOME: (
        "Consider professional tax preparation",
        "Keep comprehensive documentation for all deductions",
    ),
    RiskFactor.SELF_EMPLOYMENT: (
        "Separate business and personal expenses clearly",
        "Make quarterly estimated tax payments on time",
    ),
}


def risk_level(score: int) -> RiskLevel:
    """
    Bucket a risk score.

    0-1 -> low, 2-3 -> medium, 4+ -> high
    """
    if score <= 1:
        return RiskLevel.LOW
    elif score <= 3:
        return RiskLevel.MEDIUM
    else:
        return RiskLevel.HIGH


def recommendations_for(factors: list[RiskFactor]) -> list[str]:
    recs: list[str] = []
    for factor in factors:
        recs.extend(_RECOMMENDATIONS[factor])
    return recs


class AuditRiskScorer:
    """Scores a scenario's audit exposure and suggests mitigations."""

    def __init__(self, thresholds: Optional[AdvisorThresholds] = None) -> None:
        self.thresholds = thresholds or AdvisorThresholds()

    def triggered_factors(
        self, scenario: TaxScenario
    ) -> list[tuple[RiskFactor, int]]:
        t = self.thresholds
        triggered: list[tuple[RiskFactor, int]] = []

        if scenario.business_expenses > scenario.income * t.audit_expense_ratio:
            triggered.append((RiskFactor.HIGH_EXPENSE_RATIO, t.audit_expense_weight))

        if scenario.income > t.audit_high_income:
            triggered.append((RiskFactor.HIGH_INCOME, t.audit_high_income_weight))

        if scenario.self_employed:
            triggered.append(
                (RiskFactor.SELF_EMPLOYMENT, t.audit_self_employed_weight)
            )

        return triggered

    def assess(self, scenario: TaxScenario) -> AuditRiskAssessment:
        triggered = self.triggered_factors(scenario)
        score = sum(weight for _, weight in triggered)
        factors = [factor for factor, _ in triggered]
        level = risk_level(score)

        logger.debug("Audit risk score %d (%s)", score, level.value)

        return AuditRiskAssessment(
            score=score,
            level=level,
            risk_factors=tuple(f.value for f in factors),
            recommendations=tuple(recommendations_for(factors)),
        )
