"""
Advisory engine entry point.

Runs validation, tax computation, the advisory rules and audit risk
scoring, then assembles an immutable AdvisoryResult. The engine holds no
state besides its read-only tax-year configuration, so one instance can
serve concurrent callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Sequence, Union

from tax_advisor.advisor import (
    AdvisoryRule,
    Insight,
    OptimizationAdvisor,
    OptimizationStrategy,
)
from tax_advisor.audit_risk import AuditRiskAssessment, AuditRiskScorer
from tax_advisor.brackets import TaxYearConfig, default_config
from tax_advisor.calculator import TaxCalculator, TaxComputationResult
from tax_advisor.scenario import TaxScenario, validate_scenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdvisoryResult:
    """Everything the engine returns for one scenario."""

    insights: tuple[Insight, ...]
    calculations: TaxComputationResult
    optimizations: tuple[OptimizationStrategy, ...]
    risk_assessment: AuditRiskAssessment
    ai_confidence: int
    skipped_rules: tuple[str, ...] = ()

    @property
    def total_impact(self) -> Decimal:
        return sum((i.impact_amount for i in self.insights), Decimal("0"))


def overall_confidence(insights: Sequence[Insight]) -> int:
    """Mean insight confidence rounded half-up, 0 when there are none."""
    if not insights:
        return 0
    total = sum(Decimal(i.confidence_percent) for i in insights)
    mean = total / len(insights)
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ResultAssembler:
    """Combines the stage outputs into the final response object."""

    def assemble(
        self,
        calculations: TaxComputationResult,
        insights: Sequence[Insight],
        optimizations: Sequence[OptimizationStrategy],
        risk: AuditRiskAssessment,
        skipped_rules: Sequence[str] = (),
    ) -> AdvisoryResult:
        return AdvisoryResult(
            insights=tuple(insights),
            calculations=calculations,
            optimizations=tuple(optimizations),
            risk_assessment=risk,
            ai_confidence=overall_confidence(insights),
            skipped_rules=tuple(skipped_rules),
        )


class TaxAdvisoryEngine:
    """
    Tax computation and advisory pipeline for one tax year.

    The configuration is injected at construction; adding a tax year
    never touches calculation logic.
    """

    def __init__(
        self,
        config: Optional[TaxYearConfig] = None,
        rules: Optional[Sequence[AdvisoryRule]] = None,
        strict_filing_status: bool = False,
    ) -> None:
        self.config = config or default_config()
        self.calculator = TaxCalculator(self.config, strict=strict_filing_status)
        self.advisor = OptimizationAdvisor(self.config, rules=rules)
        self.risk_scorer = AuditRiskScorer(self.config.thresholds)
        self.assembler = ResultAssembler()

    def advise(
        self, scenario: Union[TaxScenario, Mapping[str, Any]]
    ) -> AdvisoryResult:
        """
        Validate a scenario and produce the full advisory result.

        Raises ValidationError for a malformed scenario. Nothing after
        validation raises except in strict filing-status mode.
        """
        validated = validate_scenario(scenario)
        calculations = self.calculator.calculate(validated)
        batch = self.advisor.generate_insights(validated, calculations)
        optimizations = self.advisor.find_optimizations(validated, calculations)
        risk = self.risk_scorer.assess(validated)

        result = self.assembler.assemble(
            calculations,
            batch.insights,
            optimizations,
            risk,
            skipped_rules=batch.skipped_rules,
        )
        logger.info(
            "Advised %s scenario: total tax %s, %d insight(s), risk %s",
            validated.filing_status.value,
            calculations.total_tax,
            len(result.insights),
            risk.level.value,
        )
        return result


def compute_tax_advice(
    scenario: Union[TaxScenario, Mapping[str, Any]],
    config: Optional[TaxYearConfig] = None,
) -> AdvisoryResult:
    """Single-call entry point: validate, compute and advise."""
    return TaxAdvisoryEngine(config).advise(scenario)
