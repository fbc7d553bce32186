"""
Rule-based tax optimization advisor.

Each rule is a small pure pair: a predicate deciding whether it applies
to a scenario, and a builder producing the Insight. Rules never see each
other's output. A rule that cannot evaluate is skipped and logged; the
rest still run.

Also produces the longer-horizon optimization strategies (retirement and
business-deduction planning).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Sequence

from tax_advisor.brackets import AdvisorThresholds, BracketTable, TaxYearConfig
from tax_advisor.calculator import (
    TaxComputationResult,
    marginal_rate,
    next_threshold,
    round_cents,
    round_currency,
)
from tax_advisor.exceptions import RuleEvaluationSkipped
from tax_advisor.scenario import TaxScenario

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


class InsightType(Enum):
    OPTIMIZATION = "optimization"
    WARNING = "warning"
    PLANNING = "planning"
    CALCULATION = "calculation"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_PRIORITY_RANK: dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


@dataclass(frozen=True)
class Insight:
    """A single scored recommendation."""

    id: str
    type: InsightType
    title: str
    description: str
    impact_amount: Decimal
    confidence_percent: int
    action_required: bool
    priority: Priority
    category: str

    def __post_init__(self) -> None:
        if not 0 <= self.confidence_percent <= 100:
            raise ValueError(
                f"Insight {self.id}: confidence {self.confidence_percent} "
                f"outside 0-100"
            )


@dataclass(frozen=True)
class OptimizationStrategy:
    """A planning strategy with an estimated whole-dollar saving."""

    strategy: str
    potential_savings: Decimal
    description: str
    difficulty: str
    timeline: str


@dataclass(frozen=True)
class AdvisoryContext:
    """Inputs every rule is evaluated against."""

    scenario: TaxScenario
    result: TaxComputationResult
    table: BracketTable
    thresholds: AdvisorThresholds

    @property
    def marginal_rate(self) -> Decimal:
        return self.result.marginal_rate

    @property
    def retirement_max(self) -> Decimal:
        return min(
            self.thresholds.retirement_limit,
            self.scenario.income * self.thresholds.retirement_income_share,
        )

    @property
    def retirement_additional(self) -> Decimal:
        room = self.retirement_max - self.scenario.retirement_contributions
        return min(room, self.thresholds.retirement_max_additional)


@dataclass(frozen=True)
class AdvisoryRule:
    """A predicate and the insight it produces when it holds."""

    rule_id: str
    applies: Callable[[AdvisoryContext], bool]
    build: Callable[[AdvisoryContext], Insight]

    def evaluate(self, ctx: AdvisoryContext) -> Optional[Insight]:
        if not self.applies(ctx):
            return None
        return self.build(ctx)


@dataclass(frozen=True)
class InsightBatch:
    """Ranked insights plus the ids of any rules that were skipped."""

    insights: tuple[Insight, ...]
    skipped_rules: tuple[str, ...] = ()


def _money(amount: Decimal) -> str:
    return f"${round_currency(amount):,.0f}"


# ---------------------------------------------------------------------------
# Home office
# ---------------------------------------------------------------------------


def _home_office_applies(ctx: AdvisoryContext) -> bool:
    s = ctx.scenario
    return (
        s.self_employed
        and not s.home_office
        and s.income > ctx.thresholds.home_office_min_income
    )


def _home_office_insight(ctx: AdvisoryContext) -> Insight:
    t = ctx.thresholds
    deduction = min(
        t.home_office_max_deduction, ctx.scenario.income * t.home_office_income_share
    )
    savings = deduction * ctx.marginal_rate
    return Insight(
        id="home-office",
        type=InsightType.OPTIMIZATION,
        title="Home Office Deduction Opportunity",
        description=(
            f"You could potentially claim up to {_money(t.home_office_max_deduction)} "
            f"in home office deductions using the simplified method "
            f"(300 sq ft x $5/sq ft), saving approximately {_money(savings)} "
            f"in taxes."
        ),
        impact_amount=round_cents(savings),
        confidence_percent=92,
        action_required=True,
        priority=Priority.HIGH,
        category="Business Deductions",
    )


# ---------------------------------------------------------------------------
# Retirement contributions
# ---------------------------------------------------------------------------


def _retirement_applies(ctx: AdvisoryContext) -> bool:
    return ctx.scenario.retirement_contributions < ctx.retirement_max


def _retirement_insight(ctx: AdvisoryContext) -> Insight:
    additional = ctx.retirement_additional
    savings = additional * ctx.marginal_rate
    return Insight(
        id="retirement",
        type=InsightType.OPTIMIZATION,
        title="Retirement Contribution Optimization",
        description=(
            f"Consider contributing an additional {_money(additional)} to your "
            f"retirement accounts. This could reduce your tax liability by "
            f"{_money(savings)}."
        ),
        impact_amount=round_cents(savings),
        confidence_percent=96,
        action_required=False,
        priority=Priority.MEDIUM,
        category="Retirement Planning",
    )


# ---------------------------------------------------------------------------
# Quarterly estimated payments
# ---------------------------------------------------------------------------


def _quarterly_applies(ctx: AdvisoryContext) -> bool:
    return ctx.scenario.self_employed


def _quarterly_insight(ctx: AdvisoryContext) -> Insight:
    quarterly = round_currency(ctx.result.federal_tax / 4)
    return Insight(
        id="quarterly-payments",
        type=InsightType.PLANNING,
        title="Quarterly Payment Recommendation",
        description=(
            f"Based on your projected income, consider making quarterly "
            f"estimated payments of {_money(quarterly)} to avoid underpayment "
            f"penalties."
        ),
        impact_amount=_ZERO,
        confidence_percent=89,
        action_required=True,
        priority=Priority.HIGH,
        category="Tax Compliance",
    )


# ---------------------------------------------------------------------------
# Business expense ratio
# ---------------------------------------------------------------------------


def _expense_ratio_applies(ctx: AdvisoryContext) -> bool:
    s = ctx.scenario
    return s.business_expenses > s.income * ctx.thresholds.expense_warning_ratio


def _expense_ratio_insight(ctx: AdvisoryContext) -> Insight:
    s = ctx.scenario
    if s.income > 0:
        pct = round_currency(s.business_expenses / s.income * 100)
        share = f"represent {pct}% of your income, which is above the typical range"
    else:
        share = "were reported with no income"
    return Insight(
        id="expense-ratio",
        type=InsightType.WARNING,
        title="Business Expense Ratio Alert",
        description=(
            f"Your business expenses {share}. Ensure all expenses are properly "
            f"documented and legitimate business expenses."
        ),
        impact_amount=_ZERO,
        confidence_percent=78,
        action_required=True,
        priority=Priority.MEDIUM,
        category="Audit Risk",
    )


# ---------------------------------------------------------------------------
# Bracket proximity
# ---------------------------------------------------------------------------


def _bracket_gap(ctx: AdvisoryContext) -> Optional[Decimal]:
    if ctx.result.used_fallback_table:
        raise RuleEvaluationSkipped(
            "bracket-proximity",
            f"no {ctx.scenario.filing_status.value} thresholds for "
            f"{ctx.result.tax_year}",
        )
    threshold = next_threshold(ctx.scenario.income, ctx.table)
    if threshold is None:
        return None
    return threshold - ctx.scenario.income


def _bracket_proximity_applies(ctx: AdvisoryContext) -> bool:
    gap = _bracket_gap(ctx)
    return gap is not None and gap < ctx.thresholds.bracket_proximity_gap


def _bracket_proximity_insight(ctx: AdvisoryContext) -> Insight:
    gap = _bracket_gap(ctx)
    current = marginal_rate(ctx.scenario.income, ctx.table) * 100
    return Insight(
        id="bracket-proximity",
        type=InsightType.PLANNING,
        title="Tax Bracket Management",
        description=(
            f"You're close to the next tax bracket threshold. Consider "
            f"deferring {_money(gap)} in income or increasing deductions to "
            f"stay in your current {current:.0f}% bracket."
        ),
        impact_amount=round_cents(gap * ctx.thresholds.bracket_proximity_savings_rate),
        confidence_percent=84,
        action_required=False,
        priority=Priority.LOW,
        category="Tax Planning",
    )


DEFAULT_RULES: tuple[AdvisoryRule, ...] = (
    AdvisoryRule("home-office", _home_office_applies, _home_office_insight),
    AdvisoryRule("retirement", _retirement_applies, _retirement_insight),
    AdvisoryRule("quarterly-payments", _quarterly_applies, _quarterly_insight),
    AdvisoryRule("expense-ratio", _expense_ratio_applies, _expense_ratio_insight),
    AdvisoryRule(
        "bracket-proximity", _bracket_proximity_applies, _bracket_proximity_insight
    ),
)


def rank_insights(insights: Sequence[Insight]) -> list[Insight]:
    """High priority first, then larger impact; ties keep rule order."""
    return sorted(
        insights,
        key=lambda i: (_PRIORITY_RANK[i.priority], -i.impact_amount),
    )


class OptimizationAdvisor:
    """
    Evaluates advisory rules against a computed scenario.

    Rules are independent, so a failure in one only removes that rule's
    insight.
    """

    def __init__(
        self,
        config: TaxYearConfig,
        rules: Optional[Sequence[AdvisoryRule]] = None,
    ) -> None:
        self.config = config
        self.rules: tuple[AdvisoryRule, ...] = tuple(
            DEFAULT_RULES if rules is None else rules
        )

    def _context(
        self, scenario: TaxScenario, result: TaxComputationResult
    ) -> AdvisoryContext:
        table, _ = self.config.resolve_table(result.filing_status)
        return AdvisoryContext(
            scenario=scenario,
            result=result,
            table=table,
            thresholds=self.config.thresholds,
        )

    def generate_insights(
        self, scenario: TaxScenario, result: TaxComputationResult
    ) -> InsightBatch:
        ctx = self._context(scenario, result)
        insights: list[Insight] = []
        skipped: list[str] = []

        for rule in self.rules:
            try:
                insight = rule.evaluate(ctx)
            except RuleEvaluationSkipped as e:
                logger.warning("Skipped advisory rule %s: %s", rule.rule_id, e.reason)
                skipped.append(rule.rule_id)
                continue
            except ArithmeticError as e:
                logger.warning(
                    "Skipped advisory rule %s: %s", rule.rule_id, e, exc_info=True
                )
                skipped.append(rule.rule_id)
                continue
            if insight is not None:
                insights.append(insight)

        return InsightBatch(
            insights=tuple(rank_insights(insights)),
            skipped_rules=tuple(skipped),
        )

    def estimate_business_deductions(self, scenario: TaxScenario) -> Decimal:
        """Rough annual deductions a self-employed filer may be missing."""
        t = self.config.thresholds
        income = scenario.income
        estimate = _ZERO
        if not scenario.home_office:
            estimate += min(
                t.estimate_home_office_cap, income * t.estimate_home_office_share
            )
        estimate += min(
            t.estimate_professional_cap, income * t.estimate_professional_share
        )
        estimate += min(t.estimate_equipment_cap, income * t.estimate_equipment_share)
        return estimate

    def find_optimizations(
        self, scenario: TaxScenario, result: TaxComputationResult
    ) -> list[OptimizationStrategy]:
        ctx = self._context(scenario, result)
        strategies: list[OptimizationStrategy] = []

        if _retirement_applies(ctx):
            additional = ctx.retirement_additional
            strategies.append(
                OptimizationStrategy(
                    strategy="Maximize Retirement Contributions",
                    potential_savings=round_currency(additional * ctx.marginal_rate),
                    description=(
                        f"Contribute an additional {_money(additional)} to "
                        f"retirement accounts"
                    ),
                    difficulty="Easy",
                    timeline="Before year-end",
                )
            )

        if scenario.self_employed:
            deductions = self.estimate_business_deductions(scenario)
            strategies.append(
                OptimizationStrategy(
                    strategy="Optimize Business Deductions",
                    potential_savings=round_currency(deductions * ctx.marginal_rate),
                    description="Review and maximize legitimate business expenses",
                    difficulty="Medium",
                    timeline="Ongoing",
                )
            )

        return strategies
