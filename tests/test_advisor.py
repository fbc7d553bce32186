"""Tests for the rule-based OptimizationAdvisor."""

import logging
from decimal import Decimal

import pytest

from tax_advisor.advisor import (
    DEFAULT_RULES,
    AdvisoryRule,
    Insight,
    InsightType,
    OptimizationAdvisor,
    Priority,
    rank_insights,
)
from tax_advisor.brackets import BracketDatabase, FilingStatus, TaxYearConfig
from tax_advisor.calculator import TaxCalculator
from tax_advisor.exceptions import RuleEvaluationSkipped
from tax_advisor.scenario import TaxScenario


@pytest.fixture
def config() -> TaxYearConfig:
    return BracketDatabase().get_config(2024)


@pytest.fixture
def advisor(config: TaxYearConfig) -> OptimizationAdvisor:
    return OptimizationAdvisor(config)


def _scenario(
    income: str = "85000",
    status: FilingStatus = FilingStatus.SINGLE,
    deductions: str = "13850",
    self_employed: bool = True,
    home_office: bool = False,
    expenses: str = "0",
    retirement: str = "6000",
) -> TaxScenario:
    return TaxScenario(
        income=Decimal(income),
        filing_status=status,
        deductions=Decimal(deductions),
        self_employed=self_employed,
        home_office=home_office,
        business_expenses=Decimal(expenses),
        retirement_contributions=Decimal(retirement),
    )


def _advise(advisor: OptimizationAdvisor, scenario: TaxScenario):
    result = TaxCalculator(advisor.config).calculate(scenario)
    return advisor.generate_insights(scenario, result)


def _by_id(batch) -> dict[str, Insight]:
    return {i.id: i for i in batch.insights}


def _insight(id_: str, priority: Priority, impact: str) -> Insight:
    return Insight(
        id=id_,
        type=InsightType.PLANNING,
        title=id_,
        description="",
        impact_amount=Decimal(impact),
        confidence_percent=50,
        action_required=False,
        priority=priority,
        category="Test",
    )


# ── Home office ──────────────────────────────────────────────────────


def test_home_office_insight_scenario_b(advisor: OptimizationAdvisor):
    insight = _by_id(_advise(advisor, _scenario()))["home-office"]
    # min(1500, 85000 x 5%) x 22%
    assert insight.impact_amount == Decimal("330")
    assert insight.confidence_percent == 92
    assert insight.priority == Priority.HIGH
    assert insight.action_required is True
    assert insight.type == InsightType.OPTIMIZATION
    assert "$330" in insight.description


def test_home_office_just_above_income_gate(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("25000", deductions="0", retirement="0"))
    assert "home-office" not in _by_id(batch)

    insights = _by_id(
        _advise(advisor, _scenario("30000.01", deductions="0", retirement="0"))
    )
    # taxable 30000.01 -> 12%; min(1500, 1500.0005) = 1500
    assert insights["home-office"].impact_amount == Decimal("180.00")


def test_home_office_requires_self_employment(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario(self_employed=False))
    assert "home-office" not in _by_id(batch)


def test_home_office_not_suggested_when_claimed(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario(home_office=True))
    assert "home-office" not in _by_id(batch)


def test_home_office_income_threshold_is_exclusive(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("30000", deductions="0", retirement="0"))
    assert "home-office" not in _by_id(batch)


# ── Retirement ───────────────────────────────────────────────────────


def test_retirement_insight_capped_at_5000(advisor: OptimizationAdvisor):
    insight = _by_id(_advise(advisor, _scenario()))["retirement"]
    # room is min(23000, 21250) - 6000 = 15250, capped at 5000, x 22%
    assert insight.impact_amount == Decimal("1100")
    assert insight.confidence_percent == 96
    assert insight.priority == Priority.MEDIUM
    assert insight.action_required is False


def test_retirement_small_room(advisor: OptimizationAdvisor):
    # max = min(23000, 40000 x 25%) = 10000; room 1000 at 12%
    scenario = _scenario("40000", self_employed=False, retirement="9000", deductions="0")
    insight = _by_id(_advise(advisor, scenario))["retirement"]
    assert insight.impact_amount == Decimal("120")


def test_retirement_not_suggested_when_maxed(advisor: OptimizationAdvisor):
    scenario = _scenario("200000", retirement="23000")
    assert "retirement" not in _by_id(_advise(advisor, scenario))


def test_retirement_not_suggested_for_zero_income(advisor: OptimizationAdvisor):
    scenario = _scenario("0", self_employed=False, retirement="0", deductions="0")
    assert _advise(advisor, scenario).insights == ()


# ── Quarterly payments ───────────────────────────────────────────────


def test_quarterly_insight(advisor: OptimizationAdvisor):
    insight = _by_id(_advise(advisor, _scenario()))["quarterly-payments"]
    # 9641 / 4 = 2410.25
    assert "$2,410" in insight.description
    assert insight.impact_amount == Decimal("0")
    assert insight.confidence_percent == 89
    assert insight.priority == Priority.HIGH
    assert insight.type == InsightType.PLANNING


def test_no_quarterly_insight_for_employees(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario(self_employed=False))
    assert "quarterly-payments" not in _by_id(batch)


# ── Expense ratio ────────────────────────────────────────────────────


def test_expense_ratio_warning(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("100000", expenses="40000"))
    insight = _by_id(batch)["expense-ratio"]
    assert insight.type == InsightType.WARNING
    assert insight.confidence_percent == 78
    assert insight.priority == Priority.MEDIUM
    assert insight.impact_amount == Decimal("0")
    assert "40%" in insight.description


def test_expense_ratio_threshold_is_exclusive(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("100000", expenses="35000"))
    assert "expense-ratio" not in _by_id(batch)


def test_expense_ratio_with_zero_income(advisor: OptimizationAdvisor):
    scenario = _scenario("0", expenses="500", retirement="0", deductions="0")
    insight = _by_id(_advise(advisor, scenario))["expense-ratio"]
    assert "no income" in insight.description


# ── Bracket proximity ────────────────────────────────────────────────


def test_bracket_proximity_fires_near_threshold(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("92000", self_employed=False))
    insight = _by_id(batch)["bracket-proximity"]
    # next threshold 95375, gap 3375 x 3%
    assert insight.impact_amount == Decimal("101.25")
    assert insight.confidence_percent == 84
    assert insight.priority == Priority.LOW
    assert "22% bracket" in insight.description
    assert "$3,375" in insight.description


def test_bracket_proximity_silent_when_far(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("85000"))
    assert "bracket-proximity" not in _by_id(batch)


def test_bracket_proximity_silent_in_top_bracket(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("900000"))
    assert "bracket-proximity" not in _by_id(batch)


def test_bracket_proximity_skipped_on_fallback(advisor: OptimizationAdvisor, caplog):
    scenario = _scenario("92000", status=FilingStatus.HEAD_OF_HOUSEHOLD)
    with caplog.at_level(logging.WARNING):
        batch = _advise(advisor, scenario)
    assert batch.skipped_rules == ("bracket-proximity",)
    assert "bracket-proximity" not in _by_id(batch)
    # the other rules still ran
    assert "home-office" in _by_id(batch)
    assert "Skipped advisory rule bracket-proximity" in caplog.text


# ── Resilience and ranking ───────────────────────────────────────────


def test_failing_rule_is_skipped(config: TaxYearConfig, caplog):
    def divide_by_zero(ctx):
        return Decimal("1") / Decimal("0") > 0

    def refuse(ctx):
        raise RuleEvaluationSkipped("refuse", "no data")

    rules = DEFAULT_RULES + (
        AdvisoryRule("broken", divide_by_zero, lambda ctx: None),
        AdvisoryRule("refuse", refuse, lambda ctx: None),
    )
    advisor = OptimizationAdvisor(config, rules=rules)
    with caplog.at_level(logging.WARNING):
        batch = _advise(advisor, _scenario())
    assert batch.skipped_rules == ("broken", "refuse")
    assert len(batch.insights) == 3
    assert "Skipped advisory rule broken" in caplog.text


def test_scenario_b_ranking(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario())
    assert [i.id for i in batch.insights] == [
        "home-office",
        "quarterly-payments",
        "retirement",
    ]


def test_rank_by_priority_then_impact():
    ranked = rank_insights(
        [
            _insight("low", Priority.LOW, "900"),
            _insight("med-small", Priority.MEDIUM, "10"),
            _insight("high", Priority.HIGH, "0"),
            _insight("med-big", Priority.MEDIUM, "500"),
            _insight("med-small-2", Priority.MEDIUM, "10"),
        ]
    )
    assert [i.id for i in ranked] == [
        "high",
        "med-big",
        "med-small",
        "med-small-2",
        "low",
    ]


def test_insight_confidence_bounds():
    with pytest.raises(ValueError, match="confidence"):
        Insight(
            id="bad",
            type=InsightType.CALCULATION,
            title="",
            description="",
            impact_amount=Decimal("0"),
            confidence_percent=101,
            action_required=False,
            priority=Priority.LOW,
            category="",
        )


def test_all_confidences_in_range(advisor: OptimizationAdvisor):
    batch = _advise(advisor, _scenario("92000", expenses="50000"))
    assert batch.insights
    assert all(0 <= i.confidence_percent <= 100 for i in batch.insights)


# ── Strategies ───────────────────────────────────────────────────────


def test_strategies_scenario_b(advisor: OptimizationAdvisor, config: TaxYearConfig):
    scenario = _scenario()
    result = TaxCalculator(config).calculate(scenario)
    strategies = advisor.find_optimizations(scenario, result)
    assert [s.strategy for s in strategies] == [
        "Maximize Retirement Contributions",
        "Optimize Business Deductions",
    ]
    assert strategies[0].potential_savings == Decimal("1100")
    # (1500 + 1700 + 3000) x 22%
    assert strategies[1].potential_savings == Decimal("1364")
    assert strategies[1].difficulty == "Medium"


def test_business_deduction_estimate_with_home_office(advisor: OptimizationAdvisor):
    scenario = _scenario(home_office=True)
    # 1700 + 3000, no home-office share
    assert advisor.estimate_business_deductions(scenario) == Decimal("4700")


def test_no_strategies_for_maxed_employee(
    advisor: OptimizationAdvisor, config: TaxYearConfig
):
    scenario = _scenario("200000", self_employed=False, retirement="23000")
    result = TaxCalculator(config).calculate(scenario)
    assert advisor.find_optimizations(scenario, result) == []
