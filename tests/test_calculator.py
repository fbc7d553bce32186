"""Tests for the federal and self-employment tax calculators."""

import logging
from decimal import Decimal

import pytest

from tax_advisor.brackets import (
    BracketDatabase,
    FilingStatus,
    SelfEmploymentRates,
    TaxYearConfig,
)
from tax_advisor.calculator import (
    BracketTaxCalculator,
    MarginalRateResolver,
    SelfEmploymentTaxCalculator,
    TaxCalculator,
    bracket_tax,
    marginal_rate,
    next_threshold,
    round_currency,
)
from tax_advisor.exceptions import UnsupportedFilingStatusWarning
from tax_advisor.scenario import TaxScenario


@pytest.fixture
def config_2024() -> TaxYearConfig:
    return BracketDatabase().get_config(2024)


@pytest.fixture
def calc(config_2024: TaxYearConfig) -> TaxCalculator:
    return TaxCalculator(config_2024)


@pytest.fixture
def single_table(config_2024: TaxYearConfig):
    return config_2024.table_for(FilingStatus.SINGLE)


def _scenario(
    income: str = "50000",
    status: FilingStatus = FilingStatus.SINGLE,
    deductions: str = "13850",
    retirement: str = "0",
    self_employed: bool = False,
    expenses: str = "0",
) -> TaxScenario:
    return TaxScenario(
        income=Decimal(income),
        filing_status=status,
        deductions=Decimal(deductions),
        self_employed=self_employed,
        business_expenses=Decimal(expenses),
        retirement_contributions=Decimal(retirement),
    )


# ── Reference scenarios ──────────────────────────────────────────────


def test_scenario_a_employee(calc: TaxCalculator):
    result = calc.calculate(_scenario("50000"))
    assert result.adjusted_gross_income == Decimal("50000")
    assert result.taxable_income == Decimal("36150")
    # 1100 + 25150 x 12%
    assert result.federal_tax == Decimal("4118")
    assert result.self_employment_tax == Decimal("0")
    assert result.total_tax == Decimal("4118")
    assert result.marginal_rate == Decimal("0.12")
    assert result.effective_rate == Decimal("8.24")


def test_scenario_b_self_employed(calc: TaxCalculator):
    result = calc.calculate(
        _scenario("85000", retirement="6000", self_employed=True)
    )
    assert result.adjusted_gross_income == Decimal("79000")
    assert result.taxable_income == Decimal("65150")
    # 5147 + 20425 x 22% = 9640.50, rounded half-up once at the end
    assert result.federal_tax == Decimal("9641")
    # 85000 x 0.9235 x 0.153 = 12010.1175
    assert result.self_employment_tax == Decimal("12010")
    assert result.total_tax == Decimal("21651")
    assert result.marginal_rate == Decimal("0.22")
    assert result.effective_rate == Decimal("25.47")


@pytest.mark.parametrize(
    "income, federal, se, total",
    [
        # 1718.36 + 4239.2888865 = 5957.6488865
        ("30003", "1718", "4239", "5958"),
        # 1719.32 + 4240.4192505 = 5959.7392505
        ("30011", "1719", "4240", "5960"),
    ],
)
def test_total_rounded_from_unrounded_parts(
    calc: TaxCalculator, income, federal, se, total
):
    result = calc.calculate(_scenario(income, self_employed=True))
    assert result.federal_tax == Decimal(federal)
    assert result.self_employment_tax == Decimal(se)
    assert result.total_tax == Decimal(total)


def test_total_within_a_dollar_of_components(calc: TaxCalculator):
    for income in range(30000, 30200, 7):
        result = calc.calculate(_scenario(str(income), self_employed=True))
        parts = result.federal_tax + result.self_employment_tax
        assert abs(result.total_tax - parts) <= 1


def test_married_joint_table(calc: TaxCalculator):
    result = calc.calculate(
        _scenario("100000", status=FilingStatus.MARRIED_JOINT, deductions="0")
    )
    # 2200 + 67450 x 12% + 10550 x 22%
    assert result.federal_tax == Decimal("12615")
    assert result.filing_status == FilingStatus.MARRIED_JOINT
    assert result.used_fallback_table is False


def test_2025_head_of_household():
    calc = TaxCalculator(BracketDatabase().get_config(2025))
    result = calc.calculate(
        _scenario("50000", status=FilingStatus.HEAD_OF_HOUSEHOLD, deductions="0")
    )
    # 1700 + 33000 x 12%
    assert result.federal_tax == Decimal("5660")
    assert result.tax_year == 2025


# ── Income floors ────────────────────────────────────────────────────


def test_taxable_income_floored_at_zero(calc: TaxCalculator):
    result = calc.calculate(_scenario("10000", deductions="13850"))
    assert result.taxable_income == Decimal("0")
    assert result.federal_tax == Decimal("0")
    assert result.marginal_rate == Decimal("0.10")


def test_agi_floored_at_zero(calc: TaxCalculator):
    result = calc.calculate(_scenario("5000", retirement="8000", deductions="0"))
    assert result.adjusted_gross_income == Decimal("0")
    assert result.taxable_income == Decimal("0")


def test_zero_income_effective_rate(calc: TaxCalculator):
    result = calc.calculate(_scenario("0", deductions="0"))
    assert result.effective_rate == Decimal("0")
    assert result.total_tax == Decimal("0")


# ── Filing status fallback ───────────────────────────────────────────


def test_unmodeled_status_falls_back_to_single(calc: TaxCalculator, caplog):
    with caplog.at_level(logging.WARNING, logger="tax_advisor.calculator"):
        result = calc.calculate(
            _scenario("50000", status=FilingStatus.HEAD_OF_HOUSEHOLD)
        )
    assert result.federal_tax == Decimal("4118")
    assert result.used_fallback_table is True
    assert result.filing_status == FilingStatus.SINGLE
    assert "No headOfHousehold bracket table for 2024" in result.warnings[0]
    assert "No headOfHousehold bracket table" in caplog.text


def test_strict_mode_refuses_fallback(config_2024: TaxYearConfig):
    calc = BracketTaxCalculator(config_2024, strict=True)
    with pytest.raises(UnsupportedFilingStatusWarning):
        calc.calculate(_scenario(status=FilingStatus.MARRIED_SEPARATE))


def test_modeled_status_has_no_warnings(calc: TaxCalculator):
    assert calc.calculate(_scenario()).warnings == ()


# ── Bracket sum properties ───────────────────────────────────────────


def test_tax_is_monotonic(single_table):
    previous = Decimal("-1")
    for step in range(0, 700001, 2500):
        tax = bracket_tax(Decimal(step), single_table)
        assert tax >= previous
        previous = tax


def test_tax_is_continuous_at_boundaries(single_table):
    eps = Decimal("0.01")
    for before, bracket in zip(single_table.brackets, single_table.brackets[1:]):
        at = bracket_tax(bracket.lower, single_table)
        below = bracket_tax(bracket.lower - eps, single_table)
        assert at - below == before.rate * eps


def test_tax_at_first_boundary(single_table):
    assert bracket_tax(Decimal("11000"), single_table) == Decimal("1100")
    assert bracket_tax(Decimal("44725"), single_table) == Decimal("5147")


def test_rounding_happens_once(single_table):
    # per-bracket rounding would drift; the raw sum keeps the half cent
    assert bracket_tax(Decimal("65150"), single_table) == Decimal("9640.50")
    assert round_currency(Decimal("9640.50")) == Decimal("9641")


# ── Marginal rate ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "amount, expected",
    [
        ("0", "0.10"),
        ("10999.99", "0.10"),
        ("11000", "0.12"),
        ("44724.99", "0.12"),
        ("44725", "0.22"),
        ("578125", "0.37"),
        ("10000000", "0.37"),
    ],
)
def test_marginal_rate_half_open(single_table, amount, expected):
    assert marginal_rate(Decimal(amount), single_table) == Decimal(expected)


def test_marginal_rate_rejects_negative(single_table):
    with pytest.raises(ValueError, match="negative"):
        marginal_rate(Decimal("-1"), single_table)


def test_resolver_matches_containing_bracket(single_table):
    resolver = MarginalRateResolver()
    for bracket in single_table.brackets:
        assert resolver.resolve(bracket.lower, single_table) == bracket.rate


def test_next_threshold(single_table):
    assert next_threshold(Decimal("92000"), single_table) == Decimal("95375")
    assert next_threshold(Decimal("11000"), single_table) == Decimal("44725")
    assert next_threshold(Decimal("600000"), single_table) is None


# ── Self-employment tax ──────────────────────────────────────────────


def test_no_se_tax_for_employees(config_2024: TaxYearConfig):
    se = SelfEmploymentTaxCalculator(config_2024.self_employment)
    assert se.calculate(_scenario("85000")) == Decimal("0")


def test_se_tax_ignores_wage_base_by_default(config_2024: TaxYearConfig):
    # 300000 x 0.9235 = 277050, well above the 168600 wage base
    se = SelfEmploymentTaxCalculator(config_2024.self_employment)
    assert config_2024.self_employment.apply_wage_base_cap is False
    assert se.calculate(_scenario("300000", self_employed=True)) == Decimal("42389")


def test_se_tax_with_wage_base_cap():
    rates = SelfEmploymentRates(
        social_security_wage_base=Decimal("168600"), apply_wage_base_cap=True
    )
    se = SelfEmploymentTaxCalculator(rates)
    # 168600 x 12.4% + 277050 x 2.9% = 20906.40 + 8034.45
    assert se.calculate(_scenario("300000", self_employed=True)) == Decimal("28941")


def test_wage_base_cap_irrelevant_below_base():
    capped = SelfEmploymentTaxCalculator(
        SelfEmploymentRates(Decimal("168600"), apply_wage_base_cap=True)
    )
    uncapped = SelfEmploymentTaxCalculator(SelfEmploymentRates(Decimal("168600")))
    scenario = _scenario("85000", self_employed=True)
    assert capped.calculate(scenario) == uncapped.calculate(scenario) == Decimal(
        "12010"
    )


def test_se_raw_tax_keeps_fraction(config_2024: TaxYearConfig):
    se = SelfEmploymentTaxCalculator(config_2024.self_employment)
    assert se.raw_tax(_scenario("85000", self_employed=True)) == Decimal("12010.1175")
