"""
Federal income tax calculation engine.

Handles:
- Adjusted gross and taxable income
- Cumulative bracket tax, rounded once at the end
- Self-employment tax
- Marginal and effective rates
- Filing-status fallback to the single table
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from tax_advisor.brackets import (
    BracketTable,
    FilingStatus,
    SelfEmploymentRates,
    TaxYearConfig,
    default_config,
)
from tax_advisor.exceptions import UnsupportedFilingStatusWarning
from tax_advisor.scenario import TaxScenario

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def round_currency(amount: Decimal) -> Decimal:
    """Round to the nearest whole currency unit, halves away from zero."""
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def round_cents(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def bracket_tax(taxable_income: Decimal, table: BracketTable) -> Decimal:
    """
    Unrounded progressive tax on taxable_income.

    Each bracket taxes clamp(taxable - lower, 0, upper - lower).
    """
    total = _ZERO
    for bracket in table.brackets:
        portion = taxable_income - bracket.lower
        if portion <= 0:
            break
        if bracket.width is not None:
            portion = min(portion, bracket.width)
        total += portion * bracket.rate
    return total


def marginal_rate(taxable_income: Decimal, table: BracketTable) -> Decimal:
    """Rate of the bracket whose [lower, upper) interval holds the amount."""
    if taxable_income < 0:
        raise ValueError(f"Taxable income cannot be negative: {taxable_income}")
    for bracket in table.brackets:
        if bracket.contains(taxable_income):
            return bracket.rate
    return table.top_rate


def next_threshold(amount: Decimal, table: BracketTable) -> Optional[Decimal]:
    """Lower bound of the next bracket above amount, None in the top bracket."""
    for threshold in table.thresholds:
        if amount < threshold:
            return threshold
    return None


@dataclass(frozen=True)
class BracketTaxResult:
    """Output of the bracket stage, before SE tax and rates."""

    adjusted_gross_income: Decimal
    taxable_income: Decimal
    federal_tax: Decimal
    table: BracketTable
    raw_federal_tax: Decimal = _ZERO
    used_fallback_table: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class TaxComputationResult:
    """Full federal tax picture for one scenario."""

    adjusted_gross_income: Decimal
    taxable_income: Decimal
    federal_tax: Decimal
    self_employment_tax: Decimal
    total_tax: Decimal
    effective_rate: Decimal  # percent, 2 dp
    marginal_rate: Decimal  # fraction, e.g. 0.22
    tax_year: int
    filing_status: FilingStatus  # status of the table actually used
    used_fallback_table: bool = False
    warnings: tuple[str, ...] = field(default_factory=tuple)


class BracketTaxCalculator:
    """
    Computes AGI, taxable income and federal tax from the bracket table.

    A filing status with no table in the configured year falls back to
    the single table. In strict mode the fallback is refused instead.
    """

    def __init__(self, config: TaxYearConfig, strict: bool = False) -> None:
        self.config = config
        self.strict = strict

    def resolve_table(self, status: FilingStatus) -> tuple[BracketTable, list[str]]:
        table, used_fallback = self.config.resolve_table(status)
        if not used_fallback:
            return table, []

        message = (
            f"No {status.value} bracket table for {self.config.tax_year}; "
            f"used the {table.filing_status.value} table"
        )
        if self.strict:
            raise UnsupportedFilingStatusWarning(message)
        logger.warning(message)
        return table, [message]

    def calculate(self, scenario: TaxScenario) -> BracketTaxResult:
        table, warnings = self.resolve_table(scenario.filing_status)

        agi = max(scenario.income - scenario.retirement_contributions, _ZERO)
        taxable = max(agi - scenario.deductions, _ZERO)
        raw_federal_tax = bracket_tax(taxable, table)

        return BracketTaxResult(
            adjusted_gross_income=agi,
            taxable_income=taxable,
            federal_tax=round_currency(raw_federal_tax),
            table=table,
            raw_federal_tax=raw_federal_tax,
            used_fallback_table=bool(warnings),
            warnings=tuple(warnings),
        )


class SelfEmploymentTaxCalculator:
    """
    Self-employment tax on gross income.

    By default the combined 15.3% rate applies to the full net-earnings
    base with no Social Security wage-base cap.
    """

    def __init__(self, rates: SelfEmploymentRates) -> None:
        self.rates = rates

    def raw_tax(self, scenario: TaxScenario) -> Decimal:
        """Unrounded SE tax."""
        if not scenario.self_employed:
            return _ZERO

        base = scenario.income * self.rates.net_earnings_factor
        if not self.rates.apply_wage_base_cap:
            return base * self.rates.combined_rate

        capped = min(base, self.rates.social_security_wage_base)
        return (
            capped * self.rates.social_security_rate
            + base * self.rates.medicare_rate
        )

    def calculate(self, scenario: TaxScenario) -> Decimal:
        return round_currency(self.raw_tax(scenario))


class MarginalRateResolver:
    """Looks up the marginal rate for a taxable-income value."""

    def resolve(self, taxable_income: Decimal, table: BracketTable) -> Decimal:
        return marginal_rate(taxable_income, table)

    def next_threshold(
        self, amount: Decimal, table: BracketTable
    ) -> Optional[Decimal]:
        return next_threshold(amount, table)


class TaxCalculator:
    """
    Federal tax calculation for a single scenario.

    Combines the bracket, self-employment and marginal-rate stages into a
    TaxComputationResult.
    """

    def __init__(
        self, config: Optional[TaxYearConfig] = None, strict: bool = False
    ) -> None:
        self.config = config or default_config()
        self.brackets = BracketTaxCalculator(self.config, strict=strict)
        self.self_employment = SelfEmploymentTaxCalculator(
            self.config.self_employment
        )
        self.rates = MarginalRateResolver()

    def calculate(self, scenario: TaxScenario) -> TaxComputationResult:
        bracket_result = self.brackets.calculate(scenario)
        raw_se_tax = self.self_employment.raw_tax(scenario)
        se_tax = round_currency(raw_se_tax)
        # the total is rounded from the unrounded parts, so it can differ
        # by 1 from federal_tax + self_employment_tax
        raw_total = bracket_result.raw_federal_tax + raw_se_tax
        total = round_currency(raw_total)

        if scenario.income > 0:
            effective = round_cents(raw_total / scenario.income * 100)
        else:
            effective = Decimal("0.00")

        rate = self.rates.resolve(bracket_result.taxable_income, bracket_result.table)

        logger.debug(
            "Computed %s tax for %s: taxable=%s federal=%s se=%s",
            self.config.tax_year,
            scenario.filing_status.value,
            bracket_result.taxable_income,
            bracket_result.federal_tax,
            se_tax,
        )

        return TaxComputationResult(
            adjusted_gross_income=bracket_result.adjusted_gross_income,
            taxable_income=bracket_result.taxable_income,
            federal_tax=bracket_result.federal_tax,
            self_employment_tax=se_tax,
            total_tax=total,
            effective_rate=effective,
            marginal_rate=rate,
            tax_year=self.config.tax_year,
            filing_status=bracket_result.table.filing_status,
            used_fallback_table=bracket_result.used_fallback_table,
            warnings=bracket_result.warnings,
        )
