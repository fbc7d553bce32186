"""
Federal income tax bracket tables, versioned by tax year.

Each tax year carries one progressive-rate schedule per filing status,
the self-employment tax rates, and the thresholds used by the advisory
rules and the audit risk scorer. Everything here is loaded once into
frozen dataclasses and never mutated afterwards.

The 2024 schedule is the one the advisory engine has always used (single
and married-joint only; other statuses fall back to single). The 2025
schedule covers all four filing statuses.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from tax_advisor.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TAX_YEAR = 2024


class FilingStatus(Enum):
    SINGLE = "single"
    MARRIED_JOINT = "marriedJoint"
    MARRIED_SEPARATE = "marriedSeparate"
    HEAD_OF_HOUSEHOLD = "headOfHousehold"


@dataclass(frozen=True)
class Bracket:
    """A half-open [lower, upper) income range taxed at one rate."""

    lower: Decimal
    upper: Optional[Decimal]  # None = unbounded
    rate: Decimal  # decimal, e.g. 0.22 = 22%

    def contains(self, amount: Decimal) -> bool:
        return amount >= self.lower and (self.upper is None or amount < self.upper)

    @property
    def width(self) -> Optional[Decimal]:
        return None if self.upper is None else self.upper - self.lower


@dataclass(frozen=True)
class BracketTable:
    """
    Progressive-rate schedule for a single filing status.

    Brackets must start at zero, be contiguous and ascending, and end
    with exactly one unbounded bracket.
    """

    filing_status: FilingStatus
    brackets: tuple[Bracket, ...]

    def __post_init__(self) -> None:
        if not self.brackets:
            raise ValueError(f"{self.filing_status.value}: empty bracket table")
        if self.brackets[0].lower != 0:
            raise ValueError(
                f"{self.filing_status.value}: first bracket must start at 0"
            )
        for i, bracket in enumerate(self.brackets):
            if not Decimal("0") <= bracket.rate <= Decimal("1"):
                raise ValueError(
                    f"{self.filing_status.value}: rate {bracket.rate} out of range"
                )
            is_last = i == len(self.brackets) - 1
            if bracket.upper is None:
                if not is_last:
                    raise ValueError(
                        f"{self.filing_status.value}: only the final bracket "
                        f"may be unbounded"
                    )
                continue
            if bracket.upper <= bracket.lower:
                raise ValueError(
                    f"{self.filing_status.value}: bracket bounds must ascend "
                    f"({bracket.lower} >= {bracket.upper})"
                )
            if is_last:
                raise ValueError(
                    f"{self.filing_status.value}: final bracket must be unbounded"
                )
            nxt = self.brackets[i + 1]
            if nxt.lower != bracket.upper:
                raise ValueError(
                    f"{self.filing_status.value}: gap or overlap between "
                    f"{bracket.upper} and {nxt.lower}"
                )

    @property
    def top_rate(self) -> Decimal:
        return self.brackets[-1].rate

    @property
    def thresholds(self) -> list[Decimal]:
        """Finite upper bounds, ascending."""
        return [b.upper for b in self.brackets if b.upper is not None]


@dataclass(frozen=True)
class SelfEmploymentRates:
    """
    Self-employment tax parameters.

    With apply_wage_base_cap off (the default) the full 15.3% is applied
    to the whole net-earnings base, ignoring the Social Security wage
    base. Turning it on caps the 12.4% portion at the wage base.
    """

    social_security_wage_base: Decimal
    net_earnings_factor: Decimal = Decimal("0.9235")
    combined_rate: Decimal = Decimal("0.153")
    social_security_rate: Decimal = Decimal("0.124")
    medicare_rate: Decimal = Decimal("0.029")
    apply_wage_base_cap: bool = False


@dataclass(frozen=True)
class AdvisorThresholds:
    """Constants used by the advisory rules, strategies and risk scorer."""

    # Home office
    home_office_min_income: Decimal = Decimal("30000")
    home_office_max_deduction: Decimal = Decimal("1500")
    home_office_income_share: Decimal = Decimal("0.05")

    # Retirement
    retirement_limit: Decimal = Decimal("23000")
    retirement_income_share: Decimal = Decimal("0.25")
    retirement_max_additional: Decimal = Decimal("5000")

    # Business expense ratio warning
    expense_warning_ratio: Decimal = Decimal("0.35")

    # Bracket proximity
    bracket_proximity_gap: Decimal = Decimal("5000")
    bracket_proximity_savings_rate: Decimal = Decimal("0.03")

    # Business deduction estimate (strategies)
    estimate_home_office_cap: Decimal = Decimal("1500")
    estimate_home_office_share: Decimal = Decimal("0.03")
    estimate_professional_cap: Decimal = Decimal("2000")
    estimate_professional_share: Decimal = Decimal("0.02")
    estimate_equipment_cap: Decimal = Decimal("3000")
    estimate_equipment_share: Decimal = Decimal("0.04")

    # Audit risk
    audit_expense_ratio: Decimal = Decimal("0.3")
    audit_expense_weight: int = 2
    audit_high_income: Decimal = Decimal("200000")
    audit_high_income_weight: int = 1
    audit_self_employed_weight: int = 1


@dataclass(frozen=True)
class TaxYearConfig:
    """Everything the engine needs for one tax year."""

    tax_year: int
    tables: tuple[BracketTable, ...]
    self_employment: SelfEmploymentRates
    thresholds: AdvisorThresholds = field(default_factory=AdvisorThresholds)
    standard_deductions: tuple[tuple[FilingStatus, Decimal], ...] = ()

    def __post_init__(self) -> None:
        statuses = [t.filing_status for t in self.tables]
        if len(set(statuses)) != len(statuses):
            raise ConfigurationError(
                f"Tax year {self.tax_year}: duplicate filing status tables"
            )
        if FilingStatus.SINGLE not in statuses:
            raise ConfigurationError(
                f"Tax year {self.tax_year}: a single-filer table is required"
            )

    @property
    def filing_statuses(self) -> list[FilingStatus]:
        return [t.filing_status for t in self.tables]

    def table_for(self, status: FilingStatus) -> Optional[BracketTable]:
        for table in self.tables:
            if table.filing_status == status:
                return table
        return None

    def resolve_table(self, status: FilingStatus) -> tuple[BracketTable, bool]:
        """
        Return (table, used_fallback).

        Statuses without a table resolve to the single table.
        """
        table = self.table_for(status)
        if table is not None:
            return table, False
        return self.table_for(FilingStatus.SINGLE), True

    def standard_deduction(self, status: FilingStatus) -> Decimal:
        for s, amount in self.standard_deductions:
            if s == status:
                return amount
        return Decimal("0")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaxYearConfig":
        """
        Build a config from plain data (built-in tables or a JSON file).

        Brackets are [lower, upper, rate] triples with upper null for the
        top bracket.
        """
        try:
            year = int(data["tax_year"])
            tables = tuple(
                BracketTable(
                    filing_status=FilingStatus(status),
                    brackets=tuple(
                        Bracket(
                            lower=_dec(lower),
                            upper=None if upper is None else _dec(upper),
                            rate=_dec(rate),
                        )
                        for lower, upper, rate in rows
                    ),
                )
                for status, rows in data["brackets"].items()
            )
            se_data = dict(data.get("self_employment", {}))
            se = SelfEmploymentRates(
                social_security_wage_base=_dec(
                    se_data.pop("social_security_wage_base")
                ),
                apply_wage_base_cap=bool(se_data.pop("apply_wage_base_cap", False)),
                **{k: _dec(v) for k, v in se_data.items()},
            )
            thresholds = _thresholds_from_dict(data.get("thresholds", {}))
            deductions = tuple(
                (FilingStatus(status), _dec(amount))
                for status, amount in data.get("standard_deductions", {}).items()
            )
        except ConfigurationError:
            raise
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise ConfigurationError(f"Malformed tax-year configuration: {e}") from e

        return cls(
            tax_year=year,
            tables=tables,
            self_employment=se,
            thresholds=thresholds,
            standard_deductions=deductions,
        )


def _dec(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    return Decimal(str(value))


def _thresholds_from_dict(data: dict[str, Any]) -> AdvisorThresholds:
    known = {f.name: f for f in fields(AdvisorThresholds)}
    unknown = set(data) - set(known)
    if unknown:
        raise ConfigurationError(
            f"Unknown threshold(s): {', '.join(sorted(unknown))}"
        )
    values: dict[str, Any] = {}
    for name, value in data.items():
        values[name] = int(value) if name.endswith("_weight") else _dec(value)
    return AdvisorThresholds(**values)


# ---------------------------------------------------------------------------
# Built-in tax years
# ---------------------------------------------------------------------------

_TAX_YEAR_DATA: dict[int, dict[str, Any]] = {
    2024: {
        "tax_year": 2024,
        "brackets": {
            "single": [
                [0, 11000, "0.10"],
                [11000, 44725, "0.12"],
                [44725, 95375, "0.22"],
                [95375, 182050, "0.24"],
                [182050, 231250, "0.32"],
                [231250, 578125, "0.35"],
                [578125, None, "0.37"],
            ],
            "marriedJoint": [
                [0, 22000, "0.10"],
                [22000, 89450, "0.12"],
                [89450, 190750, "0.22"],
                [190750, 364200, "0.24"],
                [364200, 462500, "0.32"],
                [462500, 693750, "0.35"],
                [693750, None, "0.37"],
            ],
        },
        "standard_deductions": {
            "single": 13850,
            "marriedJoint": 27700,
            "marriedSeparate": 13850,
            "headOfHousehold": 20800,
        },
        "self_employment": {"social_security_wage_base": 168600},
        "thresholds": {},
    },
    2025: {
        "tax_year": 2025,
        "brackets": {
            "single": [
                [0, 11925, "0.10"],
                [11925, 48475, "0.12"],
                [48475, 103350, "0.22"],
                [103350, 197300, "0.24"],
                [197300, 250525, "0.32"],
                [250525, 626350, "0.35"],
                [626350, None, "0.37"],
            ],
            "marriedJoint": [
                [0, 23850, "0.10"],
                [23850, 96950, "0.12"],
                [96950, 206700, "0.22"],
                [206700, 394600, "0.24"],
                [394600, 501050, "0.32"],
                [501050, 751600, "0.35"],
                [751600, None, "0.37"],
            ],
            "marriedSeparate": [
                [0, 11925, "0.10"],
                [11925, 48475, "0.12"],
                [48475, 103350, "0.22"],
                [103350, 197300, "0.24"],
                [197300, 250525, "0.32"],
                [250525, 375800, "0.35"],
                [375800, None, "0.37"],
            ],
            "headOfHousehold": [
                [0, 17000, "0.10"],
                [17000, 64850, "0.12"],
                [64850, 103350, "0.22"],
                [103350, 197300, "0.24"],
                [197300, 250500, "0.32"],
                [250500, 626350, "0.35"],
                [626350, None, "0.37"],
            ],
        },
        "standard_deductions": {
            "single": 14600,
            "marriedJoint": 29200,
            "marriedSeparate": 14600,
            "headOfHousehold": 21900,
        },
        "self_employment": {"social_security_wage_base": 176100},
        "thresholds": {"retirement_limit": 23500},
    },
}


class BracketDatabase:
    """
    Registry of tax-year configurations.

    Built-in years are loaded on construction; extra years can be
    registered from a JSON file.
    """

    def __init__(self) -> None:
        self._years: dict[int, TaxYearConfig] = {}
        self._load_years()

    def _load_years(self) -> None:
        for year, data in _TAX_YEAR_DATA.items():
            self._years[year] = TaxYearConfig.from_dict(data)

    @property
    def years(self) -> list[int]:
        return sorted(self._years)

    def register(self, config: TaxYearConfig) -> None:
        if config.tax_year in self._years:
            logger.info("Replacing tax year %d configuration", config.tax_year)
        self._years[config.tax_year] = config

    def get_config(self, tax_year: int = DEFAULT_TAX_YEAR) -> TaxYearConfig:
        config = self._years.get(tax_year)
        if config is None:
            raise ConfigurationError(
                f"Unknown tax year: {tax_year} "
                f"(available: {', '.join(str(y) for y in self.years)})"
            )
        return config

    def get_table(
        self, tax_year: int, status: FilingStatus
    ) -> tuple[BracketTable, bool]:
        return self.get_config(tax_year).resolve_table(status)


def load_tax_year_config(path: Union[str, Path]) -> TaxYearConfig:
    """
    Load a tax-year configuration file.

    .yaml and .yml files are read with PyYAML, anything else as JSON.
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e

    if config_path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be an object")
    config = TaxYearConfig.from_dict(data)
    logger.info("Loaded tax year %d from %s", config.tax_year, config_path)
    return config


@lru_cache(maxsize=None)
def default_config(tax_year: int = DEFAULT_TAX_YEAR) -> TaxYearConfig:
    """Process-wide read-only configuration for a built-in tax year."""
    return BracketDatabase().get_config(tax_year)
