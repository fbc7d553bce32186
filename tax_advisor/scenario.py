"""
Taxpayer scenario model and input validation.

Raw scenarios arrive as mappings with the wire (camelCase) keys. They are
checked field by field, all problems are collected, and a fully-typed
TaxScenario is returned or a ValidationError naming every bad field is
raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from tax_advisor.brackets import FilingStatus
from tax_advisor.exceptions import ValidationError


@dataclass(frozen=True)
class TaxScenario:
    """A single taxpayer's situation for one tax year."""

    income: Decimal
    filing_status: FilingStatus
    deductions: Decimal = Decimal("0")
    dependents: int = 0
    self_employed: bool = False
    home_office: bool = False
    business_expenses: Decimal = Decimal("0")
    retirement_contributions: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaxScenario":
        return validate_scenario(data)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation, the inverse of from_dict."""
        return {
            "income": self.income,
            "filingStatus": self.filing_status.value,
            "deductions": self.deductions,
            "dependents": self.dependents,
            "selfEmployed": self.self_employed,
            "homeOffice": self.home_office,
            "businessExpenses": self.business_expenses,
            "retirementContributions": self.retirement_contributions,
        }


# wire key -> attribute name
_FIELD_NAMES: dict[str, str] = {
    "income": "income",
    "filingStatus": "filing_status",
    "deductions": "deductions",
    "dependents": "dependents",
    "selfEmployed": "self_employed",
    "homeOffice": "home_office",
    "businessExpenses": "business_expenses",
    "retirementContributions": "retirement_contributions",
}

_REQUIRED = ("income", "filingStatus")
_AMOUNT_FIELDS = ("income", "deductions", "businessExpenses", "retirementContributions")
_FLAG_FIELDS = ("selfEmployed", "homeOffice")

# upper bound on any amount; larger values overflow currency rounding
MAX_AMOUNT = Decimal("1e15")

_STATUS_ALIASES: dict[str, FilingStatus] = {
    "marriedFilingJointly": FilingStatus.MARRIED_JOINT,
    "marriedFilingSeparately": FilingStatus.MARRIED_SEPARATE,
}


def _lookup(raw: Mapping[str, Any], key: str) -> tuple[bool, Any]:
    """Find a field by wire key, then by attribute name."""
    if key in raw:
        return True, raw[key]
    attr = _FIELD_NAMES[key]
    if attr in raw:
        return True, raw[attr]
    return False, None


def _parse_amount(value: Any) -> tuple[Optional[Decimal], str]:
    if isinstance(value, bool) or value is None:
        return None, "must be a number"
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None, "must be a number"
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None, "must be a number"
    if not amount.is_finite():
        return None, "must be a finite number"
    if amount < 0:
        return None, "must not be negative"
    if amount > MAX_AMOUNT:
        return None, f"must not exceed {MAX_AMOUNT:,.0f}"
    return amount, ""


def parse_filing_status(value: Any) -> Optional[FilingStatus]:
    """Resolve a filing status value or alias, None when unrecognized."""
    if isinstance(value, FilingStatus):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip()
    if key in _STATUS_ALIASES:
        return _STATUS_ALIASES[key]
    try:
        return FilingStatus(key)
    except ValueError:
        return None


def validate_scenario(
    raw: Union[TaxScenario, Mapping[str, Any]],
) -> TaxScenario:
    """
    Normalize and validate a raw scenario.

    Accepts camelCase wire keys or snake_case attribute names. income and
    filingStatus are required; other amounts default to 0 and flags to
    False.
    """
    if isinstance(raw, TaxScenario):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError({"scenario": "must be a mapping of fields"})

    errors: dict[str, str] = {}
    values: dict[str, Any] = {}

    for key in _REQUIRED:
        found, _ = _lookup(raw, key)
        if not found:
            errors[key] = "is required"

    for key in _AMOUNT_FIELDS:
        found, value = _lookup(raw, key)
        if not found:
            continue
        amount, problem = _parse_amount(value)
        if amount is None:
            errors[key] = problem
        else:
            values[_FIELD_NAMES[key]] = amount

    found, value = _lookup(raw, "dependents")
    if found:
        count, problem = _parse_amount(value)
        if count is None:
            errors["dependents"] = problem
        elif count != count.to_integral_value():
            errors["dependents"] = "must be a whole number"
        else:
            values["dependents"] = int(count)

    found, value = _lookup(raw, "filingStatus")
    if found:
        status = parse_filing_status(value)
        if status is None:
            allowed = ", ".join(s.value for s in FilingStatus)
            errors["filingStatus"] = f"must be one of: {allowed}"
        else:
            values["filing_status"] = status

    for key in _FLAG_FIELDS:
        found, value = _lookup(raw, key)
        if not found:
            continue
        if isinstance(value, bool):
            values[_FIELD_NAMES[key]] = value
        else:
            errors[key] = "must be true or false"

    if errors:
        raise ValidationError(errors)

    return TaxScenario(**values)
