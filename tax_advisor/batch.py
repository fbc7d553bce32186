"""
Batch advisory over a table of scenarios.

Rows use the wire column names (income, filingStatus, ...). Empty cells
fall back to the scenario defaults. Invalid rows are reported and left
out of the summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import pandas as pd

from tax_advisor.engine import AdvisoryResult, TaxAdvisoryEngine
from tax_advisor.exceptions import UnsupportedFilingStatusWarning, ValidationError
from tax_advisor.scenario import TaxScenario, validate_scenario

logger = logging.getLogger(__name__)

_FLAG_COLUMNS = ("selfEmployed", "homeOffice")
_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0", ""}

SUMMARY_COLUMNS = [
    "row",
    "scenarioId",
    "filingStatus",
    "income",
    "taxableIncome",
    "federalTax",
    "selfEmploymentTax",
    "totalTax",
    "effectiveRate",
    "marginalRate",
    "insights",
    "potentialSavings",
    "riskLevel",
    "aiConfidence",
]


@dataclass
class BatchOutcome:
    """Per-row results plus a summary frame and row errors."""

    results: list[tuple[int, AdvisoryResult]]
    summary: pd.DataFrame
    errors: list[str] = field(default_factory=list)

    @property
    def scenario_count(self) -> int:
        return len(self.results) + len(self.errors)


def _native(value: Any) -> Any:
    """Unwrap numpy scalars so validation sees plain Python values."""
    if hasattr(value, "item"):
        return value.item()
    return value


def _coerce_flag(value: Any) -> Any:
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _TRUE:
            return True
        if key in _FALSE:
            return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value in (0, 1):
            return bool(value)
    return value


def row_to_scenario(row: dict[str, Any]) -> dict[str, Any]:
    """Drop empty cells and normalize flag columns of a CSV row."""
    raw: dict[str, Any] = {}
    for key, value in row.items():
        if pd.isna(value):
            continue
        value = _native(value)
        if key in _FLAG_COLUMNS:
            value = _coerce_flag(value)
        raw[key] = value
    return raw


def _summary_row(
    index: int, scenario_id: Any, scenario: TaxScenario, result: AdvisoryResult
) -> dict[str, Any]:
    calc = result.calculations
    return {
        "row": index,
        "scenarioId": scenario_id,
        "filingStatus": scenario.filing_status.value,
        "income": float(scenario.income),
        "taxableIncome": float(calc.taxable_income),
        "federalTax": float(calc.federal_tax),
        "selfEmploymentTax": float(calc.self_employment_tax),
        "totalTax": float(calc.total_tax),
        "effectiveRate": float(calc.effective_rate),
        "marginalRate": float(calc.marginal_rate),
        "insights": len(result.insights),
        "potentialSavings": float(result.total_impact),
        "riskLevel": result.risk_assessment.level.value,
        "aiConfidence": result.ai_confidence,
    }


def run_batch(engine: TaxAdvisoryEngine, frame: pd.DataFrame) -> BatchOutcome:
    """
    Advise every row of a scenario frame.

    Row numbers are 1-based to match what a user sees in a spreadsheet.
    """
    results: list[tuple[int, AdvisoryResult]] = []
    rows: list[dict[str, Any]] = []
    errors: list[str] = []

    for i, record in enumerate(frame.to_dict(orient="records"), start=1):
        raw = row_to_scenario(record)
        scenario_id = raw.pop("scenarioId", str(i))
        try:
            scenario = validate_scenario(raw)
        except ValidationError as e:
            errors.append(f"Row {i}: {e}")
            logger.warning("Skipping row %d: %s", i, e)
            continue
        try:
            result = engine.advise(scenario)
        except UnsupportedFilingStatusWarning as e:
            errors.append(f"Row {i}: {e}")
            logger.warning("Skipping row %d: %s", i, e)
            continue
        results.append((i, result))
        rows.append(_summary_row(i, scenario_id, scenario, result))

    summary_frame = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    return BatchOutcome(results=results, summary=summary_frame, errors=errors)


def load_scenarios(path: Union[str, Path]) -> pd.DataFrame:
    """Read a scenario CSV, keeping filing status and ids as text."""
    return pd.read_csv(path, dtype={"filingStatus": str, "scenarioId": str})
