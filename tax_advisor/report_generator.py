"""
Advisory report generator.

Produces:
- The wire (camelCase JSON) form of an AdvisoryResult
- Console-friendly text summaries
- JSON and CSV export
"""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from tax_advisor.advisor import Insight, OptimizationStrategy
from tax_advisor.engine import AdvisoryResult

logger = logging.getLogger(__name__)


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and date objects."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, date):
            return o.isoformat()
        return super().default(o)


def _decimal_to_float(obj: Any) -> Any:
    """Recursively convert Decimal values to float for serialization."""
    if isinstance(obj, dict):
        return {k: _decimal_to_float(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_decimal_to_float(i) for i in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    return obj


def insight_dict(insight: Insight) -> dict[str, Any]:
    return {
        "id": insight.id,
        "type": insight.type.value,
        "title": insight.title,
        "description": insight.description,
        "impact": insight.impact_amount,
        "confidence": insight.confidence_percent,
        "actionRequired": insight.action_required,
        "priority": insight.priority.value,
        "category": insight.category,
    }


def strategy_dict(strategy: OptimizationStrategy) -> dict[str, Any]:
    return {
        "strategy": strategy.strategy,
        "potentialSavings": strategy.potential_savings,
        "description": strategy.description,
        "difficulty": strategy.difficulty,
        "timeline": strategy.timeline,
    }


class ReportGenerator:
    """
    Formats advisory results and exports them.

    Reports are plain dicts that can be rendered to text or written to
    JSON; batch summaries are DataFrames written to CSV.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("reports")

    def _path(self, filename: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir / filename

    # ------------------------------------------------------------------
    # Advisory result
    # ------------------------------------------------------------------

    def advisory_report(self, result: AdvisoryResult) -> dict[str, Any]:
        """Wire form of an advisory result."""
        calc = result.calculations
        risk = result.risk_assessment
        return {
            "calculations": {
                "adjustedGrossIncome": calc.adjusted_gross_income,
                "taxableIncome": calc.taxable_income,
                "federalTax": calc.federal_tax,
                "selfEmploymentTax": calc.self_employment_tax,
                "totalTax": calc.total_tax,
                "effectiveRate": calc.effective_rate,
                "marginalRate": calc.marginal_rate,
            },
            "insights": [insight_dict(i) for i in result.insights],
            "optimizations": [strategy_dict(o) for o in result.optimizations],
            "riskAssessment": {
                "score": risk.score,
                "level": risk.level.value,
                "factors": list(risk.risk_factors),
                "recommendations": list(risk.recommendations),
            },
            "aiConfidence": result.ai_confidence,
            "taxYear": calc.tax_year,
            "warnings": list(calc.warnings),
            "skippedRules": list(result.skipped_rules),
        }

    # ------------------------------------------------------------------
    # Export methods
    # ------------------------------------------------------------------

    def to_json(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
    ) -> str:
        """Export a report to JSON. Returns the JSON string."""
        serializable = _decimal_to_float(report)
        json_str = json.dumps(serializable, indent=2, cls=_DecimalEncoder)

        if filename:
            path = self._path(filename)
            path.write_text(json_str, encoding="utf-8")
            logger.info("Wrote JSON report to %s", path)

        return json_str

    def to_csv(
        self,
        frame: pd.DataFrame,
        filename: Optional[str] = None,
    ) -> str:
        """Export a summary frame to CSV. Returns the CSV string."""
        csv_str = frame.to_csv(index=False)

        if filename:
            path = self._path(filename)
            path.write_text(csv_str, encoding="utf-8")
            logger.info("Wrote CSV summary to %s", path)

        return csv_str

    # ------------------------------------------------------------------
    # Console-formatted text output
    # ------------------------------------------------------------------

    def format_text(self, report: dict[str, Any]) -> str:
        """Format an advisory report as human-readable text."""
        lines: list[str] = []
        lines.append(f"{'=' * 60}")
        lines.append("  Tax Advisory Report")
        if report.get("taxYear"):
            lines.append(f"  Tax Year: {report['taxYear']}")
        lines.append(f"{'=' * 60}")
        lines.append("")

        calc = report.get("calculations", {})
        if calc:
            lines.append("CALCULATIONS")
            lines.append("-" * 40)
            for key, value in calc.items():
                label = "".join(
                    " " + c if c.isupper() else c for c in key
                ).title()
                if key == "effectiveRate":
                    lines.append(f"  {label}: {float(value):.2f}%")
                elif key == "marginalRate":
                    lines.append(f"  {label}: {float(value):.0%}")
                else:
                    lines.append(f"  {label}: ${float(value):,.2f}")
            lines.append("")

        insights = report.get("insights", [])
        if insights:
            lines.append("INSIGHTS")
            lines.append("-" * 40)
            for i in insights:
                lines.append(
                    f"  [{i['priority'].upper()}] {i['title']} "
                    f"(${float(i['impact']):,.2f}, {i['confidence']}%)"
                )
                lines.append(f"          {i['description']}")
            lines.append("")

        optimizations = report.get("optimizations", [])
        if optimizations:
            lines.append("STRATEGIES")
            lines.append("-" * 40)
            for o in optimizations:
                lines.append(
                    f"  {o['strategy']}: ${float(o['potentialSavings']):,.0f} "
                    f"| {o['difficulty']} | {o['timeline']}"
                )
            lines.append("")

        risk = report.get("riskAssessment", {})
        if risk:
            lines.append("AUDIT RISK")
            lines.append("-" * 40)
            lines.append(f"  Level: {risk['level'].upper()} (score {risk['score']})")
            for factor in risk.get("factors", []):
                lines.append(f"  - {factor}")
            for rec in risk.get("recommendations", []):
                lines.append(f"  * {rec}")
            lines.append("")

        lines.append(f"AI Confidence: {report.get('aiConfidence', 0)}%")

        warnings = report.get("warnings", [])
        if warnings:
            lines.append("")
            lines.append("WARNINGS")
            lines.append("-" * 40)
            for w in warnings:
                lines.append(f"  * {w}")

        return "\n".join(lines)
