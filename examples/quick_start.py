#!/usr/bin/env python3
"""
Quick Start Example
===================

Runs the advisory engine on a self-employed single filer and prints the
tax calculation, the ranked insights, and the audit risk.

Usage:
    python examples/quick_start.py
"""

from tax_advisor.engine import compute_tax_advice


def main() -> None:
    # Self-employed single filer, no home office claimed yet
    result = compute_tax_advice(
        {
            "income": 85000,
            "filingStatus": "single",
            "deductions": 13850,
            "dependents": 0,
            "selfEmployed": True,
            "homeOffice": False,
            "businessExpenses": 15000,
            "retirementContributions": 6000,
        }
    )

    calc = result.calculations
    print(f"Adjusted Gross:  ${calc.adjusted_gross_income:,.2f}")
    print(f"Taxable Income:  ${calc.taxable_income:,.2f}")
    print(f"Federal Tax:     ${calc.federal_tax:,.0f}")
    print(f"SE Tax:          ${calc.self_employment_tax:,.0f}")
    print(f"Total Tax:       ${calc.total_tax:,.0f}")
    print(f"Effective Rate:  {calc.effective_rate}%")
    print(f"Marginal Rate:   {calc.marginal_rate:.0%}")

    print("\n--- Insights ---")
    for insight in result.insights:
        print(
            f"[{insight.priority.value}] {insight.title}: "
            f"${insight.impact_amount:,.2f} ({insight.confidence_percent}%)"
        )

    risk = result.risk_assessment
    print(f"\nAudit risk:      {risk.level.value} (score {risk.score})")
    for rec in risk.recommendations:
        print(f"  - {rec}")

    print(f"\nAI confidence:   {result.ai_confidence}%")


if __name__ == "__main__":
    main()
