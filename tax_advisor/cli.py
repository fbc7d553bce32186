"""
Command-line interface for the Tax Advisor.

Provides subcommands for single-scenario advice, bracket table lookup,
and batch advisory over a CSV of scenarios.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from tax_advisor.batch import load_scenarios, run_batch
from tax_advisor.brackets import (
    DEFAULT_TAX_YEAR,
    BracketDatabase,
    FilingStatus,
    TaxYearConfig,
    load_tax_year_config,
)
from tax_advisor.engine import AdvisoryResult, TaxAdvisoryEngine
from tax_advisor.exceptions import (
    ConfigurationError,
    UnsupportedFilingStatusWarning,
    ValidationError,
)
from tax_advisor.report_generator import ReportGenerator
from tax_advisor.scenario import parse_filing_status

console = Console()

_RISK_COLORS = {"low": "green", "medium": "yellow", "high": "red"}
_PRIORITY_COLORS = {"high": "red", "medium": "yellow", "low": "blue"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(args: argparse.Namespace) -> TaxYearConfig:
    if args.config:
        return load_tax_year_config(args.config)
    return BracketDatabase().get_config(args.year)


def _scenario_from_args(
    args: argparse.Namespace, config: TaxYearConfig
) -> dict[str, Any]:
    """Build a raw scenario from --file or the individual flags."""
    if args.file:
        path = Path(args.file)
        if not path.exists():
            console.print(f"[red]File not found: {args.file}[/red]")
            sys.exit(1)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON in {args.file}: {e}[/red]")
            sys.exit(1)
        # accept either a bare scenario or {"scenario": {...}}
        return data.get("scenario", data) if isinstance(data, dict) else data

    if args.income is None:
        console.print("[red]Provide --income (and --filing-status), or --file[/red]")
        sys.exit(1)

    raw: dict[str, Any] = {
        "income": args.income,
        "filingStatus": args.filing_status,
        "dependents": args.dependents,
        "selfEmployed": args.self_employed,
        "homeOffice": args.home_office,
        "businessExpenses": args.business_expenses,
        "retirementContributions": args.retirement,
    }
    if args.deductions is not None:
        raw["deductions"] = args.deductions
    elif args.standard_deduction:
        # unrecognized statuses are reported by validation
        status = parse_filing_status(args.filing_status) or FilingStatus.SINGLE
        raw["deductions"] = config.standard_deduction(status)
    return raw


def _print_result(result: AdvisoryResult) -> None:
    calc = result.calculations
    console.print(
        Panel(
            f"[bold]Tax Year:[/bold] {calc.tax_year}\n"
            f"[bold]Bracket Table:[/bold] {calc.filing_status.value}\n"
            f"[bold]Adjusted Gross Income:[/bold] ${calc.adjusted_gross_income:,.2f}\n"
            f"[bold]Taxable Income:[/bold] ${calc.taxable_income:,.2f}\n"
            f"[bold]Federal Tax:[/bold] ${calc.federal_tax:,.0f}\n"
            f"[bold]Self-Employment Tax:[/bold] ${calc.self_employment_tax:,.0f}\n"
            f"[bold]Total Tax:[/bold] ${calc.total_tax:,.0f}\n"
            f"[bold]Effective Rate:[/bold] {calc.effective_rate}%\n"
            f"[bold]Marginal Rate:[/bold] {calc.marginal_rate:.0%}",
            title="Tax Calculation",
            border_style="blue",
        )
    )

    if result.insights:
        table = Table(title="Insights", box=box.ROUNDED, show_lines=True)
        table.add_column("Priority")
        table.add_column("Insight", style="bold")
        table.add_column("Impact", justify="right")
        table.add_column("Confidence", justify="right")
        table.add_column("Action", justify="center")
        table.add_column("Details")
        for i in result.insights:
            color = _PRIORITY_COLORS[i.priority.value]
            table.add_row(
                f"[{color}]{i.priority.value.upper()}[/{color}]",
                i.title,
                f"${i.impact_amount:,.2f}",
                f"{i.confidence_percent}%",
                "Y" if i.action_required else "",
                i.description,
            )
        console.print(table)

    if result.optimizations:
        table = Table(title="Strategies", box=box.SIMPLE)
        table.add_column("Strategy", style="bold")
        table.add_column("Savings", justify="right", style="green")
        table.add_column("Difficulty")
        table.add_column("Timeline")
        for o in result.optimizations:
            table.add_row(
                o.strategy,
                f"${o.potential_savings:,.0f}",
                o.difficulty,
                o.timeline,
            )
        console.print(table)

    risk = result.risk_assessment
    color = _RISK_COLORS[risk.level.value]
    body = [f"[bold]Score:[/bold] {risk.score}"]
    body.extend(f"- {f}" for f in risk.risk_factors)
    if risk.recommendations:
        body.append("")
        body.extend(f"[bold]Action:[/bold] {r}" for r in risk.recommendations)
    console.print(
        Panel(
            "\n".join(body),
            title=f"[{color}]Audit Risk: {risk.level.value.upper()}[/{color}]",
            border_style=color,
        )
    )

    console.print(f"[bold]AI Confidence:[/bold] {result.ai_confidence}%")

    for w in calc.warnings:
        console.print(f"[yellow]Warning: {w}[/yellow]")
    for rule_id in result.skipped_rules:
        console.print(f"[yellow]Skipped rule: {rule_id}[/yellow]")


# -----------------------------------------------------------------------
# Subcommand: advise
# -----------------------------------------------------------------------


def cmd_advise(args: argparse.Namespace) -> None:
    """Compute tax and advice for a single scenario."""
    config = _load_config(args)
    engine = TaxAdvisoryEngine(config, strict_filing_status=args.strict_status)
    result = engine.advise(_scenario_from_args(args, config))
    _print_result(result)

    if args.export_json:
        rg = ReportGenerator(args.output_dir or "reports")
        rg.to_json(rg.advisory_report(result), args.export_json)
        console.print(f"[green]JSON exported to {args.export_json}[/green]")


# -----------------------------------------------------------------------
# Subcommand: brackets
# -----------------------------------------------------------------------


def cmd_brackets(args: argparse.Namespace) -> None:
    """Display the bracket table for a filing status."""
    config = _load_config(args)
    status = parse_filing_status(args.filing_status)
    if status is None:
        console.print(f"[red]Unknown filing status: {args.filing_status}[/red]")
        sys.exit(1)

    table_data, used_fallback = config.resolve_table(status)
    if used_fallback:
        console.print(
            f"[yellow]No {status.value} table for {config.tax_year}; "
            f"showing {table_data.filing_status.value}[/yellow]"
        )

    table = Table(
        title=f"{config.tax_year} Federal Brackets - {table_data.filing_status.value}",
        box=box.ROUNDED,
    )
    table.add_column("From", justify="right")
    table.add_column("To", justify="right")
    table.add_column("Rate", justify="right", style="bold")
    table.add_column("Tax at Top", justify="right")

    cumulative = Decimal("0")
    for b in table_data.brackets:
        if b.upper is not None:
            cumulative += (b.upper - b.lower) * b.rate
        table.add_row(
            f"${b.lower:,.0f}",
            f"${b.upper:,.0f}" if b.upper is not None else "-",
            f"{b.rate:.0%}",
            f"${cumulative:,.2f}" if b.upper is not None else "-",
        )
    console.print(table)
    deduction = config.standard_deduction(status)
    if deduction:
        console.print(f"[bold]Standard Deduction:[/bold] ${deduction:,.0f}")


# -----------------------------------------------------------------------
# Subcommand: batch
# -----------------------------------------------------------------------


def cmd_batch(args: argparse.Namespace) -> None:
    """Advise every scenario in a CSV file."""
    path = Path(args.file)
    if not path.exists():
        console.print(f"[red]File not found: {args.file}[/red]")
        sys.exit(1)

    config = _load_config(args)
    engine = TaxAdvisoryEngine(config, strict_filing_status=args.strict_status)
    outcome = run_batch(engine, load_scenarios(path))

    table = Table(title="Batch Advisory Results", box=box.ROUNDED)
    table.add_column("Row", style="dim")
    table.add_column("ID")
    table.add_column("Status")
    table.add_column("Income", justify="right")
    table.add_column("Total Tax", justify="right", style="bold")
    table.add_column("Eff. Rate", justify="right")
    table.add_column("Insights", justify="right")
    table.add_column("Risk", justify="center")

    for _, row in outcome.summary.iterrows():
        color = _RISK_COLORS[row["riskLevel"]]
        table.add_row(
            str(row["row"]),
            str(row["scenarioId"]),
            row["filingStatus"],
            f"${row['income']:,.0f}",
            f"${row['totalTax']:,.0f}",
            f"{row['effectiveRate']:.2f}%",
            str(row["insights"]),
            f"[{color}]{row['riskLevel']}[/{color}]",
        )
    console.print(table)

    console.print(
        Panel(
            f"[bold]Scenarios:[/bold] {outcome.scenario_count}\n"
            f"[bold]Advised:[/bold] {len(outcome.results)}\n"
            f"[bold]Rejected:[/bold] {len(outcome.errors)}\n"
            f"[bold]Total Tax:[/bold] ${outcome.summary['totalTax'].sum():,.0f}",
            title="Batch Summary",
            border_style="green",
        )
    )
    for err in outcome.errors:
        console.print(f"[yellow]{err}[/yellow]")

    if args.export_csv:
        rg = ReportGenerator(args.output_dir or "reports")
        rg.to_csv(outcome.summary, args.export_csv)
        console.print(f"[green]CSV exported to {args.export_csv}[/green]")


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tax-advisor",
        description="Federal tax estimator and optimization advisor",
    )
    parser.add_argument(
        "--year", type=int, default=DEFAULT_TAX_YEAR, help="Tax year to use"
    )
    parser.add_argument(
        "--config", help="Tax-year configuration file (.json, .yaml or .yml)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show informational logs"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    statuses = [s.value for s in FilingStatus]

    # advise
    adv_p = subparsers.add_parser("advise", help="Compute tax and advice")
    adv_p.add_argument("--file", "-f", help="JSON file with a scenario")
    adv_p.add_argument("--income", help="Gross income")
    adv_p.add_argument(
        "--filing-status", default="single", help=f"One of: {', '.join(statuses)}"
    )
    adv_p.add_argument("--deductions", help="Total deductions")
    adv_p.add_argument(
        "--standard-deduction",
        action="store_true",
        help="Use the year's standard deduction when --deductions is absent",
    )
    adv_p.add_argument("--dependents", type=int, default=0)
    adv_p.add_argument("--self-employed", action="store_true")
    adv_p.add_argument("--home-office", action="store_true")
    adv_p.add_argument("--business-expenses", default="0")
    adv_p.add_argument("--retirement", default="0", help="Retirement contributions")
    adv_p.add_argument(
        "--strict-status",
        action="store_true",
        help="Fail instead of falling back to the single table",
    )
    adv_p.add_argument("--export-json", help="Export result to JSON file")
    adv_p.add_argument("--output-dir", help="Output directory for exports")
    adv_p.set_defaults(func=cmd_advise)

    # brackets
    br_p = subparsers.add_parser("brackets", help="View a bracket table")
    br_p.add_argument(
        "--filing-status", "-s", default="single", help=f"One of: {', '.join(statuses)}"
    )
    br_p.set_defaults(func=cmd_brackets)

    # batch
    batch_p = subparsers.add_parser("batch", help="Advise a CSV of scenarios")
    batch_p.add_argument("--file", "-f", required=True, help="CSV file with scenarios")
    batch_p.add_argument("--export-csv", help="Export summary to CSV filename")
    batch_p.add_argument(
        "--strict-status",
        action="store_true",
        help="Reject rows whose filing status has no table",
    )
    batch_p.add_argument("--output-dir", help="Output directory")
    batch_p.set_defaults(func=cmd_batch)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.verbose)

    try:
        args.func(args)
    except (ValidationError, ConfigurationError, UnsupportedFilingStatusWarning) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
