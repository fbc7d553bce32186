"""
Tax Advisor
===========

A federal income tax estimator and optimization advisor. Computes
bracket tax, self-employment tax and effective/marginal rates for a
taxpayer scenario, then produces ranked optimization insights and an
audit risk assessment.

Modules:
    brackets        - Versioned bracket tables and tax-year configuration
    scenario        - Taxpayer scenario model and input validation
    calculator      - Federal and self-employment tax calculation
    advisor         - Rule-based optimization insights and strategies
    audit_risk      - Audit risk scoring
    engine          - End-to-end advisory pipeline
    report_generator - JSON, CSV and text reporting
    batch           - Batch advisory over a CSV of scenarios
    cli             - Command-line interface
"""

__version__ = "1.0.0"

from tax_advisor.brackets import BracketDatabase, FilingStatus, TaxYearConfig
from tax_advisor.scenario import TaxScenario, validate_scenario
from tax_advisor.calculator import TaxCalculator
from tax_advisor.advisor import OptimizationAdvisor
from tax_advisor.audit_risk import AuditRiskScorer
from tax_advisor.engine import AdvisoryResult, TaxAdvisoryEngine, compute_tax_advice
from tax_advisor.exceptions import (
    ConfigurationError,
    RuleEvaluationSkipped,
    UnsupportedFilingStatusWarning,
    ValidationError,
)

__all__ = [
    "BracketDatabase",
    "FilingStatus",
    "TaxYearConfig",
    "TaxScenario",
    "validate_scenario",
    "TaxCalculator",
    "OptimizationAdvisor",
    "AuditRiskScorer",
    "AdvisoryResult",
    "TaxAdvisoryEngine",
    "compute_tax_advice",
    "ConfigurationError",
    "RuleEvaluationSkipped",
    "UnsupportedFilingStatusWarning",
    "ValidationError",
]
