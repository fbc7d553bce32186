#!/usr/bin/env python3
"""
Tax Advisor - Entry Point

Federal income tax estimator and optimization advisor. Computes bracket
and self-employment tax, suggests optimizations, and scores audit risk.

Usage:
    python main.py advise --income 85000 --deductions 13850 --retirement 6000 --self-employed
    python main.py advise --file scenario.json --export-json advice.json
    python main.py --year 2025 brackets --filing-status headOfHousehold
    python main.py batch --file scenarios.csv --export-csv summary.csv
"""

from tax_advisor.cli import main

if __name__ == "__main__":
    main()
