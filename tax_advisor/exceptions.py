"""
Error taxonomy for the advisory engine.

Only ValidationError and ConfigurationError ever reach a caller. The
other two are non-fatal: a filing-status fallback is logged and recorded
on the computation, and a skipped rule is logged and left out of the
insight list.
"""

from __future__ import annotations

from typing import Mapping


class ValidationError(ValueError):
    """A raw scenario had missing or invalid fields."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors: dict[str, str] = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(f"Invalid tax scenario ({detail})")

    @property
    def fields(self) -> list[str]:
        return list(self.errors)


class ConfigurationError(ValueError):
    """Malformed tax-year configuration or an unknown tax year."""


class UnsupportedFilingStatusWarning(UserWarning):
    """No bracket table for the requested status; the single table was used."""


class RuleEvaluationSkipped(Exception):
    """An advisory rule could not evaluate its precondition."""

    def __init__(self, rule_id: str, reason: str) -> None:
        self.rule_id = rule_id
        self.reason = reason
        super().__init__(f"{rule_id}: {reason}")
