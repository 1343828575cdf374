"""Statutory deduction calculator.

All functions take a MONTHLY gross figure and return the EMPLOYEE share.
They are pure: the rule set is passed in (or resolved from the default
registry), never read from mutable state, so a run locked under one
rule-set version recomputes identically after the tables change.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from payroll_ledger.calculators.rule_sets import default_registry
from payroll_ledger.calculators.types import (
    ZERO,
    DeductionBreakdown,
    StatutoryRuleSet,
    round_money,
    to_decimal,
)
from payroll_ledger.exceptions import PayrollValidationError


def _gross(monthly_gross: Any) -> Decimal:
    gross = to_decimal(monthly_gross)
    if gross < ZERO:
        raise PayrollValidationError("monthly_gross", "must be non-negative")
    return gross


def _rules(rule_set: StatutoryRuleSet | None) -> StatutoryRuleSet:
    if rule_set is not None:
        return rule_set
    return default_registry().current()


def compute_social_insurance(monthly_gross: Any, rule_set: StatutoryRuleSet | None = None) -> Decimal:
    """Pension/social-insurance employee share."""
    return _rules(rule_set).social_insurance.employee_share(_gross(monthly_gross))


def compute_health_insurance(monthly_gross: Any, rule_set: StatutoryRuleSet | None = None) -> Decimal:
    """Health-insurance employee share."""
    return _rules(rule_set).health_insurance.employee_share(_gross(monthly_gross))


def compute_housing_fund(monthly_gross: Any, rule_set: StatutoryRuleSet | None = None) -> Decimal:
    """Housing-fund employee share."""
    return _rules(rule_set).housing_fund.employee_share(_gross(monthly_gross))


def compute_withholding_tax(taxable_income: Any, rule_set: StatutoryRuleSet | None = None) -> Decimal:
    """Withholding tax on monthly taxable income (gross less contributions)."""
    rules = _rules(rule_set)
    income = max(ZERO, to_decimal(taxable_income))

    for bracket in sorted(rules.withholding_brackets, key=lambda b: b.min_amount):
        if bracket.contains(income):
            excess = max(ZERO, income - bracket.min_amount)
            return bracket.flat_amount + round_money(excess * bracket.rate, rules.withholding_quantum)

    return ZERO


def compute_deductions(monthly_gross: Any, rule_set: StatutoryRuleSet | None = None) -> DeductionBreakdown:
    """Full employee-share breakdown for one monthly gross figure."""
    rules = _rules(rule_set)
    gross = _gross(monthly_gross)

    social = rules.social_insurance.employee_share(gross)
    health = rules.health_insurance.employee_share(gross)
    housing = rules.housing_fund.employee_share(gross)
    taxable = max(ZERO, gross - social - health - housing)

    return DeductionBreakdown(
        social_insurance=social,
        health_insurance=health,
        housing_fund=housing,
        withholding_tax=compute_withholding_tax(taxable, rules),
        rule_set_version=rules.version,
    )


def zero_deductions(rule_set: StatutoryRuleSet | None = None) -> DeductionBreakdown:
    """Breakdown used for exempt payouts (13th-month, final pay)."""
    return DeductionBreakdown(
        social_insurance=ZERO,
        health_insurance=ZERO,
        housing_fund=ZERO,
        withholding_tax=ZERO,
        rule_set_version=_rules(rule_set).version,
    )
