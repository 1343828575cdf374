"""Statutory deduction and special-pay calculators."""

from payroll_ledger.calculators.rule_sets import (
    DEFAULT_RULE_SET_VERSION,
    RuleSetRegistry,
    default_registry,
)
from payroll_ledger.calculators.special_pay import (
    compute_final_pay,
    months_worked_in_year,
    thirteenth_month_payout,
)
from payroll_ledger.calculators.statutory import (
    compute_deductions,
    compute_health_insurance,
    compute_housing_fund,
    compute_social_insurance,
    compute_withholding_tax,
    zero_deductions,
)
from payroll_ledger.calculators.types import (
    DeductionBreakdown,
    FinalPayBreakdown,
    PolicyVersions,
    StatutoryRuleSet,
)

__all__ = [
    "DEFAULT_RULE_SET_VERSION",
    "RuleSetRegistry",
    "default_registry",
    "compute_deductions",
    "compute_social_insurance",
    "compute_health_insurance",
    "compute_housing_fund",
    "compute_withholding_tax",
    "zero_deductions",
    "compute_final_pay",
    "months_worked_in_year",
    "thirteenth_month_payout",
    "DeductionBreakdown",
    "FinalPayBreakdown",
    "PolicyVersions",
    "StatutoryRuleSet",
]
