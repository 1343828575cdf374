"""Type definitions for statutory and special-pay calculations."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

ZERO = Decimal("0")
CENTS = Decimal("0.01")
WHOLE = Decimal("1")


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, strings, and floats to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Any, quantum: Decimal = CENTS) -> Decimal:
    """Round half up to the given quantum (cents by default)."""
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def round_whole(value: Any) -> Decimal:
    """Round half up to a whole currency unit."""
    return round_money(value, WHOLE)


@dataclass(frozen=True)
class TaxBracket:
    """Withholding bracket: flat_amount + (income - min_amount) * rate.

    ``min_amount`` is exclusive, ``max_amount`` inclusive (None = no limit).
    """

    min_amount: Decimal
    max_amount: Decimal | None
    rate: Decimal
    flat_amount: Decimal = ZERO

    def contains(self, income: Decimal) -> bool:
        if income <= self.min_amount and self.min_amount > ZERO:
            return False
        return self.max_amount is None or income <= self.max_amount


@dataclass(frozen=True)
class ContributionSchedule:
    """Employee share of a social contribution.

    Wages at or below ``floor_wage`` pay ``floor_amount``; wages at the
    ceiling pay ``ceiling_amount``. In between, the rate applies to the
    wage (or to the wage rounded to the nearest ``credit_step``).
    """

    rate: Decimal
    floor_wage: Decimal | None = None
    floor_amount: Decimal | None = None
    ceiling_wage: Decimal | None = None
    ceiling_amount: Decimal | None = None
    ceiling_inclusive: bool = True
    credit_step: Decimal | None = None
    quantum: Decimal = CENTS

    def employee_share(self, gross: Decimal) -> Decimal:
        if self.floor_wage is not None and gross <= self.floor_wage:
            return to_decimal(self.floor_amount)
        if self.ceiling_wage is not None and (
            gross >= self.ceiling_wage if self.ceiling_inclusive else gross > self.ceiling_wage
        ):
            return to_decimal(self.ceiling_amount)

        base = gross
        if self.credit_step:
            base = round_whole(gross / self.credit_step) * self.credit_step
            if self.floor_wage is not None:
                base = max(self.floor_wage, base)
            if self.ceiling_wage is not None:
                base = min(self.ceiling_wage, base)

        return round_money(base * self.rate, self.quantum)


@dataclass(frozen=True)
class PolicyVersions:
    """Rule-table version identifiers pinned into a run at lock time."""

    tax_table: str
    social_insurance: str
    health_insurance: str
    housing_fund: str
    holiday_calendar: str
    formula: str
    rule_set: str

    def to_snapshot(self, locked_by: str) -> dict[str, str]:
        return {
            "tax_table_version": self.tax_table,
            "social_insurance_version": self.social_insurance,
            "health_insurance_version": self.health_insurance,
            "housing_fund_version": self.housing_fund,
            "holiday_calendar_version": self.holiday_calendar,
            "formula_version": self.formula,
            "rule_set_version": self.rule_set,
            "locked_by": locked_by,
        }


@dataclass(frozen=True)
class StatutoryRuleSet:
    """A complete, immutable version of the statutory deduction rules."""

    versions: PolicyVersions
    social_insurance: ContributionSchedule
    health_insurance: ContributionSchedule
    housing_fund: ContributionSchedule
    withholding_brackets: tuple[TaxBracket, ...]
    withholding_quantum: Decimal = WHOLE

    @property
    def version(self) -> str:
        return self.versions.rule_set


@dataclass(frozen=True)
class DeductionBreakdown:
    """Employee-share deductions for one monthly gross figure."""

    social_insurance: Decimal
    health_insurance: Decimal
    housing_fund: Decimal
    withholding_tax: Decimal
    rule_set_version: str = field(default="", compare=False)

    @property
    def total(self) -> Decimal:
        return self.social_insurance + self.health_insurance + self.housing_fund + self.withholding_tax

    def to_dict(self) -> dict[str, Any]:
        return {
            "social_insurance": self.social_insurance,
            "health_insurance": self.health_insurance,
            "housing_fund": self.housing_fund,
            "withholding_tax": self.withholding_tax,
            "total": self.total,
            "rule_set_version": self.rule_set_version,
        }


@dataclass(frozen=True)
class FinalPayBreakdown:
    """Derived figures of a final-pay settlement."""

    daily_rate: Decimal
    hourly_rate: Decimal
    pro_rated_salary: Decimal
    unpaid_ot: Decimal
    leave_payout: Decimal
    gross_final_pay: Decimal
    deductions: Decimal
    net_final_pay: Decimal
