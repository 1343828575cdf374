"""13th-month and final-pay arithmetic."""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Any

from payroll_ledger.calculators.types import (
    ZERO,
    FinalPayBreakdown,
    round_whole,
    to_decimal,
)
from payroll_ledger.exceptions import PayrollValidationError

MONTHS_PER_YEAR = 12
# Standard annualized hours: 52 weeks x 40 hours
ANNUAL_WORK_HOURS = Decimal("2080")
OVERTIME_PREMIUM = Decimal("1.25")


def months_worked_in_year(join_date: date | None, as_of: date) -> int:
    """Months accrued toward the 13th month in ``as_of``'s calendar year.

    Employees hired in an earlier year (or with no recorded hire date)
    accrue the full 12; a mid-year hire accrues from the join month.
    """
    if join_date is None or join_date.year < as_of.year:
        return MONTHS_PER_YEAR
    if join_date.year > as_of.year:
        return 0
    return MONTHS_PER_YEAR - (join_date.month - 1)


def thirteenth_month_payout(monthly_salary: Any, months_worked: int) -> Decimal:
    """round(monthly_salary x months_worked / 12)."""
    salary = to_decimal(monthly_salary)
    if salary < ZERO:
        raise PayrollValidationError("monthly_salary", "must be non-negative")
    return round_whole(salary * months_worked / MONTHS_PER_YEAR)


def compute_final_pay(
    monthly_salary: Any,
    resigned_at: date,
    unpaid_ot_hours: Any = 0,
    leave_days: Any = 0,
    loan_balance: Any = 0,
) -> FinalPayBreakdown:
    """Settlement for a separating employee.

    Only the partial final month is paid out: the daily rate times the
    day of the month the resignation took effect.
    """
    salary = to_decimal(monthly_salary)
    ot_hours = to_decimal(unpaid_ot_hours)
    leave = to_decimal(leave_days)
    loans = to_decimal(loan_balance)
    for name, value in (
        ("salary", salary),
        ("unpaid_ot_hours", ot_hours),
        ("leave_days", leave),
        ("loan_balance", loans),
    ):
        if value < ZERO:
            raise PayrollValidationError(name, "must be non-negative")

    days_in_month = calendar.monthrange(resigned_at.year, resigned_at.month)[1]
    daily_rate = round_whole(salary / days_in_month)
    hourly_rate = salary * MONTHS_PER_YEAR / ANNUAL_WORK_HOURS

    pro_rated_salary = round_whole(daily_rate * resigned_at.day)
    unpaid_ot = round_whole(ot_hours * hourly_rate * OVERTIME_PREMIUM)
    leave_payout = round_whole(leave * daily_rate)
    gross = pro_rated_salary + unpaid_ot + leave_payout

    return FinalPayBreakdown(
        daily_rate=daily_rate,
        hourly_rate=hourly_rate,
        pro_rated_salary=pro_rated_salary,
        unpaid_ot=unpaid_ot,
        leave_payout=leave_payout,
        gross_final_pay=gross,
        deductions=loans,
        net_final_pay=max(ZERO, gross - loans),
    )
