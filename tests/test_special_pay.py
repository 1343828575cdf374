"""Unit tests for 13th-month and final-pay arithmetic."""

from datetime import date
from decimal import Decimal

import pytest

from payroll_ledger.calculators import (
    compute_final_pay,
    months_worked_in_year,
    thirteenth_month_payout,
)
from payroll_ledger.exceptions import PayrollValidationError

AS_OF = date(2026, 12, 1)


class TestMonthsWorked:
    def test_hired_in_earlier_year_accrues_full_year(self):
        assert months_worked_in_year(date(2023, 5, 1), AS_OF) == 12

    def test_unknown_hire_date_accrues_full_year(self):
        assert months_worked_in_year(None, AS_OF) == 12

    def test_mid_year_hire_accrues_from_join_month(self):
        """A March hire has worked ten months of the year."""
        assert months_worked_in_year(date(2026, 3, 20), AS_OF) == 10
        assert months_worked_in_year(date(2026, 1, 1), AS_OF) == 12
        assert months_worked_in_year(date(2026, 12, 31), AS_OF) == 1

    def test_future_hire_accrues_nothing(self):
        assert months_worked_in_year(date(2027, 1, 4), AS_OF) == 0


class TestThirteenthMonthPayout:
    def test_full_year(self):
        assert thirteenth_month_payout(Decimal("36000"), 12) == Decimal("36000")

    def test_partial_year(self):
        assert thirteenth_month_payout(Decimal("36000"), 10) == Decimal("30000")

    def test_rounds_to_whole_units(self):
        """1000 x 1/12 = 83.33 rounds to 83."""
        assert thirteenth_month_payout(Decimal("1000"), 1) == Decimal("83")

    def test_negative_salary_rejected(self):
        with pytest.raises(PayrollValidationError):
            thirteenth_month_payout(Decimal("-1"), 12)


class TestFinalPay:
    def test_components(self):
        """Daily rate from the month length; OT at 125% of the annualized hourly rate."""
        result = compute_final_pay(
            Decimal("30000"),
            date(2026, 3, 15),
            unpaid_ot_hours=Decimal("10"),
            leave_days=Decimal("5"),
            loan_balance=Decimal("1000"),
        )

        assert result.daily_rate == Decimal("968")
        assert result.pro_rated_salary == Decimal("14520")
        assert result.unpaid_ot == Decimal("2163")
        assert result.leave_payout == Decimal("4840")
        assert result.gross_final_pay == Decimal("21523")
        assert result.deductions == Decimal("1000")
        assert result.net_final_pay == Decimal("20523")

    def test_short_month_daily_rate(self):
        result = compute_final_pay(Decimal("28000"), date(2026, 2, 28))
        assert result.daily_rate == Decimal("1000")
        assert result.pro_rated_salary == Decimal("28000")
        assert result.net_final_pay == Decimal("28000")

    def test_loans_never_drive_net_negative(self):
        result = compute_final_pay(Decimal("30000"), date(2026, 3, 1), loan_balance=Decimal("50000"))
        assert result.gross_final_pay == Decimal("968")
        assert result.net_final_pay == Decimal("0")

    @pytest.mark.parametrize("field", ["unpaid_ot_hours", "leave_days", "loan_balance"])
    def test_negative_inputs_rejected(self, field):
        with pytest.raises(PayrollValidationError):
            compute_final_pay(Decimal("30000"), date(2026, 3, 15), **{field: Decimal("-1")})
