"""Final pay on separation and 13th-month bonus generation."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import Any

from sqlalchemy import select

from payroll_ledger.calculators import (
    compute_final_pay,
    months_worked_in_year,
    thirteenth_month_payout,
    zero_deductions,
)
from payroll_ledger.calculators.types import ZERO, to_decimal
from payroll_ledger.events import FinalPayComputed, ThirteenthMonthGenerated
from payroll_ledger.exceptions import FinalPayNotFoundError, PayrollValidationError
from payroll_ledger.models import FinalPayComputation, Payslip
from payroll_ledger.services.base import LedgerService, new_id, require_text
from payroll_ledger.services.directory import EmployeeRecord
from payroll_ledger.services.payslip_service import PayslipService
from payroll_ledger.services.results import ComputationResult

logger = logging.getLogger(__name__)


class SettlementService(LedgerService):
    """Service for one-off payouts outside the regular run cycle."""

    # ===== Final pay =====

    def compute_final_pay(
        self,
        *,
        employee_id: str,
        resigned_at: date,
        monthly_salary: Any,
        unpaid_ot_hours: Any = 0,
        leave_days: Any = 0,
        loan_balance: Any = 0,
        computed_by: str | None = None,
    ) -> ComputationResult[FinalPayComputation]:
        """Compute and store an employee's settlement, at most once.

        IMPORTANT: check `is_new`. A second request for the same employee
        returns the stored record untouched, whatever inputs it carries.
        """
        employee_id = require_text("employee_id", employee_id)
        existing = self._existing_final_pay(employee_id)
        if existing is not None:
            logger.info("Final pay for %s already computed as %s", employee_id, existing.id)
            return ComputationResult(record=existing, is_new=False)

        breakdown = compute_final_pay(
            monthly_salary,
            resigned_at,
            unpaid_ot_hours=unpaid_ot_hours,
            leave_days=leave_days,
            loan_balance=loan_balance,
        )
        record = FinalPayComputation(
            id=new_id("FP"),
            employee_id=employee_id,
            resigned_at=resigned_at,
            monthly_salary=to_decimal(monthly_salary),
            unpaid_ot_hours=to_decimal(unpaid_ot_hours),
            leave_days=to_decimal(leave_days),
            daily_rate=breakdown.daily_rate,
            pro_rated_salary=breakdown.pro_rated_salary,
            unpaid_ot=breakdown.unpaid_ot,
            leave_payout=breakdown.leave_payout,
            remaining_loan_balance=breakdown.deductions,
            gross_final_pay=breakdown.gross_final_pay,
            deductions=breakdown.deductions,
            net_final_pay=breakdown.net_final_pay,
            status="computed",
            computed_by=computed_by,
        )
        self.session.add(record)
        self.session.flush()

        logger.info("Final pay %s for %s: net %s", record.id, employee_id, record.net_final_pay)
        self._record(
            FinalPayComputed(
                metadata=self._metadata(computed_by),
                computation_id=record.id,
                employee_id=employee_id,
                net_final_pay=record.net_final_pay,
            )
        )
        return ComputationResult(record=record, is_new=True)

    def _existing_final_pay(self, employee_id: str) -> FinalPayComputation | None:
        stmt = (
            select(FinalPayComputation)
            .where(FinalPayComputation.employee_id == employee_id)
            .with_for_update()
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_final_pay(self, employee_id: str) -> FinalPayComputation:
        stmt = select(FinalPayComputation).where(FinalPayComputation.employee_id == employee_id)
        record = self.session.execute(stmt).scalar_one_or_none()
        if record is None:
            raise FinalPayNotFoundError(employee_id)
        return record

    def list_final_pay(self) -> list[FinalPayComputation]:
        stmt = select(FinalPayComputation).order_by(FinalPayComputation.created_at)
        return list(self.session.scalars(stmt))

    # ===== 13th month =====

    def generate_thirteenth_month(
        self,
        employees: Iterable[EmployeeRecord],
        as_of: date | None = None,
        actor_id: str | None = None,
    ) -> list[Payslip]:
        """Issue one deduction-free payslip per employee with a non-zero payout.

        The payout accrues over the months worked in ``as_of``'s year.
        """
        as_of = as_of or date.today()
        payslips = PayslipService(self.session, events=self.events, correlation_id=self.correlation_id)
        # 13th-month pay is exempt from statutory deductions
        exempt = zero_deductions()
        exempt_deductions = {
            "social_insurance": exempt.social_insurance,
            "health_insurance": exempt.health_insurance,
            "housing_fund": exempt.housing_fund,
            "withholding_tax": exempt.withholding_tax,
        }

        issued: list[Payslip] = []
        seen: set[str] = set()
        for employee in employees:
            if employee.id in seen:
                raise PayrollValidationError("employees", f"duplicate employee '{employee.id}'")
            seen.add(employee.id)

            months = months_worked_in_year(employee.join_date, as_of)
            payout = thirteenth_month_payout(employee.monthly_salary, months)
            if payout == ZERO:
                logger.debug("Skipping 13th month for %s: nothing accrued", employee.id)
                continue

            issued.append(
                payslips.issue(
                    employee_id=employee.id,
                    period_start=date(as_of.year, 1, 1),
                    period_end=date(as_of.year, 12, 31),
                    gross_pay=payout,
                    deductions=exempt_deductions,
                    issued_at=as_of,
                    notes=(
                        f"13th month pay {as_of.year}: {employee.monthly_salary} x "
                        f"{months}/12 months worked"
                    ),
                    actor_id=actor_id,
                )
            )

        if issued:
            total = sum((p.net_pay for p in issued), ZERO)
            logger.info("Generated %d 13th-month payslips totalling %s", len(issued), total)
            self._record(
                ThirteenthMonthGenerated(
                    metadata=self._metadata(actor_id),
                    payslip_ids=tuple(p.id for p in issued),
                    total_payout=total,
                )
            )
        return issued
