"""Adjustment approval pipeline and append-only correction payslips."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import select

from payroll_ledger.calculators.types import ZERO
from payroll_ledger.events import AdjustmentApplied, AdjustmentApproved, AdjustmentRejected
from payroll_ledger.exceptions import (
    AdjustmentNotFoundError,
    PayrollValidationError,
    PayslipNotFoundError,
)
from payroll_ledger.models import CorrectionPayslip, PayrollAdjustment, Payslip, utcnow
from payroll_ledger.services.base import LedgerService, new_id, require_text
from payroll_ledger.services.payslip_service import PayslipService, parse_amount
from payroll_ledger.services.results import TransitionResult
from payroll_ledger.services.state_machine import (
    AdjustmentStateMachine,
    AdjustmentStatus,
    PayslipStatus,
)

logger = logging.getLogger(__name__)

ADJUSTMENT_TYPES = ("earnings", "deduction", "statutory_correction")


def correction_amounts(adjustment_type: str, amount: Any) -> dict[str, Any]:
    """Monetary fields of the correction payslip for one adjustment.

    net_pay always equals the signed amount, so the payslip net pay
    identity holds for the correction as for any other payslip.
    """
    fields: dict[str, Any] = {
        "gross_pay": ZERO,
        "allowances": ZERO,
        "social_insurance": ZERO,
        "health_insurance": ZERO,
        "housing_fund": ZERO,
        "withholding_tax": ZERO,
        "other_deductions": ZERO,
        "loan_deduction": ZERO,
        "net_pay": amount,
    }
    if adjustment_type == "earnings":
        fields["gross_pay"] = amount
    elif adjustment_type == "deduction":
        fields["other_deductions"] = abs(amount)
    else:
        fields["social_insurance"] = abs(amount)
    return fields


class AdjustmentService(LedgerService):
    """Service for post-issuance corrections.

    An applied adjustment never edits the payslip it references. It mints
    a CorrectionPayslip pointing back at the adjustment.
    """

    def create(
        self,
        *,
        payroll_run_id: str,
        employee_id: str,
        adjustment_type: str,
        reference_payslip_id: str,
        amount: Any,
        reason: str,
        created_by: str,
    ) -> PayrollAdjustment:
        """Record a pending adjustment after sign and reason checks."""
        if adjustment_type not in ADJUSTMENT_TYPES:
            raise PayrollValidationError("adjustment_type", f"must be one of {list(ADJUSTMENT_TYPES)}")

        value = parse_amount("amount", amount)
        if value == ZERO:
            raise PayrollValidationError("amount", "must not be zero")
        if adjustment_type == "earnings" and value < ZERO:
            raise PayrollValidationError("amount", "earnings adjustments must be positive")
        if adjustment_type != "earnings" and value > ZERO:
            raise PayrollValidationError("amount", f"{adjustment_type} adjustments must be negative")

        adjustment = PayrollAdjustment(
            id=new_id("ADJ"),
            payroll_run_id=require_text("payroll_run_id", payroll_run_id),
            employee_id=require_text("employee_id", employee_id),
            adjustment_type=adjustment_type,
            reference_payslip_id=require_text("reference_payslip_id", reference_payslip_id),
            amount=value,
            reason=require_text("reason", reason),
            created_by=require_text("created_by", created_by),
            status=AdjustmentStatus.PENDING.value,
        )
        self.session.add(adjustment)
        self.session.flush()
        logger.info(
            "Adjustment %s created for %s (%s %s)",
            adjustment.id,
            adjustment.employee_id,
            adjustment_type,
            value,
        )
        return adjustment

    def approve(self, adjustment_id: str, approver_id: str) -> TransitionResult:
        """pending → approved."""
        approver_id = require_text("approver_id", approver_id)
        adjustment = self._get_for_update(adjustment_id)
        result = self._advance(adjustment, AdjustmentStatus.APPROVED)
        if result.applied:
            adjustment.approved_by = approver_id
            adjustment.approved_at = utcnow()
            self._record(
                AdjustmentApproved(
                    metadata=self._metadata(approver_id),
                    adjustment_id=adjustment.id,
                    employee_id=adjustment.employee_id,
                    approved_by=approver_id,
                )
            )
        return result

    def reject(self, adjustment_id: str, approver_id: str) -> TransitionResult:
        """pending → rejected (terminal)."""
        approver_id = require_text("approver_id", approver_id)
        adjustment = self._get_for_update(adjustment_id)
        result = self._advance(adjustment, AdjustmentStatus.REJECTED)
        if result.applied:
            adjustment.rejected_by = approver_id
            adjustment.rejected_at = utcnow()
            self._record(
                AdjustmentRejected(
                    metadata=self._metadata(approver_id),
                    adjustment_id=adjustment.id,
                    employee_id=adjustment.employee_id,
                    rejected_by=approver_id,
                )
            )
        return result

    def apply(
        self,
        adjustment_id: str,
        target_run_id: str,
        applied_on: date | None = None,
        actor_id: str | None = None,
    ) -> TransitionResult:
        """approved → applied, minting the correction payslip.

        The payslip and the status change are written in the caller's
        transaction, so neither exists without the other.
        """
        target_run_id = require_text("target_run_id", target_run_id)
        adjustment = self._get_for_update(adjustment_id)
        if not AdjustmentStateMachine.can_transition(adjustment.status, AdjustmentStatus.APPLIED):
            return self._refuse(
                adjustment,
                f"cannot move from '{adjustment.status}' to '{AdjustmentStatus.APPLIED.value}'",
            )

        original = self.session.get(Payslip, adjustment.reference_payslip_id)
        if original is None:
            raise PayslipNotFoundError(adjustment.reference_payslip_id)
        if original.employee_id != adjustment.employee_id:
            raise PayrollValidationError(
                "reference_payslip_id",
                f"payslip {original.id} belongs to {original.employee_id}, not {adjustment.employee_id}",
            )

        correction = CorrectionPayslip(
            id=new_id("PS-ADJ"),
            employee_id=adjustment.employee_id,
            period_start=original.period_start,
            period_end=original.period_end,
            issued_at=applied_on or date.today(),
            status=PayslipStatus.ISSUED.value,
            notes=f"Correction for {original.id}: {adjustment.reason}",
            adjustment_reference=adjustment.id,
            **correction_amounts(adjustment.adjustment_type, adjustment.amount),
        )
        PayslipService(self.session, events=self.events, correlation_id=self.correlation_id).record_issued(
            correction, actor_id
        )

        result = self._advance(adjustment, AdjustmentStatus.APPLIED)
        adjustment.applied_run_id = target_run_id
        adjustment.applied_at = utcnow()
        adjustment.correction_payslip_id = correction.id
        self._record(
            AdjustmentApplied(
                metadata=self._metadata(actor_id),
                adjustment_id=adjustment.id,
                employee_id=adjustment.employee_id,
                correction_payslip_id=correction.id,
                applied_run_id=target_run_id,
            )
        )
        return result

    def _advance(self, adjustment: PayrollAdjustment, to_status: AdjustmentStatus) -> TransitionResult:
        previous = adjustment.status
        if not AdjustmentStateMachine.can_transition(previous, to_status):
            return self._refuse(adjustment, f"cannot move from '{previous}' to '{to_status.value}'")
        adjustment.status = to_status.value
        logger.info("Adjustment %s: %s -> %s", adjustment.id, previous, to_status.value)
        return TransitionResult.ok(adjustment.id, previous, to_status.value)

    def _refuse(self, adjustment: PayrollAdjustment, reason: str) -> TransitionResult:
        logger.debug("Adjustment %s transition refused: %s", adjustment.id, reason)
        return TransitionResult.refused(adjustment.id, adjustment.status, reason)

    def _get_for_update(self, adjustment_id: str) -> PayrollAdjustment:
        adjustment = self._lock(PayrollAdjustment, adjustment_id)
        if adjustment is None:
            raise AdjustmentNotFoundError(adjustment_id)
        return adjustment

    def get(self, adjustment_id: str) -> PayrollAdjustment:
        adjustment = self.session.get(PayrollAdjustment, adjustment_id)
        if adjustment is None:
            raise AdjustmentNotFoundError(adjustment_id)
        return adjustment

    def list_adjustments(self, status: str | None = None) -> list[PayrollAdjustment]:
        stmt = select(PayrollAdjustment).order_by(PayrollAdjustment.created_at, PayrollAdjustment.id)
        if status is not None:
            try:
                status = AdjustmentStatus(status).value
            except ValueError:
                raise PayrollValidationError("status", f"unknown adjustment status '{status}'") from None
            stmt = stmt.where(PayrollAdjustment.status == status)
        return list(self.session.scalars(stmt))
