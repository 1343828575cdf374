"""Payslip issuance and lifecycle transitions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select

from payroll_ledger.calculators import compute_deductions
from payroll_ledger.calculators.types import ZERO, StatutoryRuleSet, round_money
from payroll_ledger.events import (
    PayslipAcknowledged,
    PayslipConfirmed,
    PayslipIssued,
    PayslipPaid,
    PayslipPublished,
    PayslipSigned,
)
from payroll_ledger.exceptions import (
    NetPayMismatchError,
    PayrollValidationError,
    PayslipNotFoundError,
)
from payroll_ledger.models import DEDUCTION_FIELDS, Payslip, utcnow
from payroll_ledger.services.base import LedgerService, new_id, require_text
from payroll_ledger.services.results import TransitionResult
from payroll_ledger.services.state_machine import PayslipStateMachine, PayslipStatus

logger = logging.getLogger(__name__)


def derive_net_pay(gross_pay: Decimal, allowances: Decimal, deductions: Mapping[str, Decimal]) -> Decimal:
    """gross + allowances - sum(deductions), to the cent."""
    return round_money(gross_pay + allowances - sum(deductions.values(), ZERO))


def parse_amount(field: str, value: Any) -> Decimal:
    """Coerce to a cent-rounded Decimal or raise PayrollValidationError."""
    try:
        amount = round_money(value)
    except ArithmeticError:
        raise PayrollValidationError(field, f"not a valid amount: {value!r}") from None
    if not amount.is_finite():
        raise PayrollValidationError(field, "must be a finite amount")
    return amount


def _non_negative(field: str, value: Any) -> Decimal:
    amount = parse_amount(field, value)
    if amount < ZERO:
        raise PayrollValidationError(field, "must be non-negative")
    return amount


class PayslipService(LedgerService):
    """Service for issuing payslips and moving them through their lifecycle.

    Transitions never raise on a guard violation. They return a
    TransitionResult with applied=False and leave the row untouched.
    """

    # ===== Issuance =====

    def issue(
        self,
        *,
        employee_id: str,
        period_start: date,
        period_end: date,
        gross_pay: Any,
        allowances: Any = 0,
        deductions: Mapping[str, Any] | None = None,
        issued_at: date | None = None,
        net_pay: Any = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Payslip:
        """Create a payslip in ``issued`` status.

        Args:
            employee_id: Employee the statement belongs to
            period_start: First day of the pay period
            period_end: Last day of the pay period
            gross_pay: Non-negative gross for the period
            allowances: Non-negative allowances
            deductions: Mapping of deduction field name to non-negative amount;
                missing fields default to zero
            issued_at: Issuance date (defaults to today)
            net_pay: Optional caller figure; must match the derived net pay
            notes: Optional free text
            actor_id: Caller identity for audit

        Returns:
            The new Payslip (flushed, not yet committed)
        """
        fields = self._validated_fields(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            gross_pay=gross_pay,
            allowances=allowances,
            deductions=deductions,
            net_pay=net_pay,
        )
        payslip = Payslip(
            id=new_id("PS"),
            issued_at=issued_at or date.today(),
            status=PayslipStatus.ISSUED.value,
            notes=notes,
            **fields,
        )
        return self.record_issued(payslip, actor_id)

    def issue_computed(
        self,
        *,
        employee_id: str,
        period_start: date,
        period_end: date,
        gross_pay: Any,
        rule_set: StatutoryRuleSet,
        allowances: Any = 0,
        other_deductions: Any = 0,
        loan_deduction: Any = 0,
        issued_at: date | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Payslip:
        """Issue a payslip whose statutory deductions come from ``rule_set``."""
        breakdown = compute_deductions(gross_pay, rule_set)
        return self.issue(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            gross_pay=gross_pay,
            allowances=allowances,
            deductions={
                "social_insurance": breakdown.social_insurance,
                "health_insurance": breakdown.health_insurance,
                "housing_fund": breakdown.housing_fund,
                "withholding_tax": breakdown.withholding_tax,
                "other_deductions": other_deductions,
                "loan_deduction": loan_deduction,
            },
            issued_at=issued_at,
            notes=notes,
            actor_id=actor_id,
        )

    def _validated_fields(
        self,
        *,
        employee_id: str,
        period_start: date,
        period_end: date,
        gross_pay: Any,
        allowances: Any,
        deductions: Mapping[str, Any] | None,
        net_pay: Any,
    ) -> dict[str, Any]:
        employee_id = require_text("employee_id", employee_id)
        if period_end < period_start:
            raise PayrollValidationError("period_end", "must not precede period_start")

        gross = _non_negative("gross_pay", gross_pay)
        allow = _non_negative("allowances", allowances)

        supplied = dict(deductions or {})
        unknown = sorted(set(supplied) - set(DEDUCTION_FIELDS))
        if unknown:
            raise PayrollValidationError("deductions", f"unknown fields {unknown}")
        amounts = {f: _non_negative(f, supplied.get(f, 0)) for f in DEDUCTION_FIELDS}

        derived = derive_net_pay(gross, allow, amounts)
        if net_pay is not None:
            supplied_net = parse_amount("net_pay", net_pay)
            if supplied_net != derived:
                raise NetPayMismatchError(supplied_net, derived)

        return {
            "employee_id": employee_id,
            "period_start": period_start,
            "period_end": period_end,
            "gross_pay": gross,
            "allowances": allow,
            "net_pay": derived,
            **amounts,
        }

    def record_issued(self, payslip: Payslip, actor_id: str | None = None) -> Payslip:
        """Persist a newly built payslip and emit PayslipIssued."""
        self.session.add(payslip)
        self.session.flush()
        logger.info(
            "Issued %s payslip %s for %s (net %s)",
            payslip.kind,
            payslip.id,
            payslip.employee_id,
            payslip.net_pay,
        )
        self._record(
            PayslipIssued(
                metadata=self._metadata(actor_id),
                payslip_id=payslip.id,
                employee_id=payslip.employee_id,
                net_pay=payslip.net_pay,
                issued_at=payslip.issued_at,
            )
        )
        return payslip

    # ===== Transitions =====

    def confirm(self, payslip_id: str, actor_id: str | None = None) -> TransitionResult:
        """issued → confirmed."""
        payslip = self._get_for_update(payslip_id)
        result = self._advance(payslip, PayslipStatus.CONFIRMED)
        if result.applied:
            payslip.confirmed_at = utcnow()
            self._record(
                PayslipConfirmed(
                    metadata=self._metadata(actor_id),
                    payslip_id=payslip.id,
                    employee_id=payslip.employee_id,
                )
            )
        return result

    def publish(self, payslip_id: str, actor_id: str | None = None) -> TransitionResult:
        """confirmed → published."""
        payslip = self._get_for_update(payslip_id)
        result = self._advance(payslip, PayslipStatus.PUBLISHED)
        if result.applied:
            self._stamp_published(payslip, actor_id)
        return result

    def publish_from_run(self, payslip: Payslip, run_id: str, actor_id: str | None = None) -> bool:
        """Cascade step of a run publish; only confirmed payslips advance."""
        if not self._advance(payslip, PayslipStatus.PUBLISHED).applied:
            return False
        self._stamp_published(payslip, actor_id, via_run_id=run_id)
        return True

    def _stamp_published(self, payslip: Payslip, actor_id: str | None, via_run_id: str | None = None) -> None:
        payslip.published_at = utcnow()
        self._record(
            PayslipPublished(
                metadata=self._metadata(actor_id),
                payslip_id=payslip.id,
                employee_id=payslip.employee_id,
                via_run_id=via_run_id,
            )
        )

    def record_payment(
        self,
        payslip_id: str,
        method: str,
        reference: str,
        confirmed_by: str | None = None,
    ) -> TransitionResult:
        """published → paid; stores payment method and reference.

        ``confirmed_by`` is the finance user who verified the transfer.
        """
        method = require_text("payment_method", method)
        reference = require_text("payment_reference", reference)

        payslip = self._get_for_update(payslip_id)
        result = self._advance(payslip, PayslipStatus.PAID)
        if not result.applied:
            return result

        now = utcnow()
        payslip.paid_at = now
        payslip.payment_method = method
        payslip.payment_reference = reference
        if confirmed_by:
            payslip.paid_confirmed_by = confirmed_by
            payslip.paid_confirmed_at = now

        self._record(
            PayslipPaid(
                metadata=self._metadata(confirmed_by),
                payslip_id=payslip.id,
                employee_id=payslip.employee_id,
                payment_method=method,
                payment_reference=reference,
            )
        )
        return result

    def sign(self, payslip_id: str, signature_artifact: str, actor_id: str | None = None) -> TransitionResult:
        """Attach the employee signature. Status does not change."""
        signature_artifact = require_text("signature_artifact", signature_artifact)
        payslip = self._get_for_update(payslip_id)

        if not PayslipStateMachine.can_sign(payslip.status, payslip.is_signed):
            reason = (
                "payslip is already signed"
                if payslip.is_signed
                else f"cannot sign a payslip in '{payslip.status}' status"
            )
            return self._refuse(payslip, reason)

        payslip.signed_at = utcnow()
        payslip.signature_artifact = signature_artifact
        logger.info("Payslip %s signed", payslip.id)
        self._record(
            PayslipSigned(
                metadata=self._metadata(actor_id),
                payslip_id=payslip.id,
                employee_id=payslip.employee_id,
            )
        )
        return TransitionResult.ok(payslip.id, payslip.status, payslip.status)

    def acknowledge(self, payslip_id: str, acknowledged_by: str) -> TransitionResult:
        """paid + signed → acknowledged."""
        acknowledged_by = require_text("acknowledged_by", acknowledged_by)
        payslip = self._get_for_update(payslip_id)

        already = payslip.acknowledged_at is not None
        if not PayslipStateMachine.can_acknowledge(payslip.status, payslip.is_signed, already):
            if payslip.status != PayslipStatus.PAID:
                reason = f"cannot acknowledge a payslip in '{payslip.status}' status"
            elif not payslip.is_signed:
                reason = "payslip must be signed before acknowledgement"
            else:
                reason = "payslip is already acknowledged"
            return self._refuse(payslip, reason)

        result = self._advance(payslip, PayslipStatus.ACKNOWLEDGED)
        payslip.acknowledged_at = utcnow()
        payslip.acknowledged_by = acknowledged_by
        self._record(
            PayslipAcknowledged(
                metadata=self._metadata(acknowledged_by),
                payslip_id=payslip.id,
                employee_id=payslip.employee_id,
                acknowledged_by=acknowledged_by,
            )
        )
        return result

    def _advance(self, payslip: Payslip, to_status: PayslipStatus) -> TransitionResult:
        previous = payslip.status
        if not PayslipStateMachine.can_transition(previous, to_status):
            return self._refuse(payslip, f"cannot move from '{previous}' to '{to_status.value}'")
        payslip.status = to_status.value
        logger.info("Payslip %s: %s -> %s", payslip.id, previous, to_status.value)
        return TransitionResult.ok(payslip.id, previous, to_status.value)

    def _refuse(self, payslip: Payslip, reason: str) -> TransitionResult:
        logger.debug("Payslip %s transition refused: %s", payslip.id, reason)
        return TransitionResult.refused(payslip.id, payslip.status, reason)

    # ===== Queries =====

    def _get_for_update(self, payslip_id: str) -> Payslip:
        payslip = self._lock(Payslip, payslip_id)
        if payslip is None:
            raise PayslipNotFoundError(payslip_id)
        return payslip

    def get(self, payslip_id: str) -> Payslip:
        payslip = self.session.get(Payslip, payslip_id)
        if payslip is None:
            raise PayslipNotFoundError(payslip_id)
        return payslip

    def by_employee(self, employee_id: str) -> list[Payslip]:
        stmt = (
            select(Payslip)
            .where(Payslip.employee_id == employee_id)
            .order_by(Payslip.issued_at.desc(), Payslip.id)
        )
        return list(self.session.scalars(stmt))

    def by_status(self, status: str) -> list[Payslip]:
        try:
            status = PayslipStatus(status).value
        except ValueError:
            raise PayrollValidationError("status", f"unknown payslip status '{status}'") from None
        stmt = select(Payslip).where(Payslip.status == status).order_by(Payslip.issued_at, Payslip.id)
        return list(self.session.scalars(stmt))

    def pending(self) -> list[Payslip]:
        """Payslips still awaiting confirmation."""
        return self.by_status(PayslipStatus.ISSUED.value)

    def signed(self) -> list[Payslip]:
        stmt = select(Payslip).where(Payslip.signed_at.is_not(None)).order_by(Payslip.signed_at)
        return list(self.session.scalars(stmt))

    def unsigned_published(self) -> list[Payslip]:
        """Published payslips the employee has not signed yet."""
        stmt = (
            select(Payslip)
            .where(
                Payslip.status == PayslipStatus.PUBLISHED.value,
                Payslip.signed_at.is_(None),
            )
            .order_by(Payslip.issued_at, Payslip.id)
        )
        return list(self.session.scalars(stmt))

    def issued_on(self, issued_at: date) -> list[Payslip]:
        stmt = select(Payslip).where(Payslip.issued_at == issued_at).order_by(Payslip.id)
        return list(self.session.scalars(stmt))
