"""Pay run lifecycle with lock-time membership and policy pinning."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_ledger.calculators import RuleSetRegistry, StatutoryRuleSet
from payroll_ledger.events import EventBatch, PayrollRunLocked, PayrollRunPaid, PayrollRunPublished
from payroll_ledger.exceptions import (
    PayrollRunNotFoundError,
    PayrollValidationError,
    PayslipNotFoundError,
)
from payroll_ledger.models import PayrollRun, Payslip, utcnow
from payroll_ledger.services.base import LedgerService, require_text
from payroll_ledger.services.payslip_service import PayslipService
from payroll_ledger.services.results import ComputationResult, TransitionResult
from payroll_ledger.services.state_machine import PayrollRunStateMachine, PayrollRunStatus

logger = logging.getLogger(__name__)

RUN_TYPES = ("regular", "13th_month", "final_pay", "correction", "off_cycle")


def run_id_for(run_date: date) -> str:
    """One run per pay date: RUN-YYYY-MM-DD."""
    return f"RUN-{run_date.isoformat()}"


class PayRunService(LedgerService):
    """Service for pay run lifecycle.

    Runs are keyed by pay date. Validate and Lock create the run on
    first use, taking every payslip issued on that date as members.
    Once locked, membership and policy snapshot never change.
    """

    def __init__(
        self,
        session: Session,
        rule_set: StatutoryRuleSet,
        events: EventBatch | None = None,
        correlation_id: UUID | None = None,
    ):
        super().__init__(session, events=events, correlation_id=correlation_id)
        self.rule_set = rule_set
        self.payslips = PayslipService(session, events=events, correlation_id=self.correlation_id)

    # ===== Creation =====

    def create_draft(
        self,
        run_date: date,
        payslip_ids: Iterable[str] | None = None,
        run_type: str = "regular",
    ) -> ComputationResult[PayrollRun]:
        """Create a draft run for ``run_date``; returns the existing run if any."""
        existing = self._lock_run(run_date)
        if existing is not None:
            logger.debug("Run %s already exists; draft creation skipped", existing.id)
            return ComputationResult(record=existing, is_new=False)

        if run_type not in RUN_TYPES:
            raise PayrollValidationError("run_type", f"must be one of {list(RUN_TYPES)}")

        if payslip_ids is None:
            members = [p.id for p in self.payslips.issued_on(run_date)]
        else:
            members = list(dict.fromkeys(payslip_ids))
            found = set(self.session.scalars(select(Payslip.id).where(Payslip.id.in_(members))))
            missing = [pid for pid in members if pid not in found]
            if missing:
                raise PayslipNotFoundError(missing[0])

        run = self._new_run(run_date, members, run_type)
        return ComputationResult(record=run, is_new=True)

    def _new_run(self, run_date: date, payslip_ids: list[str], run_type: str = "regular") -> PayrollRun:
        run = PayrollRun(
            id=run_id_for(run_date),
            run_date=run_date,
            period_label=run_date.isoformat(),
            run_type=run_type,
            status=PayrollRunStatus.DRAFT.value,
            locked=False,
            payslip_ids=payslip_ids,
        )
        self.session.add(run)
        self.session.flush()
        logger.info("Created %s run %s with %d payslips", run_type, run.id, len(payslip_ids))
        return run

    def _get_or_synthesize(self, run_date: date) -> PayrollRun:
        run = self._lock_run(run_date)
        if run is None:
            run = self._new_run(run_date, [p.id for p in self.payslips.issued_on(run_date)])
        return run

    # ===== Transitions =====

    def validate(self, run_date: date) -> TransitionResult:
        """draft → validated."""
        run = self._get_or_synthesize(run_date)
        result = self._advance(run, PayrollRunStatus.VALIDATED)
        if result.applied:
            run.validated_at = utcnow()
        return result

    def lock(self, run_date: date, locked_by: str) -> TransitionResult:
        """draft/validated → locked; freezes membership and pins policy versions.

        Locking an already-locked run is a no-op: the original snapshot,
        including its ``locked_by``, is kept.
        """
        locked_by = require_text("locked_by", locked_by)
        run = self._get_or_synthesize(run_date)

        if run.locked:
            return self._refuse(run, "run is already locked")

        result = self._advance(run, PayrollRunStatus.LOCKED)
        if not result.applied:
            return result

        run.locked = True
        run.locked_at = utcnow()
        run.policy_snapshot = self.rule_set.versions.to_snapshot(locked_by)
        self._record(
            PayrollRunLocked(
                metadata=self._metadata(locked_by),
                run_id=run.id,
                run_date=run.run_date,
                payslip_count=len(run.payslip_ids),
                rule_set_version=self.rule_set.version,
                locked_by=locked_by,
            )
        )
        return result

    def publish(self, run_date: date, actor_id: str | None = None) -> TransitionResult:
        """locked → published, cascading confirmed payslips to published.

        Payslips still at ``issued`` are left alone.
        """
        run = self._get_for_update(run_date)
        if not run.locked:
            return self._refuse(run, "run must be locked before publishing")

        result = self._advance(run, PayrollRunStatus.PUBLISHED)
        if not result.applied:
            return result

        published: list[str] = []
        members = list(
            self.session.scalars(
                select(Payslip)
                .where(Payslip.id.in_(run.payslip_ids))
                .order_by(Payslip.id)
                .with_for_update()
            )
        )
        for payslip in members:
            if self.payslips.publish_from_run(payslip, run.id, actor_id):
                published.append(payslip.id)

        run.published_at = utcnow()
        logger.info("Run %s published; %d payslips advanced", run.id, len(published))
        self._record(
            PayrollRunPublished(
                metadata=self._metadata(actor_id),
                run_id=run.id,
                published_payslip_ids=tuple(published),
            )
        )
        return result

    def mark_paid(self, run_date: date, actor_id: str | None = None) -> TransitionResult:
        """published → paid."""
        run = self._get_for_update(run_date)
        result = self._advance(run, PayrollRunStatus.PAID)
        if result.applied:
            run.paid_at = utcnow()
            self._record(PayrollRunPaid(metadata=self._metadata(actor_id), run_id=run.id))
        return result

    def _advance(self, run: PayrollRun, to_status: PayrollRunStatus) -> TransitionResult:
        previous = run.status
        if not PayrollRunStateMachine.can_transition(previous, to_status):
            return self._refuse(run, f"cannot move from '{previous}' to '{to_status.value}'")
        run.status = to_status.value
        logger.info("Run %s: %s -> %s", run.id, previous, to_status.value)
        return TransitionResult.ok(run.id, previous, to_status.value)

    def _refuse(self, run: PayrollRun, reason: str) -> TransitionResult:
        logger.debug("Run %s transition refused: %s", run.id, reason)
        return TransitionResult.refused(run.id, run.status, reason)

    # ===== Queries =====

    def _lock_run(self, run_date: date) -> PayrollRun | None:
        return self._lock(PayrollRun, run_id_for(run_date))

    def _get_for_update(self, run_date: date) -> PayrollRun:
        run = self._lock_run(run_date)
        if run is None:
            raise PayrollRunNotFoundError(run_id_for(run_date))
        return run

    def get(self, run_date: date) -> PayrollRun:
        run = self.session.get(PayrollRun, run_id_for(run_date))
        if run is None:
            raise PayrollRunNotFoundError(run_id_for(run_date))
        return run

    def list_runs(self) -> list[PayrollRun]:
        return list(self.session.scalars(select(PayrollRun).order_by(PayrollRun.run_date.desc())))

    def rule_set_for_run(self, run_date: date, registry: RuleSetRegistry) -> StatutoryRuleSet:
        """Rule set pinned in a locked run's snapshot, for audit recomputation."""
        run = self.get(run_date)
        if not run.locked or not run.policy_snapshot:
            raise PayrollValidationError("run_date", f"run {run.id} is not locked")
        return registry.resolve(run.policy_snapshot["rule_set_version"])
