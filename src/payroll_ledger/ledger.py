"""PayrollLedger - the transactional facade over the ledger services.

Every public method runs in exactly one database transaction:
- Aggregates are loaded FOR UPDATE and versioned, so a concurrent
  writer surfaces as ConcurrentModificationError rather than a lost update
- Cross-aggregate operations (apply, publish with cascade, 13th month)
  commit or roll back as a unit
- Domain events are buffered and dispatched only after commit

Usage:
    ledger = PayrollLedger.from_settings()
    payslip = ledger.issue_payslip(employee_id="EMP001", ...)
    result = ledger.confirm_payslip(payslip.id)
    if not result.applied:
        print(result.reason)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import date
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from payroll_ledger.calculators import RuleSetRegistry, StatutoryRuleSet, default_registry
from payroll_ledger.config import Settings, get_settings
from payroll_ledger.database import create_schema, create_session_factory, get_engine
from payroll_ledger.events import EventBatch, EventEmitter
from payroll_ledger.exceptions import ConcurrentModificationError, ResetNotAllowedError
from payroll_ledger.models import (
    FinalPayComputation,
    PayrollAdjustment,
    PayrollRun,
    PayScheduleConfig,
    Payslip,
)
from payroll_ledger.seed import load_seed
from payroll_ledger.services.adjustment_service import AdjustmentService
from payroll_ledger.services.directory import EmployeeDirectory, EmployeeRecord
from payroll_ledger.services.export_service import ExportService
from payroll_ledger.services.pay_run_service import PayRunService
from payroll_ledger.services.payslip_service import PayslipService
from payroll_ledger.services.results import ComputationResult, TransitionResult
from payroll_ledger.services.schedule_service import ScheduleService
from payroll_ledger.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)


class PayrollLedger:
    """Entry point for every ledger operation."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        registry: RuleSetRegistry | None = None,
        emitter: EventEmitter | None = None,
        allow_reset: bool = False,
    ):
        self.session_factory = session_factory
        self.registry = registry or default_registry()
        self.emitter = emitter or EventEmitter()
        self.allow_reset = allow_reset

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> PayrollLedger:
        """Build a ledger on the configured database, creating tables if needed."""
        settings = settings or get_settings()
        engine = get_engine(settings.database_url, echo=settings.debug)
        create_schema(engine)

        registry = kwargs.pop("registry", None) or default_registry()
        registry.set_current(settings.rule_set_version)
        return cls(
            create_session_factory(engine),
            registry=registry,
            allow_reset=settings.allow_reset,
            **kwargs,
        )

    @property
    def rule_set(self) -> StatutoryRuleSet:
        return self.registry.current()

    @contextmanager
    def transaction(self) -> Iterator[tuple[Session, EventBatch]]:
        """One transaction plus the event batch released on its commit."""
        try:
            with self.emitter.batch() as batch:
                with self.session_factory.begin() as session:
                    yield session, batch
        except StaleDataError as e:
            logger.warning("Concurrent modification detected: %s", e)
            raise ConcurrentModificationError(str(e)) from e

    @contextmanager
    def _read(self) -> Iterator[Session]:
        with self.session_factory() as session:
            yield session

    # ===== Payslips =====

    def issue_payslip(self, **kwargs: Any) -> Payslip:
        """IssuePayslip; see PayslipService.issue for arguments."""
        with self.transaction() as (session, batch):
            return PayslipService(session, batch).issue(**kwargs)

    def issue_computed_payslip(self, **kwargs: Any) -> Payslip:
        """Issue with statutory deductions derived from the current rule set."""
        with self.transaction() as (session, batch):
            return PayslipService(session, batch).issue_computed(rule_set=self.rule_set, **kwargs)

    def confirm_payslip(self, payslip_id: str, actor_id: str | None = None) -> TransitionResult:
        with self.transaction() as (session, batch):
            return PayslipService(session, batch).confirm(payslip_id, actor_id)

    def publish_payslip(self, payslip_id: str, actor_id: str | None = None) -> TransitionResult:
        with self.transaction() as (session, batch):
            return PayslipService(session, batch).publish(payslip_id, actor_id)

    def record_payment(
        self,
        payslip_id: str,
        method: str,
        reference: str,
        confirmed_by: str | None = None,
    ) -> TransitionResult:
        with self.transaction() as (session, batch):
            return PayslipService(session, batch).record_payment(
                payslip_id, method, reference, confirmed_by=confirmed_by
            )

    def sign_payslip(
        self, payslip_id: str, signature_artifact: str, actor_id: str | None = None
    ) -> TransitionResult:
        with self.transaction() as (session, batch):
            return PayslipService(session, batch).sign(payslip_id, signature_artifact, actor_id)

    def acknowledge_payslip(self, payslip_id: str, acknowledged_by: str) -> TransitionResult:
        with self.transaction() as (session, batch):
            return PayslipService(session, batch).acknowledge(payslip_id, acknowledged_by)

    def get_payslip(self, payslip_id: str) -> Payslip:
        with self._read() as session:
            return PayslipService(session).get(payslip_id)

    def get_payslips_by_employee(self, employee_id: str) -> list[Payslip]:
        with self._read() as session:
            return PayslipService(session).by_employee(employee_id)

    def get_payslips_by_status(self, status: str) -> list[Payslip]:
        with self._read() as session:
            return PayslipService(session).by_status(status)

    def get_pending_payslips(self) -> list[Payslip]:
        with self._read() as session:
            return PayslipService(session).pending()

    def get_signed_payslips(self) -> list[Payslip]:
        with self._read() as session:
            return PayslipService(session).signed()

    def get_unsigned_published(self) -> list[Payslip]:
        with self._read() as session:
            return PayslipService(session).unsigned_published()

    # ===== Payroll runs =====

    def create_draft_run(
        self,
        run_date: date,
        payslip_ids: Iterable[str] | None = None,
        run_type: str = "regular",
    ) -> ComputationResult[PayrollRun]:
        try:
            with self.transaction() as (session, batch):
                return self._runs(session, batch).create_draft(run_date, payslip_ids, run_type)
        except IntegrityError:
            # Another writer created the run for this date first
            return ComputationResult(record=self.get_run(run_date), is_new=False)

    def validate_run(self, run_date: date) -> TransitionResult:
        with self._creation_conflicts("payroll run"):
            with self.transaction() as (session, batch):
                return self._runs(session, batch).validate(run_date)

    def lock_run(self, run_date: date, locked_by: str) -> TransitionResult:
        with self._creation_conflicts("payroll run"):
            with self.transaction() as (session, batch):
                return self._runs(session, batch).lock(run_date, locked_by)

    def publish_run(self, run_date: date, actor_id: str | None = None) -> TransitionResult:
        with self.transaction() as (session, batch):
            return self._runs(session, batch).publish(run_date, actor_id)

    def mark_run_paid(self, run_date: date, actor_id: str | None = None) -> TransitionResult:
        with self.transaction() as (session, batch):
            return self._runs(session, batch).mark_paid(run_date, actor_id)

    def get_run(self, run_date: date) -> PayrollRun:
        with self._read() as session:
            return self._runs(session).get(run_date)

    def list_runs(self) -> list[PayrollRun]:
        with self._read() as session:
            return self._runs(session).list_runs()

    def rule_set_for_run(self, run_date: date) -> StatutoryRuleSet:
        """Rule set pinned when the run was locked."""
        with self._read() as session:
            return self._runs(session).rule_set_for_run(run_date, self.registry)

    def _runs(self, session: Session, batch: EventBatch | None = None) -> PayRunService:
        return PayRunService(session, self.rule_set, events=batch)

    @contextmanager
    def _creation_conflicts(self, entity: str) -> Iterator[None]:
        """Map a lost insert race on a unique key to ConcurrentModificationError."""
        try:
            yield
        except IntegrityError as e:
            raise ConcurrentModificationError(
                f"{entity} was created concurrently; retry the operation"
            ) from e

    # ===== Adjustments =====

    def create_adjustment(self, **kwargs: Any) -> PayrollAdjustment:
        """CreateAdjustment; see AdjustmentService.create for arguments."""
        with self.transaction() as (session, batch):
            return AdjustmentService(session, batch).create(**kwargs)

    def approve_adjustment(self, adjustment_id: str, approver_id: str) -> TransitionResult:
        with self.transaction() as (session, batch):
            return AdjustmentService(session, batch).approve(adjustment_id, approver_id)

    def reject_adjustment(self, adjustment_id: str, approver_id: str) -> TransitionResult:
        with self.transaction() as (session, batch):
            return AdjustmentService(session, batch).reject(adjustment_id, approver_id)

    def apply_adjustment(
        self,
        adjustment_id: str,
        target_run_id: str,
        applied_on: date | None = None,
        actor_id: str | None = None,
    ) -> TransitionResult:
        with self.transaction() as (session, batch):
            return AdjustmentService(session, batch).apply(
                adjustment_id, target_run_id, applied_on=applied_on, actor_id=actor_id
            )

    def get_adjustment(self, adjustment_id: str) -> PayrollAdjustment:
        with self._read() as session:
            return AdjustmentService(session).get(adjustment_id)

    def list_adjustments(self, status: str | None = None) -> list[PayrollAdjustment]:
        with self._read() as session:
            return AdjustmentService(session).list_adjustments(status)

    # ===== Settlements =====

    def compute_final_pay(self, **kwargs: Any) -> ComputationResult[FinalPayComputation]:
        """ComputeFinalPay; idempotent per employee."""
        try:
            with self.transaction() as (session, batch):
                return SettlementService(session, batch).compute_final_pay(**kwargs)
        except IntegrityError:
            # A concurrent request settled this employee first
            return ComputationResult(record=self.get_final_pay(kwargs["employee_id"]), is_new=False)

    def get_final_pay(self, employee_id: str) -> FinalPayComputation:
        with self._read() as session:
            return SettlementService(session).get_final_pay(employee_id)

    def list_final_pay(self) -> list[FinalPayComputation]:
        with self._read() as session:
            return SettlementService(session).list_final_pay()

    def generate_thirteenth_month(
        self,
        employees: Iterable[EmployeeRecord],
        as_of: date | None = None,
        actor_id: str | None = None,
    ) -> list[Payslip]:
        with self.transaction() as (session, batch):
            return SettlementService(session, batch).generate_thirteenth_month(
                employees, as_of=as_of, actor_id=actor_id
            )

    # ===== Schedule =====

    def get_pay_schedule(self) -> PayScheduleConfig:
        with self._read() as session:
            return ScheduleService(session).get()

    def update_pay_schedule(
        self, patch: Mapping[str, Any], updated_by: str | None = None
    ) -> PayScheduleConfig:
        with self._creation_conflicts("pay schedule"):
            with self.transaction() as (session, _):
                return ScheduleService(session).update(patch, updated_by)

    def cutoff_for(self, day: date) -> str:
        with self._read() as session:
            return ScheduleService(session).cutoff_for(day)

    # ===== Export =====

    def export_bank_file(self, run_date: date, directory: EmployeeDirectory) -> str | None:
        """CSV bank instructions for payslips issued on ``run_date`` (None if none)."""
        with self._read() as session:
            return ExportService(session).bank_file_csv(run_date, directory)

    # ===== Maintenance =====

    def reset_to_seed(self) -> int:
        """Clear every ledger table and reload the demo seed. Test/demo only."""
        if not self.allow_reset:
            raise ResetNotAllowedError("Reset is disabled; set ALLOW_RESET=true to enable")

        with self.transaction() as (session, _):
            # Payslips first: corrections reference adjustments
            for model in (Payslip, PayrollAdjustment, PayrollRun, FinalPayComputation, PayScheduleConfig):
                session.execute(model.__table__.delete())
            count = load_seed(session)

        logger.warning("Ledger reset to seed data (%d payslips)", count)
        return count
