"""Payroll ledger services."""

from payroll_ledger.services.adjustment_service import AdjustmentService
from payroll_ledger.services.directory import (
    EmployeeDirectory,
    EmployeeRecord,
    InMemoryEmployeeDirectory,
)
from payroll_ledger.services.export_service import ExportService
from payroll_ledger.services.pay_run_service import PayRunService, run_id_for
from payroll_ledger.services.payslip_service import PayslipService
from payroll_ledger.services.results import ComputationResult, TransitionResult
from payroll_ledger.services.schedule_service import ScheduleService
from payroll_ledger.services.settlement_service import SettlementService
from payroll_ledger.services.state_machine import (
    AdjustmentStateMachine,
    AdjustmentStatus,
    PayrollRunStateMachine,
    PayrollRunStatus,
    PayslipStateMachine,
    PayslipStatus,
)

__all__ = [
    "AdjustmentService",
    "EmployeeDirectory",
    "EmployeeRecord",
    "InMemoryEmployeeDirectory",
    "ExportService",
    "PayRunService",
    "run_id_for",
    "PayslipService",
    "ComputationResult",
    "TransitionResult",
    "ScheduleService",
    "SettlementService",
    "AdjustmentStateMachine",
    "AdjustmentStatus",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "PayslipStateMachine",
    "PayslipStatus",
]
