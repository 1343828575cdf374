"""ORM models for the payroll ledger."""

from payroll_ledger.models.base import Base, TimestampMixin, utcnow
from payroll_ledger.models.payroll import (
    DEDUCTION_FIELDS,
    FROZEN_STATUSES,
    MONETARY_FIELDS,
    CorrectionPayslip,
    FinalPayComputation,
    PayrollAdjustment,
    PayrollRun,
    PayScheduleConfig,
    Payslip,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "DEDUCTION_FIELDS",
    "FROZEN_STATUSES",
    "MONETARY_FIELDS",
    "Payslip",
    "CorrectionPayslip",
    "PayrollRun",
    "PayrollAdjustment",
    "FinalPayComputation",
    "PayScheduleConfig",
]
