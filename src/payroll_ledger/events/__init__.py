"""Domain events emitted by ledger lifecycle transitions."""

from payroll_ledger.events.emitter import EventBatch, EventEmitter
from payroll_ledger.events.types import (
    AdjustmentApplied,
    AdjustmentApproved,
    AdjustmentRejected,
    DomainEvent,
    EventCategory,
    EventMetadata,
    FinalPayComputed,
    PayrollRunLocked,
    PayrollRunPaid,
    PayrollRunPublished,
    PayslipAcknowledged,
    PayslipConfirmed,
    PayslipIssued,
    PayslipPaid,
    PayslipPublished,
    PayslipSigned,
    ThirteenthMonthGenerated,
)

__all__ = [
    "EventBatch",
    "EventEmitter",
    "DomainEvent",
    "EventCategory",
    "EventMetadata",
    "PayslipIssued",
    "PayslipConfirmed",
    "PayslipPublished",
    "PayslipPaid",
    "PayslipSigned",
    "PayslipAcknowledged",
    "PayrollRunLocked",
    "PayrollRunPublished",
    "PayrollRunPaid",
    "AdjustmentApproved",
    "AdjustmentRejected",
    "AdjustmentApplied",
    "FinalPayComputed",
    "ThirteenthMonthGenerated",
]
