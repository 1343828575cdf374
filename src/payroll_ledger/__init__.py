"""Payroll ledger: payslip lifecycle, pay runs, adjustments, and settlements.

Main entry point:
- PayrollLedger: one transaction per operation, events after commit
"""

from payroll_ledger.ledger import PayrollLedger
from payroll_ledger.services import (
    ComputationResult,
    EmployeeRecord,
    InMemoryEmployeeDirectory,
    TransitionResult,
)

__version__ = "0.1.0"

__all__ = [
    "PayrollLedger",
    "ComputationResult",
    "EmployeeRecord",
    "InMemoryEmployeeDirectory",
    "TransitionResult",
]
