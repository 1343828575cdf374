"""Error taxonomy for ledger operations.

Guard violations are not errors: they come back as a refused
``TransitionResult``. Everything here means the call was rejected before
any state was written.
"""

from __future__ import annotations

from decimal import Decimal


class PayrollLedgerError(Exception):
    """Base class for all ledger errors."""

    code = "LEDGER_ERROR"


class PayrollValidationError(PayrollLedgerError, ValueError):
    """Raised when monetary or descriptive input is malformed."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class NetPayMismatchError(PayrollValidationError):
    """Raised when a supplied net pay disagrees with the derived figure."""

    def __init__(self, supplied: Decimal, expected: Decimal):
        self.supplied = supplied
        self.expected = expected
        super().__init__(
            "net_pay",
            f"supplied {supplied} but gross + allowances - deductions = {expected}",
        )


class NotFoundError(PayrollLedgerError, LookupError):
    """Raised when an operation targets an unknown id."""

    code = "NOT_FOUND"
    entity = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} '{entity_id}' not found")


class PayslipNotFoundError(NotFoundError):
    entity = "Payslip"


class PayrollRunNotFoundError(NotFoundError):
    entity = "Payroll run"


class AdjustmentNotFoundError(NotFoundError):
    entity = "Adjustment"


class FinalPayNotFoundError(NotFoundError):
    entity = "Final pay computation"


class RuleSetNotFoundError(NotFoundError):
    entity = "Statutory rule set"


class ImmutablePayslipError(PayrollLedgerError):
    """Raised when monetary fields of a paid payslip are modified."""

    code = "IMMUTABLE"

    def __init__(self, payslip_id: str, fields: list[str]):
        self.payslip_id = payslip_id
        self.fields = fields
        super().__init__(
            f"Payslip '{payslip_id}' is paid; cannot modify {', '.join(sorted(fields))}"
        )


class FrozenRunError(PayrollLedgerError):
    """Raised when a locked run's membership or policy snapshot is modified."""

    code = "IMMUTABLE"

    def __init__(self, run_id: str, fields: list[str]):
        self.run_id = run_id
        self.fields = fields
        super().__init__(
            f"Payroll run '{run_id}' is locked; cannot modify {', '.join(sorted(fields))}"
        )


class ConcurrentModificationError(PayrollLedgerError):
    """Raised when another writer changed an aggregate mid-transaction."""

    code = "CONFLICT"


class ResetNotAllowedError(PayrollLedgerError):
    """Raised when a reset is requested outside a test/demo environment."""

    code = "RESET_DISABLED"
