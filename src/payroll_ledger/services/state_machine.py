"""Forward-only state machines for payslips, runs, and adjustments."""

from __future__ import annotations

from enum import Enum


class PayslipStatus(str, Enum):
    """Payslip status values."""

    ISSUED = "issued"
    CONFIRMED = "confirmed"
    PUBLISHED = "published"
    PAID = "paid"
    ACKNOWLEDGED = "acknowledged"


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    VALIDATED = "validated"
    LOCKED = "locked"
    PUBLISHED = "published"
    PAID = "paid"


class AdjustmentStatus(str, Enum):
    """Adjustment approval status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPLIED = "applied"


class StateMachine:
    """Transition table lookup shared by the concrete machines."""

    # {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        return to_status in cls.VALID_TRANSITIONS.get(from_status, [])

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return list(cls.VALID_TRANSITIONS.get(current_status, []))

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(status)


class PayslipStateMachine(StateMachine):
    """issued → confirmed → published → paid → acknowledged.

    Signing is not a transition: it stamps metadata on a published or
    paid payslip without moving its status.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayslipStatus.ISSUED: [PayslipStatus.CONFIRMED],
        PayslipStatus.CONFIRMED: [PayslipStatus.PUBLISHED],
        PayslipStatus.PUBLISHED: [PayslipStatus.PAID],
        PayslipStatus.PAID: [PayslipStatus.ACKNOWLEDGED],
        PayslipStatus.ACKNOWLEDGED: [],  # Terminal state
    }

    SIGNABLE = {PayslipStatus.PUBLISHED, PayslipStatus.PAID}

    @classmethod
    def can_sign(cls, status: str, already_signed: bool) -> bool:
        return status in cls.SIGNABLE and not already_signed

    @classmethod
    def can_acknowledge(cls, status: str, signed: bool, already_acknowledged: bool) -> bool:
        return status == PayslipStatus.PAID and signed and not already_acknowledged


class PayrollRunStateMachine(StateMachine):
    """draft → validated → locked → published → paid.

    Lock also accepts a draft run directly, for callers that never
    validate first.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollRunStatus.DRAFT: [PayrollRunStatus.VALIDATED, PayrollRunStatus.LOCKED],
        PayrollRunStatus.VALIDATED: [PayrollRunStatus.LOCKED],
        PayrollRunStatus.LOCKED: [PayrollRunStatus.PUBLISHED],
        PayrollRunStatus.PUBLISHED: [PayrollRunStatus.PAID],
        PayrollRunStatus.PAID: [],  # Terminal state
    }

    # Statuses at which membership and policy snapshot are frozen
    FROZEN = {
        PayrollRunStatus.LOCKED,
        PayrollRunStatus.PUBLISHED,
        PayrollRunStatus.PAID,
    }

    @classmethod
    def is_frozen(cls, status: str) -> bool:
        return status in cls.FROZEN


class AdjustmentStateMachine(StateMachine):
    """pending → approved | rejected; approved → applied."""

    VALID_TRANSITIONS: dict[str, list[str]] = {
        AdjustmentStatus.PENDING: [AdjustmentStatus.APPROVED, AdjustmentStatus.REJECTED],
        AdjustmentStatus.APPROVED: [AdjustmentStatus.APPLIED],
        AdjustmentStatus.REJECTED: [],
        AdjustmentStatus.APPLIED: [],
    }
