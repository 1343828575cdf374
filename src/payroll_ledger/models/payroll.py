"""Payslip, payroll run, adjustment, settlement, and schedule models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_ledger.exceptions import FrozenRunError, ImmutablePayslipError
from payroll_ledger.models.base import Base, TimestampMixin

DEDUCTION_FIELDS = (
    "social_insurance",
    "health_insurance",
    "housing_fund",
    "withholding_tax",
    "other_deductions",
    "loan_deduction",
)

MONETARY_FIELDS = ("gross_pay", "allowances", *DEDUCTION_FIELDS, "net_pay")

# Statuses after which monetary fields may no longer change
FROZEN_STATUSES = frozenset({"paid", "acknowledged"})


# ===== Payslips =====


class Payslip(Base, TimestampMixin):
    """One pay statement for one employee for one period.

    Regular payslips and correction payslips share this table; the
    ``kind`` discriminator selects the mapped class. Only
    ``CorrectionPayslip`` exposes a back-reference to an adjustment.
    """

    __tablename__ = "payslip"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    employee_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    allowances: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    social_insurance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    health_insurance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    housing_fund: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    withholding_tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    other_deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    loan_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    issued_at: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="issued", index=True)

    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_confirmed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    signature_artifact: Mapped[str | None] = mapped_column(Text, nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(nullable=True)
    acknowledged_by: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('issued', 'confirmed', 'published', 'paid', 'acknowledged')",
            name="payslip_status_check",
        ),
        CheckConstraint("kind IN ('regular', 'correction')", name="payslip_kind_check"),
        CheckConstraint("period_end >= period_start", name="payslip_period_check"),
        CheckConstraint(
            "(kind = 'regular' AND adjustment_reference IS NULL) OR "
            "(kind = 'correction' AND adjustment_reference IS NOT NULL)",
            name="payslip_correction_reference_check",
        ),
    )

    __mapper_args__ = {
        "polymorphic_on": "kind",
        "polymorphic_identity": "regular",
        "version_id_col": version,
    }

    @property
    def total_deductions(self) -> Decimal:
        return sum((getattr(self, f) for f in DEDUCTION_FIELDS), Decimal("0"))

    @property
    def is_signed(self) -> bool:
        return self.signed_at is not None


class CorrectionPayslip(Payslip):
    """Append-only correction minted when an approved adjustment is applied."""

    adjustment_reference: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("payroll_adjustment.id"),
        nullable=True,
        index=True,
    )

    __mapper_args__ = {"polymorphic_identity": "correction", "polymorphic_load": "inline"}


@event.listens_for(Payslip, "before_update", propagate=True)
def _reject_paid_money_changes(mapper: Any, connection: Any, target: Payslip) -> None:
    """Monetary columns are frozen once the persisted status is paid."""
    state = inspect(target)
    status_history = state.attrs.status.history
    persisted_status = status_history.deleted[0] if status_history.deleted else target.status
    if persisted_status not in FROZEN_STATUSES:
        return

    changed = [f for f in MONETARY_FIELDS if state.attrs[f].history.has_changes()]
    if changed:
        raise ImmutablePayslipError(target.id, changed)


# ===== Payroll Runs =====


class PayrollRun(Base, TimestampMixin):
    """Batch of payslips sharing an issuance date."""

    __tablename__ = "payroll_run"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    run_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    period_label: Mapped[str] = mapped_column(String, nullable=False)
    run_type: Mapped[str] = mapped_column(String(16), nullable=False, default="regular")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    validated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Membership and policy pins; frozen once locked
    payslip_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    policy_snapshot: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'validated', 'locked', 'published', 'paid')",
            name="payroll_run_status_check",
        ),
        CheckConstraint(
            "run_type IN ('regular', '13th_month', 'final_pay', 'correction', 'off_cycle')",
            name="payroll_run_type_check",
        ),
    )

    __mapper_args__ = {"version_id_col": version}


@event.listens_for(PayrollRun, "before_update")
def _reject_locked_snapshot_changes(mapper: Any, connection: Any, target: PayrollRun) -> None:
    """Membership and policy snapshot cannot change after lock."""
    state = inspect(target)
    locked_history = state.attrs.locked.history
    was_locked = locked_history.deleted[0] if locked_history.deleted else target.locked
    if not was_locked:
        return

    changed = [
        f for f in ("payslip_ids", "policy_snapshot") if state.attrs[f].history.has_changes()
    ]
    if changed or not target.locked:
        raise FrozenRunError(target.id, changed or ["locked"])


# ===== Adjustments =====


class PayrollAdjustment(Base, TimestampMixin):
    """Proposed correction to a previously issued payslip."""

    __tablename__ = "payroll_adjustment"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    payroll_run_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    adjustment_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reference_payslip_id: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    applied_run_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    applied_at: Mapped[datetime | None] = mapped_column(nullable=True)
    correction_payslip_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'applied')",
            name="payroll_adjustment_status_check",
        ),
        CheckConstraint(
            "adjustment_type IN ('earnings', 'deduction', 'statutory_correction')",
            name="payroll_adjustment_type_check",
        ),
        CheckConstraint(
            "(adjustment_type = 'earnings' AND amount > 0) OR "
            "(adjustment_type != 'earnings' AND amount < 0)",
            name="payroll_adjustment_sign_check",
        ),
    )

    __mapper_args__ = {"version_id_col": version}


# ===== Separation =====


class FinalPayComputation(Base, TimestampMixin):
    """One-time settlement record for a separating employee."""

    __tablename__ = "final_pay_computation"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    # One settlement per employee, ever
    employee_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    resigned_at: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    unpaid_ot_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    leave_days: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    pro_rated_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    unpaid_ot: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    leave_payout: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    remaining_loan_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    gross_final_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_final_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="computed")
    computed_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("net_final_pay >= 0", name="final_pay_net_non_negative"),
    )


# ===== Pay Schedule =====


PAY_SCHEDULE_DEFAULTS: dict[str, Any] = {
    "default_frequency": "semi_monthly",
    "semi_monthly_first_cutoff": 15,
    "semi_monthly_first_pay_day": 20,
    "semi_monthly_second_pay_day": 5,
    "monthly_pay_day": 30,
    "weekly_pay_day": 5,
}


class PayScheduleConfig(Base):
    """Process-wide pay schedule; a single row keyed by id 1.

    The row exists only once the schedule has been updated (or seeded);
    until then readers get the unsaved defaults.
    """

    __tablename__ = "pay_schedule_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    default_frequency: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PAY_SCHEDULE_DEFAULTS["default_frequency"]
    )
    semi_monthly_first_cutoff: Mapped[int] = mapped_column(
        Integer, nullable=False, default=PAY_SCHEDULE_DEFAULTS["semi_monthly_first_cutoff"]
    )
    semi_monthly_first_pay_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=PAY_SCHEDULE_DEFAULTS["semi_monthly_first_pay_day"]
    )
    semi_monthly_second_pay_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=PAY_SCHEDULE_DEFAULTS["semi_monthly_second_pay_day"]
    )
    monthly_pay_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=PAY_SCHEDULE_DEFAULTS["monthly_pay_day"]
    )
    weekly_pay_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=PAY_SCHEDULE_DEFAULTS["weekly_pay_day"]
    )
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("id = 1", name="pay_schedule_config_singleton"),
        CheckConstraint(
            "default_frequency IN ('monthly', 'semi_monthly', 'bi_weekly', 'weekly')",
            name="pay_schedule_config_frequency_check",
        ),
    )

    @classmethod
    def defaults(cls) -> PayScheduleConfig:
        """Unsaved schedule holding the default values."""
        return cls(id=1, **PAY_SCHEDULE_DEFAULTS)
