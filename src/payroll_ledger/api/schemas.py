"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body for every ledger error."""

    detail: str
    code: str


class TransitionResponse(BaseModel):
    """Outcome of a guarded transition; applied=False means nothing changed."""

    model_config = ConfigDict(from_attributes=True)

    entity_id: str
    applied: bool
    previous_status: str
    status: str
    reason: str | None = None


# ============================================================================
# Payslip schemas
# ============================================================================


class PayslipIssueRequest(BaseModel):
    """Schema for issuing a payslip with explicit deductions."""

    employee_id: str = Field(min_length=1)
    period_start: date
    period_end: date
    gross_pay: Decimal
    allowances: Decimal = Decimal("0")
    deductions: dict[str, Decimal] = Field(default_factory=dict)
    issued_at: date | None = None
    net_pay: Decimal | None = None
    notes: str | None = None


class PayslipComputeRequest(BaseModel):
    """Schema for issuing a payslip with statutory deductions derived from gross."""

    employee_id: str = Field(min_length=1)
    period_start: date
    period_end: date
    gross_pay: Decimal
    allowances: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")
    loan_deduction: Decimal = Decimal("0")
    issued_at: date | None = None
    notes: str | None = None


class PayslipResponse(BaseModel):
    """Schema for payslip response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: str
    employee_id: str
    period_start: date
    period_end: date
    gross_pay: Decimal
    allowances: Decimal
    social_insurance: Decimal
    health_insurance: Decimal
    housing_fund: Decimal
    withholding_tax: Decimal
    other_deductions: Decimal
    loan_deduction: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    issued_at: date
    status: str
    confirmed_at: datetime | None = None
    published_at: datetime | None = None
    paid_at: datetime | None = None
    payment_method: str | None = None
    payment_reference: str | None = None
    paid_confirmed_by: str | None = None
    paid_confirmed_at: datetime | None = None
    signed_at: datetime | None = None
    acknowledged_at: datetime | None = None
    acknowledged_by: str | None = None
    notes: str | None = None
    adjustment_reference: str | None = None


class PaymentRequest(BaseModel):
    method: str = Field(min_length=1)
    reference: str = Field(min_length=1)


class SignRequest(BaseModel):
    signature_artifact: str = Field(min_length=1)


# ============================================================================
# Payroll Run schemas
# ============================================================================


class PayrollRunCreate(BaseModel):
    """Schema for creating a draft run; membership defaults to the date's payslips."""

    run_date: date
    payslip_ids: list[str] | None = None
    run_type: str = "regular"


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    run_date: date
    period_label: str
    run_type: str
    status: str
    locked: bool
    validated_at: datetime | None = None
    locked_at: datetime | None = None
    published_at: datetime | None = None
    paid_at: datetime | None = None
    payslip_ids: list[str]
    policy_snapshot: dict[str, str] | None = None
    created_at: datetime


class PayrollRunCreateResponse(BaseModel):
    run: PayrollRunResponse
    is_new: bool


class RuleSetResponse(BaseModel):
    """Policy versions a locked run was computed under."""

    version: str
    tax_table: str
    social_insurance: str
    health_insurance: str
    housing_fund: str
    holiday_calendar: str
    formula: str


# ============================================================================
# Adjustment schemas
# ============================================================================


class AdjustmentCreate(BaseModel):
    """Schema for proposing an adjustment; created_by comes from X-Actor-ID."""

    payroll_run_id: str = Field(min_length=1)
    employee_id: str = Field(min_length=1)
    adjustment_type: str
    reference_payslip_id: str = Field(min_length=1)
    amount: Decimal
    reason: str = Field(min_length=1)


class AdjustmentApplyRequest(BaseModel):
    target_run_id: str = Field(min_length=1)
    applied_on: date | None = None


class AdjustmentResponse(BaseModel):
    """Schema for adjustment response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    payroll_run_id: str
    employee_id: str
    adjustment_type: str
    reference_payslip_id: str
    amount: Decimal
    reason: str
    created_by: str
    created_at: datetime
    status: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    applied_run_id: str | None = None
    applied_at: datetime | None = None
    correction_payslip_id: str | None = None


# ============================================================================
# Settlement schemas
# ============================================================================


class FinalPayRequest(BaseModel):
    employee_id: str = Field(min_length=1)
    resigned_at: date
    monthly_salary: Decimal = Field(ge=0)
    unpaid_ot_hours: Decimal = Field(default=Decimal("0"), ge=0)
    leave_days: Decimal = Field(default=Decimal("0"), ge=0)
    loan_balance: Decimal = Field(default=Decimal("0"), ge=0)


class FinalPayResponse(BaseModel):
    """Schema for a stored final pay computation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    employee_id: str
    resigned_at: date
    monthly_salary: Decimal
    daily_rate: Decimal
    pro_rated_salary: Decimal
    unpaid_ot: Decimal
    leave_payout: Decimal
    remaining_loan_balance: Decimal
    gross_final_pay: Decimal
    deductions: Decimal
    net_final_pay: Decimal
    status: str
    computed_by: str | None = None
    created_at: datetime


class FinalPayResult(BaseModel):
    computation: FinalPayResponse
    is_new: bool


class EmployeeInput(BaseModel):
    id: str = Field(min_length=1)
    name: str | None = None
    monthly_salary: Decimal = Field(ge=0)
    join_date: date | None = None


class ThirteenthMonthRequest(BaseModel):
    employees: list[EmployeeInput]
    as_of: date | None = None


# ============================================================================
# Pay schedule schemas
# ============================================================================


class PayScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    default_frequency: str
    semi_monthly_first_cutoff: int
    semi_monthly_first_pay_day: int
    semi_monthly_second_pay_day: int
    monthly_pay_day: int
    weekly_pay_day: int
    updated_at: datetime | None = None
    updated_by: str | None = None


class PayScheduleUpdate(BaseModel):
    """Partial update; omitted fields are left as they are."""

    default_frequency: str | None = None
    semi_monthly_first_cutoff: int | None = None
    semi_monthly_first_pay_day: int | None = None
    semi_monthly_second_pay_day: int | None = None
    monthly_pay_day: int | None = None
    weekly_pay_day: int | None = None


class CutoffResponse(BaseModel):
    day: date
    cutoff: str


class ResetResponse(BaseModel):
    payslips: int
