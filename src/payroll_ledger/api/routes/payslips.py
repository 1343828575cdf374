"""Payslip API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from payroll_ledger.api.dependencies import ActorId, Ledger, OptionalActorId
from payroll_ledger.api.schemas import (
    ErrorResponse,
    PaymentRequest,
    PayslipComputeRequest,
    PayslipIssueRequest,
    PayslipResponse,
    SignRequest,
    TransitionResponse,
)
from payroll_ledger.exceptions import PayrollValidationError

router = APIRouter(prefix="/payslips", tags=["payslips"])

PayslipId = Annotated[str, Path(min_length=1)]


def _many(payslips) -> list[PayslipResponse]:
    return [PayslipResponse.model_validate(p) for p in payslips]


# ============================================================================
# Issuance
# ============================================================================


@router.post(
    "",
    response_model=PayslipResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
def issue_payslip(
    ledger: Ledger,
    actor_id: OptionalActorId,
    payload: PayslipIssueRequest,
) -> PayslipResponse:
    """Issue a payslip; net pay is derived and checked against any supplied figure."""
    payslip = ledger.issue_payslip(actor_id=actor_id, **payload.model_dump())
    return PayslipResponse.model_validate(payslip)


@router.post(
    "/computed",
    response_model=PayslipResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
def issue_computed_payslip(
    ledger: Ledger,
    actor_id: OptionalActorId,
    payload: PayslipComputeRequest,
) -> PayslipResponse:
    """Issue a payslip with statutory deductions from the current rule set."""
    payslip = ledger.issue_computed_payslip(actor_id=actor_id, **payload.model_dump())
    return PayslipResponse.model_validate(payslip)


# ============================================================================
# Queries
# ============================================================================


@router.get("", response_model=list[PayslipResponse], responses={422: {"model": ErrorResponse}})
def list_payslips(
    ledger: Ledger,
    employee_id: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[PayslipResponse]:
    """Payslips for one employee, or in one status."""
    if employee_id:
        payslips = ledger.get_payslips_by_employee(employee_id)
        if status_filter:
            payslips = [p for p in payslips if p.status == status_filter]
        return _many(payslips)
    if status_filter:
        return _many(ledger.get_payslips_by_status(status_filter))
    raise PayrollValidationError("query", "employee_id or status is required")


@router.get("/pending", response_model=list[PayslipResponse])
def list_pending(ledger: Ledger) -> list[PayslipResponse]:
    return _many(ledger.get_pending_payslips())


@router.get("/signed", response_model=list[PayslipResponse])
def list_signed(ledger: Ledger) -> list[PayslipResponse]:
    return _many(ledger.get_signed_payslips())


@router.get("/unsigned-published", response_model=list[PayslipResponse])
def list_unsigned_published(ledger: Ledger) -> list[PayslipResponse]:
    """Published payslips awaiting the employee's signature."""
    return _many(ledger.get_unsigned_published())


@router.get(
    "/{payslip_id}",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_payslip(ledger: Ledger, payslip_id: PayslipId) -> PayslipResponse:
    return PayslipResponse.model_validate(ledger.get_payslip(payslip_id))


# ============================================================================
# Lifecycle transitions
# ============================================================================


@router.post(
    "/{payslip_id}/confirm",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def confirm_payslip(ledger: Ledger, actor_id: OptionalActorId, payslip_id: PayslipId) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.confirm_payslip(payslip_id, actor_id))


@router.post(
    "/{payslip_id}/publish",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def publish_payslip(ledger: Ledger, actor_id: OptionalActorId, payslip_id: PayslipId) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.publish_payslip(payslip_id, actor_id))


@router.post(
    "/{payslip_id}/payment",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def record_payment(
    ledger: Ledger,
    actor_id: OptionalActorId,
    payslip_id: PayslipId,
    payload: PaymentRequest,
) -> TransitionResponse:
    """Mark a published payslip paid; the caller is recorded as confirming finance user."""
    result = ledger.record_payment(
        payslip_id, payload.method, payload.reference, confirmed_by=actor_id
    )
    return TransitionResponse.model_validate(result)


@router.post(
    "/{payslip_id}/sign",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def sign_payslip(
    ledger: Ledger,
    actor_id: OptionalActorId,
    payslip_id: PayslipId,
    payload: SignRequest,
) -> TransitionResponse:
    result = ledger.sign_payslip(payslip_id, payload.signature_artifact, actor_id)
    return TransitionResponse.model_validate(result)


@router.post(
    "/{payslip_id}/acknowledge",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def acknowledge_payslip(ledger: Ledger, actor_id: ActorId, payslip_id: PayslipId) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.acknowledge_payslip(payslip_id, actor_id))
