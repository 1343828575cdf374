"""Pay schedule and maintenance endpoints."""

from datetime import date

from fastapi import APIRouter

from payroll_ledger.api.dependencies import Ledger, OptionalActorId
from payroll_ledger.api.schemas import (
    CutoffResponse,
    ErrorResponse,
    PayScheduleResponse,
    PayScheduleUpdate,
    ResetResponse,
)

router = APIRouter(tags=["schedule"])


@router.get("/pay-schedule", response_model=PayScheduleResponse)
def get_pay_schedule(ledger: Ledger) -> PayScheduleResponse:
    return PayScheduleResponse.model_validate(ledger.get_pay_schedule())


@router.patch(
    "/pay-schedule",
    response_model=PayScheduleResponse,
    responses={422: {"model": ErrorResponse}},
)
def update_pay_schedule(
    ledger: Ledger,
    actor_id: OptionalActorId,
    payload: PayScheduleUpdate,
) -> PayScheduleResponse:
    """Change the fields present in the body; the rest keep their values."""
    config = ledger.update_pay_schedule(payload.model_dump(exclude_unset=True), updated_by=actor_id)
    return PayScheduleResponse.model_validate(config)


@router.get("/pay-schedule/cutoff", response_model=CutoffResponse)
def get_cutoff(ledger: Ledger, day: date) -> CutoffResponse:
    """Which semi-monthly cutoff a date falls in."""
    return CutoffResponse(day=day, cutoff=ledger.cutoff_for(day))


@router.post(
    "/admin/reset",
    response_model=ResetResponse,
    responses={403: {"model": ErrorResponse}},
)
def reset_to_seed(ledger: Ledger) -> ResetResponse:
    """Wipe the ledger and reload demo data. Disabled unless ALLOW_RESET is set."""
    return ResetResponse(payslips=ledger.reset_to_seed())
