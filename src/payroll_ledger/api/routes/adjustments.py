"""Adjustment API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from payroll_ledger.api.dependencies import ActorId, Ledger, OptionalActorId
from payroll_ledger.api.schemas import (
    AdjustmentApplyRequest,
    AdjustmentCreate,
    AdjustmentResponse,
    ErrorResponse,
    TransitionResponse,
)

router = APIRouter(prefix="/adjustments", tags=["adjustments"])


@router.post(
    "",
    response_model=AdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
def create_adjustment(ledger: Ledger, actor_id: ActorId, payload: AdjustmentCreate) -> AdjustmentResponse:
    """Propose a correction; it starts pending."""
    adjustment = ledger.create_adjustment(created_by=actor_id, **payload.model_dump())
    return AdjustmentResponse.model_validate(adjustment)


@router.get("", response_model=list[AdjustmentResponse])
def list_adjustments(
    ledger: Ledger,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[AdjustmentResponse]:
    return [AdjustmentResponse.model_validate(a) for a in ledger.list_adjustments(status_filter)]


@router.get(
    "/{adjustment_id}",
    response_model=AdjustmentResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_adjustment(ledger: Ledger, adjustment_id: str) -> AdjustmentResponse:
    return AdjustmentResponse.model_validate(ledger.get_adjustment(adjustment_id))


@router.post(
    "/{adjustment_id}/approve",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def approve_adjustment(ledger: Ledger, actor_id: ActorId, adjustment_id: str) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.approve_adjustment(adjustment_id, actor_id))


@router.post(
    "/{adjustment_id}/reject",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def reject_adjustment(ledger: Ledger, actor_id: ActorId, adjustment_id: str) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.reject_adjustment(adjustment_id, actor_id))


@router.post(
    "/{adjustment_id}/apply",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def apply_adjustment(
    ledger: Ledger,
    actor_id: OptionalActorId,
    adjustment_id: str,
    payload: AdjustmentApplyRequest,
) -> TransitionResponse:
    """Mint the correction payslip for an approved adjustment."""
    result = ledger.apply_adjustment(
        adjustment_id,
        payload.target_run_id,
        applied_on=payload.applied_on,
        actor_id=actor_id,
    )
    return TransitionResponse.model_validate(result)
