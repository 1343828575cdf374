"""Payroll run API endpoints."""

from datetime import date

from fastapi import APIRouter, Response, status

from payroll_ledger.api.dependencies import ActorId, Directory, Ledger, OptionalActorId
from payroll_ledger.api.schemas import (
    ErrorResponse,
    PayrollRunCreate,
    PayrollRunCreateResponse,
    PayrollRunResponse,
    RuleSetResponse,
    TransitionResponse,
)
from payroll_ledger.services.export_service import ExportService

router = APIRouter(prefix="/pay-runs", tags=["pay-runs"])


@router.post(
    "",
    response_model=PayrollRunCreateResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def create_draft_run(
    ledger: Ledger,
    payload: PayrollRunCreate,
    response: Response,
) -> PayrollRunCreateResponse:
    """Create a draft run; an existing run for the date is returned unchanged."""
    result = ledger.create_draft_run(payload.run_date, payload.payslip_ids, payload.run_type)
    if result.is_new:
        response.status_code = status.HTTP_201_CREATED
    return PayrollRunCreateResponse(
        run=PayrollRunResponse.model_validate(result.record),
        is_new=result.is_new,
    )


@router.get("", response_model=list[PayrollRunResponse])
def list_runs(ledger: Ledger) -> list[PayrollRunResponse]:
    return [PayrollRunResponse.model_validate(r) for r in ledger.list_runs()]


@router.get(
    "/{run_date}",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_run(ledger: Ledger, run_date: date) -> PayrollRunResponse:
    return PayrollRunResponse.model_validate(ledger.get_run(run_date))


# ============================================================================
# Lifecycle transitions
# ============================================================================


@router.post("/{run_date}/validate", response_model=TransitionResponse)
def validate_run(ledger: Ledger, run_date: date) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.validate_run(run_date))


@router.post("/{run_date}/lock", response_model=TransitionResponse)
def lock_run(ledger: Ledger, actor_id: ActorId, run_date: date) -> TransitionResponse:
    """Freeze membership and pin policy versions; the caller is recorded as locked_by."""
    return TransitionResponse.model_validate(ledger.lock_run(run_date, actor_id))


@router.post(
    "/{run_date}/publish",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def publish_run(ledger: Ledger, actor_id: OptionalActorId, run_date: date) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.publish_run(run_date, actor_id))


@router.post(
    "/{run_date}/paid",
    response_model=TransitionResponse,
    responses={404: {"model": ErrorResponse}},
)
def mark_run_paid(ledger: Ledger, actor_id: OptionalActorId, run_date: date) -> TransitionResponse:
    return TransitionResponse.model_validate(ledger.mark_run_paid(run_date, actor_id))


# ============================================================================
# Audit and export
# ============================================================================


@router.get(
    "/{run_date}/rule-set",
    response_model=RuleSetResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def get_run_rule_set(ledger: Ledger, run_date: date) -> RuleSetResponse:
    """Rule set pinned when the run was locked."""
    rule_set = ledger.rule_set_for_run(run_date)
    versions = rule_set.versions
    return RuleSetResponse(
        version=rule_set.version,
        tax_table=versions.tax_table,
        social_insurance=versions.social_insurance,
        health_insurance=versions.health_insurance,
        housing_fund=versions.housing_fund,
        holiday_calendar=versions.holiday_calendar,
        formula=versions.formula,
    )


@router.get(
    "/{run_date}/bank-file",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}, 204: {"description": "No payslips issued"}},
)
def export_bank_file(ledger: Ledger, directory: Directory, run_date: date) -> Response:
    """CSV payment instructions for every payslip issued on the run date."""
    content = ledger.export_bank_file(run_date, directory)
    if content is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{ExportService.bank_file_name(run_date)}"'
        },
    )
