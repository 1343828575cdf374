"""Final pay and 13th-month endpoints."""

from fastapi import APIRouter, Response, status

from payroll_ledger.api.dependencies import Ledger, OptionalActorId
from payroll_ledger.api.schemas import (
    ErrorResponse,
    FinalPayRequest,
    FinalPayResponse,
    FinalPayResult,
    PayslipResponse,
    ThirteenthMonthRequest,
)
from payroll_ledger.services.directory import EmployeeRecord

router = APIRouter(tags=["settlements"])


@router.post(
    "/final-pay",
    response_model=FinalPayResult,
    responses={422: {"model": ErrorResponse}},
)
def compute_final_pay(
    ledger: Ledger,
    actor_id: OptionalActorId,
    payload: FinalPayRequest,
    response: Response,
) -> FinalPayResult:
    """Settle a separating employee; repeats return the stored result."""
    result = ledger.compute_final_pay(computed_by=actor_id, **payload.model_dump())
    if result.is_new:
        response.status_code = status.HTTP_201_CREATED
    return FinalPayResult(
        computation=FinalPayResponse.model_validate(result.record),
        is_new=result.is_new,
    )


@router.get("/final-pay", response_model=list[FinalPayResponse])
def list_final_pay(ledger: Ledger) -> list[FinalPayResponse]:
    return [FinalPayResponse.model_validate(r) for r in ledger.list_final_pay()]


@router.get(
    "/final-pay/{employee_id}",
    response_model=FinalPayResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_final_pay(ledger: Ledger, employee_id: str) -> FinalPayResponse:
    return FinalPayResponse.model_validate(ledger.get_final_pay(employee_id))


@router.post(
    "/thirteenth-month",
    response_model=list[PayslipResponse],
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
def generate_thirteenth_month(
    ledger: Ledger,
    actor_id: OptionalActorId,
    payload: ThirteenthMonthRequest,
) -> list[PayslipResponse]:
    """Issue 13th-month payslips; employees with nothing accrued are skipped."""
    employees = [
        EmployeeRecord(
            id=e.id,
            name=e.name,
            monthly_salary=e.monthly_salary,
            join_date=e.join_date,
        )
        for e in payload.employees
    ]
    payslips = ledger.generate_thirteenth_month(employees, as_of=payload.as_of, actor_id=actor_id)
    return [PayslipResponse.model_validate(p) for p in payslips]
