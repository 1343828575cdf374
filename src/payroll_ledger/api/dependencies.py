"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from payroll_ledger.ledger import PayrollLedger
from payroll_ledger.services.directory import EmployeeDirectory


def get_ledger(request: Request) -> PayrollLedger:
    """Ledger instance attached by the app factory."""
    return request.app.state.ledger


def get_directory(request: Request) -> EmployeeDirectory:
    return request.app.state.directory


def get_actor_id(x_actor_id: Annotated[str | None, Header()] = None) -> str:
    """Caller identity for audit attribution; required on attributed operations."""
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID header is required",
        )
    return x_actor_id.strip()


def get_optional_actor_id(x_actor_id: Annotated[str | None, Header()] = None) -> str | None:
    if x_actor_id and x_actor_id.strip():
        return x_actor_id.strip()
    return None


# Type aliases for cleaner dependency injection
Ledger = Annotated[PayrollLedger, Depends(get_ledger)]
Directory = Annotated[EmployeeDirectory, Depends(get_directory)]
ActorId = Annotated[str, Depends(get_actor_id)]
OptionalActorId = Annotated[str | None, Depends(get_optional_actor_id)]
