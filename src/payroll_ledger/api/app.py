"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_ledger.api.routes import (
    adjustments_router,
    health_router,
    pay_runs_router,
    payslips_router,
    schedule_router,
    settlements_router,
)
from payroll_ledger.config import configure_logging, get_settings
from payroll_ledger.exceptions import (
    ConcurrentModificationError,
    FrozenRunError,
    ImmutablePayslipError,
    NotFoundError,
    PayrollLedgerError,
    PayrollValidationError,
    ResetNotAllowedError,
)
from payroll_ledger.ledger import PayrollLedger
from payroll_ledger.seed import seed_directory
from payroll_ledger.services.directory import EmployeeDirectory

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS: tuple[tuple[type[PayrollLedgerError], int], ...] = (
    (PayrollValidationError, 422),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ImmutablePayslipError, status.HTTP_409_CONFLICT),
    (FrozenRunError, status.HTTP_409_CONFLICT),
    (ConcurrentModificationError, status.HTTP_409_CONFLICT),
    (ResetNotAllowedError, status.HTTP_403_FORBIDDEN),
)


def status_for(exc: PayrollLedgerError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def create_app(
    ledger: PayrollLedger | None = None,
    directory: EmployeeDirectory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit ledger one is built from environment settings.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Payroll Ledger API",
        description="Payslip lifecycle, payroll runs, adjustments, and settlements",
        version="0.1.0",
    )
    app.state.ledger = ledger if ledger is not None else PayrollLedger.from_settings(settings)
    app.state.directory = directory if directory is not None else seed_directory()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollLedgerError)
    async def ledger_error_handler(request: Request, exc: PayrollLedgerError) -> JSONResponse:
        """Map ledger errors to status codes with a stable error code."""
        status_code = status_for(exc)
        if status_code == status.HTTP_409_CONFLICT:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    for router in (
        payslips_router,
        pay_runs_router,
        adjustments_router,
        settlements_router,
        schedule_router,
    ):
        app.include_router(router, prefix="/api/v1")

    return app
