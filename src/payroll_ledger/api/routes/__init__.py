"""API routes."""

from payroll_ledger.api.routes.adjustments import router as adjustments_router
from payroll_ledger.api.routes.health import router as health_router
from payroll_ledger.api.routes.pay_runs import router as pay_runs_router
from payroll_ledger.api.routes.payslips import router as payslips_router
from payroll_ledger.api.routes.schedule import router as schedule_router
from payroll_ledger.api.routes.settlements import router as settlements_router

__all__ = [
    "adjustments_router",
    "health_router",
    "pay_runs_router",
    "payslips_router",
    "schedule_router",
    "settlements_router",
]
