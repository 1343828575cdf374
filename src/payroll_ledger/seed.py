"""Demo seed data: first-cutoff January 2026 payslips and their employees."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from payroll_ledger.models import PayScheduleConfig, Payslip
from payroll_ledger.services.directory import EmployeeRecord, InMemoryEmployeeDirectory

SEED_PERIOD_START = date(2026, 1, 1)
SEED_PERIOD_END = date(2026, 1, 15)
SEED_ISSUED_AT = date(2026, 1, 20)

SEED_EMPLOYEES = (
    EmployeeRecord("EMP001", "Olivia Harper", Decimal("95000"), date(2023, 3, 15)),
    EmployeeRecord("EMP002", "Ethan Brooks", Decimal("105000"), date(2022, 7, 1)),
    EmployeeRecord("EMP003", "Sophia Patel", Decimal("88000"), date(2023, 1, 10)),
    EmployeeRecord("EMP004", "Liam Chen", Decimal("110000"), date(2021, 9, 20)),
    EmployeeRecord("EMP005", "Ava Martinez", Decimal("115000"), date(2022, 4, 12)),
    EmployeeRecord("EMP010", "Lucas Taylor", Decimal("120000"), date(2020, 2, 14)),
    EmployeeRecord("EMP011", "Charlotte Davis", Decimal("95000"), date(2021, 6, 1)),
    EmployeeRecord("EMP016", "Alexander Brown", Decimal("100000"), date(2023, 1, 5)),
    EmployeeRecord("EMP026", "Sam Torres", Decimal("88000"), date(2024, 1, 10)),
)

# (id, employee, gross, social, health, housing, tax, net, confirmed day)
SEED_PAYSLIPS = (
    ("PS001", "EMP001", "47500", "1350", "2375", "100", "10844", "32831", 21),
    ("PS002", "EMP002", "52500", "1350", "2625", "100", "12606", "35819", 22),
    ("PS003", "EMP003", "44000", "1350", "2200", "100", "9588", "30762", 21),
    ("PS004", "EMP004", "55000", "1350", "2750", "100", "13581", "37219", 21),
    ("PS005", "EMP005", "57500", "1350", "2875", "100", "14294", "38881", 23),
    ("PS006", "EMP010", "60000", "1350", "2500", "100", "15513", "40537", 21),
    ("PS007", "EMP011", "47500", "1350", "2375", "100", "10844", "32831", 21),
    ("PS008", "EMP016", "50000", "1350", "2500", "100", "11763", "34287", 21),
    ("PS009", "EMP026", "44000", "1350", "2200", "100", "9588", "30762", 21),
)

SEED_PUBLISHED_AT = datetime(2026, 1, 24, 9, 0, tzinfo=timezone.utc)


def seed_directory() -> InMemoryEmployeeDirectory:
    return InMemoryEmployeeDirectory(SEED_EMPLOYEES)


def seed_payslips() -> list[Payslip]:
    payslips = []
    for ps_id, employee_id, gross, social, health, housing, tax, net, confirmed_day in SEED_PAYSLIPS:
        payslips.append(
            Payslip(
                id=ps_id,
                employee_id=employee_id,
                period_start=SEED_PERIOD_START,
                period_end=SEED_PERIOD_END,
                gross_pay=Decimal(gross),
                allowances=Decimal("0"),
                social_insurance=Decimal(social),
                health_insurance=Decimal(health),
                housing_fund=Decimal(housing),
                withholding_tax=Decimal(tax),
                other_deductions=Decimal("0"),
                loan_deduction=Decimal("0"),
                net_pay=Decimal(net),
                issued_at=SEED_ISSUED_AT,
                status="published",
                confirmed_at=datetime(2026, 1, confirmed_day, 9, 0, tzinfo=timezone.utc),
                published_at=SEED_PUBLISHED_AT,
            )
        )
    return payslips


def load_seed(session: Session) -> int:
    """Insert the seed payslips and default pay schedule. Returns payslip count."""
    payslips = seed_payslips()
    session.add_all(payslips)
    if session.get(PayScheduleConfig, 1) is None:
        session.add(PayScheduleConfig.defaults())
    session.flush()
    return len(payslips)
