"""Pytest fixtures for payroll ledger tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from payroll_ledger.api.app import create_app
from payroll_ledger.calculators import RuleSetRegistry
from payroll_ledger.database import create_schema, create_session_factory, get_engine
from payroll_ledger.events import DomainEvent
from payroll_ledger.ledger import PayrollLedger
from payroll_ledger.models import Payslip
from payroll_ledger.services.directory import EmployeeRecord, InMemoryEmployeeDirectory

# Shared in-memory SQLite; each test gets a fresh engine
TEST_DATABASE_URL = "sqlite://"

RUN_DATE = date(2026, 2, 5)
PERIOD_START = date(2026, 1, 16)
PERIOD_END = date(2026, 1, 31)

# 30000 gross + 1000 allowances - 3600 deductions = 27400
SCENARIO_DEDUCTIONS = {
    "social_insurance": Decimal("1350"),
    "health_insurance": Decimal("750"),
    "housing_fund": Decimal("100"),
    "withholding_tax": Decimal("1400"),
}


@pytest.fixture
def engine():
    """Create test database engine with the ledger schema."""
    engine = get_engine(TEST_DATABASE_URL)
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory):
    """Session for tests that drive services directly; rolled back afterwards."""
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def ledger(session_factory) -> PayrollLedger:
    """Ledger on a private registry so tests never touch the process default."""
    return PayrollLedger(session_factory, registry=RuleSetRegistry(), allow_reset=True)


@pytest.fixture
def events(ledger) -> list[DomainEvent]:
    """Every event the ledger dispatches, in order."""
    received: list[DomainEvent] = []
    ledger.emitter.on_all(received.append)
    return received


@pytest.fixture
def directory() -> InMemoryEmployeeDirectory:
    return InMemoryEmployeeDirectory([
        EmployeeRecord(
            "EMP-1",
            "Maria Santos",
            Decimal("36000"),
            date(2023, 5, 1),
            account_reference="ACCT-0001",
        ),
        EmployeeRecord("EMP-2", "Jose Reyes", Decimal("24000"), date(2026, 3, 2)),
    ])


@pytest.fixture
def client(ledger, directory) -> Iterator[TestClient]:
    app = create_app(ledger=ledger, directory=directory)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def issue(ledger):
    """Issue a payslip with the scenario figures; keyword overrides apply."""

    def _issue(**overrides) -> Payslip:
        kwargs = {
            "employee_id": "EMP-1",
            "period_start": PERIOD_START,
            "period_end": PERIOD_END,
            "gross_pay": Decimal("30000"),
            "allowances": Decimal("1000"),
            "deductions": dict(SCENARIO_DEDUCTIONS),
            "issued_at": RUN_DATE,
        }
        kwargs.update(overrides)
        return ledger.issue_payslip(**kwargs)

    return _issue


@pytest.fixture
def paid_payslip(ledger, issue) -> Payslip:
    """A payslip walked through to paid."""
    payslip = issue()
    ledger.confirm_payslip(payslip.id)
    ledger.publish_payslip(payslip.id)
    ledger.record_payment(payslip.id, "bank_transfer", "REF-1", confirmed_by="FIN-1")
    return ledger.get_payslip(payslip.id)
