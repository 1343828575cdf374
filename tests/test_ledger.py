"""Tests for the ledger facade: construction, seed data and reset."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from payroll_ledger.calculators import RuleSetRegistry
from payroll_ledger.config import Settings
from payroll_ledger.events import PayslipConfirmed
from payroll_ledger.exceptions import ConcurrentModificationError, ResetNotAllowedError
from payroll_ledger.ledger import PayrollLedger
from payroll_ledger.services import AdjustmentService, PayslipService
from payroll_ledger.seed import SEED_PAYSLIPS, seed_directory
from scripts.load_seed import SeedRefusedError, load


def _settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite://",
        "rule_set_version": "RS-DEFAULT-v1",
        "host": "127.0.0.1",
        "port": 8000,
        "debug": False,
        "allow_reset": False,
        "log_level": "INFO",
    }
    values.update(overrides)
    return Settings(**values)


class TestConstruction:
    def test_from_settings_creates_schema(self):
        ledger = PayrollLedger.from_settings(_settings(), registry=RuleSetRegistry())

        assert ledger.list_runs() == []
        assert ledger.allow_reset is False
        assert ledger.rule_set.version == "RS-DEFAULT-v1"


class TestSeedAndReset:
    def test_reset_loads_seed(self, ledger, issue):
        issue()
        ledger.create_adjustment(
            payroll_run_id="RUN-2026-02-05",
            employee_id="EMP-1",
            adjustment_type="earnings",
            reference_payslip_id="PS001",
            amount=Decimal("100"),
            reason="Test",
            created_by="HR-1",
        )

        count = ledger.reset_to_seed()

        assert count == len(SEED_PAYSLIPS) == 9
        assert ledger.get_payslips_by_employee("EMP-1") == []
        assert ledger.list_adjustments() == []
        published = ledger.get_payslips_by_status("published")
        assert len(published) == 9
        for payslip in published:
            assert payslip.issued_at == date(2026, 1, 20)
            assert payslip.confirmed_at is not None
            assert payslip.published_at is not None
        assert ledger.get_pay_schedule().semi_monthly_first_cutoff == 15

    def test_seed_payslips_satisfy_net_pay_identity(self, ledger):
        ledger.reset_to_seed()

        for payslip in ledger.get_payslips_by_status("published"):
            assert payslip.net_pay == payslip.gross_pay + payslip.allowances - payslip.total_deductions

    def test_reset_twice(self, ledger):
        ledger.reset_to_seed()
        assert ledger.reset_to_seed() == 9

    def test_reset_disabled(self, session_factory):
        ledger = PayrollLedger(session_factory, registry=RuleSetRegistry())
        with pytest.raises(ResetNotAllowedError):
            ledger.reset_to_seed()

    def test_seed_directory_covers_seed_payslips(self):
        directory = seed_directory()
        for _, employee_id, *_ in SEED_PAYSLIPS:
            assert directory.get(employee_id) is not None
        assert directory.get("EMP-UNKNOWN") is None

    def test_seed_run_locks_and_exports(self, ledger):
        """The seed date forms a run whose bank file lists every seed payslip."""
        ledger.reset_to_seed()

        ledger.lock_run(date(2026, 1, 20), "ADMIN-1")
        content = ledger.export_bank_file(date(2026, 1, 20), seed_directory())

        assert len(ledger.get_run(date(2026, 1, 20)).payslip_ids) == 9
        assert len(content.splitlines()) == 10
        assert "Olivia Harper" in content


class TestLoadSeedScript:
    """The developer seed loader."""

    def test_loads_into_empty_database(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'ledger.db'}"

        assert load(url) == 9

    def test_refuses_populated_database(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'ledger.db'}"
        load(url)

        with pytest.raises(SeedRefusedError):
            load(url)

    def test_reset_replaces_existing_rows(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'ledger.db'}"
        load(url)

        assert load(url, reset=True) == 9


@pytest.fixture
def file_ledger(tmp_path):
    """Ledger on a SQLite file, so every session gets its own connection."""
    settings = _settings(database_url=f"sqlite:///{tmp_path / 'ledger.db'}")
    ledger = PayrollLedger.from_settings(settings, registry=RuleSetRegistry())
    yield ledger
    ledger.session_factory.kw["bind"].dispose()


def _issue(ledger: PayrollLedger):
    return ledger.issue_payslip(
        employee_id="EMP-1",
        period_start=date(2026, 1, 16),
        period_end=date(2026, 1, 31),
        gross_pay=Decimal("30000"),
        allowances=Decimal("1000"),
        issued_at=date(2026, 2, 5),
    )


class TestConcurrentWriters:
    """Two writers racing on one aggregate: exactly one write lands."""

    def test_second_confirm_fails_on_version(self, file_ledger):
        payslip = _issue(file_ledger)

        with file_ledger.session_factory() as racing:
            assert PayslipService(racing).confirm(payslip.id, "HR-1").applied is True
            assert file_ledger.confirm_payslip(payslip.id, "HR-2").applied is True

            with pytest.raises(StaleDataError):
                racing.commit()

        assert file_ledger.get_payslip(payslip.id).status == "confirmed"

    def test_losing_transaction_maps_to_conflict(self, file_ledger):
        payslip = _issue(file_ledger)
        confirmed = []
        file_ledger.emitter.on(PayslipConfirmed, confirmed.append)

        with pytest.raises(ConcurrentModificationError):
            with file_ledger.transaction() as (session, batch):
                PayslipService(session, batch).confirm(payslip.id, "HR-1")
                file_ledger.confirm_payslip(payslip.id, "HR-2")

        assert [e.metadata.actor_id for e in confirmed] == ["HR-2"]
        assert file_ledger.get_payslip(payslip.id).status == "confirmed"

    def test_second_apply_mints_no_second_correction(self, file_ledger):
        payslip = _issue(file_ledger)
        adjustment = file_ledger.create_adjustment(
            payroll_run_id="RUN-2026-02-05",
            employee_id="EMP-1",
            adjustment_type="earnings",
            reference_payslip_id=payslip.id,
            amount=Decimal("500"),
            reason="Missed overtime",
            created_by="HR-1",
        )
        file_ledger.approve_adjustment(adjustment.id, "MGR-1")

        with pytest.raises(ConcurrentModificationError):
            with file_ledger.transaction() as (session, batch):
                service = AdjustmentService(session, batch)
                assert service.get(adjustment.id).status == "approved"
                file_ledger.apply_adjustment(adjustment.id, "RUN-2026-02-20", applied_on=date(2026, 2, 20))
                service.apply(adjustment.id, "RUN-2026-02-20", applied_on=date(2026, 2, 20))

        corrections = [p for p in file_ledger.get_payslips_by_employee("EMP-1") if p.kind == "correction"]
        assert len(corrections) == 1
        stored = file_ledger.get_adjustment(adjustment.id)
        assert stored.status == "applied"
        assert stored.correction_payslip_id == corrections[0].id
