"""Tests for pay run lifecycle, lock-time pinning and publish cascade."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from payroll_ledger.calculators import DEFAULT_RULE_SET_VERSION
from payroll_ledger.calculators.rule_sets import RULE_SET_2026
from payroll_ledger.exceptions import (
    FrozenRunError,
    PayrollRunNotFoundError,
    PayrollValidationError,
    PayslipNotFoundError,
)
from payroll_ledger.models import PayrollRun
from payroll_ledger.services import run_id_for

RUN_DATE = date(2026, 2, 5)


@pytest.fixture
def two_payslips(ledger, issue):
    """One confirmed and one still-issued payslip on the run date."""
    confirmed = issue(employee_id="EMP-1")
    pending = issue(employee_id="EMP-2")
    ledger.confirm_payslip(confirmed.id)
    return confirmed, pending


class TestCreateDraft:
    def test_membership_defaults_to_payslips_issued_that_day(self, ledger, two_payslips, issue):
        issue(issued_at=date(2026, 2, 20))

        result = ledger.create_draft_run(RUN_DATE)

        assert result.is_new is True
        assert result.record.id == "RUN-2026-02-05"
        assert result.record.status == "draft"
        assert result.record.locked is False
        assert sorted(result.record.payslip_ids) == sorted(p.id for p in two_payslips)

    def test_existing_run_returned(self, ledger, two_payslips):
        ledger.create_draft_run(RUN_DATE)

        again = ledger.create_draft_run(RUN_DATE, payslip_ids=[two_payslips[0].id])

        assert again.is_new is False
        assert len(again.record.payslip_ids) == 2

    def test_explicit_members_deduplicated(self, ledger, two_payslips):
        first = two_payslips[0].id
        result = ledger.create_draft_run(RUN_DATE, payslip_ids=[first, first], run_type="off_cycle")

        assert result.record.payslip_ids == [first]
        assert result.record.run_type == "off_cycle"

    def test_unknown_member_rejected(self, ledger):
        with pytest.raises(PayslipNotFoundError):
            ledger.create_draft_run(RUN_DATE, payslip_ids=["PS-MISSING"])
        assert ledger.list_runs() == []

    def test_unknown_run_type_rejected(self, ledger):
        with pytest.raises(PayrollValidationError):
            ledger.create_draft_run(RUN_DATE, run_type="bonus")

    def test_existing_run_returned_whatever_run_type(self, ledger, two_payslips):
        """Repeating creation for a date is idempotent even with bad arguments."""
        created = ledger.create_draft_run(RUN_DATE).record

        again = ledger.create_draft_run(RUN_DATE, run_type="bonus")

        assert again.is_new is False
        assert again.record.id == created.id
        assert again.record.run_type == "regular"


class TestValidateAndLock:
    def test_validate_synthesizes_run(self, ledger, two_payslips):
        result = ledger.validate_run(RUN_DATE)

        assert result.applied is True
        assert result.status == "validated"
        run = ledger.get_run(RUN_DATE)
        assert run.validated_at is not None
        assert len(run.payslip_ids) == 2

    def test_validate_twice_refused(self, ledger, two_payslips):
        ledger.validate_run(RUN_DATE)
        assert ledger.validate_run(RUN_DATE).applied is False

    def test_lock_synthesizes_and_pins_policy(self, ledger, two_payslips, events):
        """Locking with no run object creates one from the date's payslips."""
        result = ledger.lock_run(RUN_DATE, "ADMIN-1")

        assert result.applied is True
        assert result.previous_status == "draft"
        run = ledger.get_run(RUN_DATE)
        assert run.locked is True
        assert run.status == "locked"
        assert run.locked_at is not None
        assert sorted(run.payslip_ids) == sorted(p.id for p in two_payslips)
        assert run.policy_snapshot == RULE_SET_2026.versions.to_snapshot("ADMIN-1")

        locked = [e for e in events if e.event_type == "PayrollRunLocked"]
        assert len(locked) == 1
        assert locked[0].payslip_count == 2
        assert locked[0].rule_set_version == DEFAULT_RULE_SET_VERSION

    def test_lock_after_validate(self, ledger, two_payslips):
        ledger.validate_run(RUN_DATE)
        result = ledger.lock_run(RUN_DATE, "ADMIN-1")
        assert result.previous_status == "validated"
        assert result.status == "locked"

    def test_relock_keeps_original_snapshot(self, ledger, two_payslips):
        """A second lock with another actor changes nothing."""
        ledger.lock_run(RUN_DATE, "ADMIN-1")

        again = ledger.lock_run(RUN_DATE, "ADMIN-2")

        assert again.applied is False
        assert again.reason == "run is already locked"
        assert ledger.get_run(RUN_DATE).policy_snapshot["locked_by"] == "ADMIN-1"

    def test_membership_frozen_after_lock(self, ledger, two_payslips, issue):
        ledger.lock_run(RUN_DATE, "ADMIN-1")
        late = issue(employee_id="EMP-3")

        ledger.lock_run(RUN_DATE, "ADMIN-1")

        assert late.id not in ledger.get_run(RUN_DATE).payslip_ids

    def test_direct_edit_of_locked_run_rejected(self, ledger, two_payslips):
        ledger.lock_run(RUN_DATE, "ADMIN-1")

        with pytest.raises(FrozenRunError):
            with ledger.session_factory.begin() as session:
                run = session.get(PayrollRun, run_id_for(RUN_DATE))
                run.payslip_ids = []

        assert len(ledger.get_run(RUN_DATE).payslip_ids) == 2

    def test_unlocking_rejected(self, ledger, two_payslips):
        ledger.lock_run(RUN_DATE, "ADMIN-1")

        with pytest.raises(FrozenRunError):
            with ledger.session_factory.begin() as session:
                session.get(PayrollRun, run_id_for(RUN_DATE)).locked = False

    def test_lock_requires_actor(self, ledger, two_payslips):
        with pytest.raises(PayrollValidationError):
            ledger.lock_run(RUN_DATE, " ")

    def test_empty_run_can_lock(self, ledger):
        ledger.lock_run(date(2026, 3, 5), "ADMIN-1")
        assert ledger.get_run(date(2026, 3, 5)).payslip_ids == []


class TestPublishAndPay:
    def test_publish_cascades_confirmed_payslips(self, ledger, two_payslips, events):
        confirmed, pending = two_payslips
        ledger.lock_run(RUN_DATE, "ADMIN-1")

        result = ledger.publish_run(RUN_DATE)

        assert result.applied is True
        assert ledger.get_payslip(confirmed.id).status == "published"
        assert ledger.get_payslip(confirmed.id).published_at is not None
        assert ledger.get_payslip(pending.id).status == "issued"
        assert ledger.get_run(RUN_DATE).published_at is not None

        run_published = [e for e in events if e.event_type == "PayrollRunPublished"]
        assert run_published[0].published_payslip_ids == (confirmed.id,)
        cascaded = [e for e in events if e.event_type == "PayslipPublished"]
        assert [e.via_run_id for e in cascaded] == ["RUN-2026-02-05"]

    def test_publish_requires_lock(self, ledger, two_payslips):
        ledger.validate_run(RUN_DATE)

        result = ledger.publish_run(RUN_DATE)

        assert result.applied is False
        assert ledger.get_payslip(two_payslips[0].id).status == "confirmed"

    def test_publish_unknown_run(self, ledger):
        with pytest.raises(PayrollRunNotFoundError):
            ledger.publish_run(RUN_DATE)

    def test_mark_paid(self, ledger, two_payslips):
        ledger.lock_run(RUN_DATE, "ADMIN-1")
        assert ledger.mark_run_paid(RUN_DATE).applied is False

        ledger.publish_run(RUN_DATE)
        result = ledger.mark_run_paid(RUN_DATE)

        assert result.applied is True
        run = ledger.get_run(RUN_DATE)
        assert run.status == "paid"
        assert run.paid_at is not None
        assert run.locked is True

    def test_list_runs_newest_first(self, ledger):
        ledger.create_draft_run(date(2026, 1, 20))
        ledger.create_draft_run(date(2026, 2, 5))

        assert [r.id for r in ledger.list_runs()] == ["RUN-2026-02-05", "RUN-2026-01-20"]


class TestRuleSetForRun:
    def test_pinned_rule_set_survives_new_tables(self, ledger, two_payslips):
        """A locked run resolves the version it was locked under."""
        ledger.lock_run(RUN_DATE, "ADMIN-1")

        v2 = replace(
            RULE_SET_2026,
            versions=replace(RULE_SET_2026.versions, rule_set="RS-TEST-v2"),
            withholding_quantum=Decimal("0.01"),
        )
        ledger.registry.register(v2)
        ledger.registry.set_current("RS-TEST-v2")

        assert ledger.rule_set_for_run(RUN_DATE) is RULE_SET_2026
        assert ledger.rule_set.version == "RS-TEST-v2"

    def test_unlocked_run_has_no_pinned_rule_set(self, ledger, two_payslips):
        ledger.validate_run(RUN_DATE)
        with pytest.raises(PayrollValidationError):
            ledger.rule_set_for_run(RUN_DATE)

    def test_unknown_run(self, ledger):
        with pytest.raises(PayrollRunNotFoundError):
            ledger.rule_set_for_run(RUN_DATE)
