"""Tests for payslip issuance and lifecycle transitions."""

from datetime import date
from decimal import Decimal

import pytest

from payroll_ledger.exceptions import (
    ImmutablePayslipError,
    NetPayMismatchError,
    PayrollValidationError,
    PayslipNotFoundError,
)
from payroll_ledger.models import Payslip

RUN_DATE = date(2026, 2, 5)
PERIOD_START = date(2026, 1, 16)
PERIOD_END = date(2026, 1, 31)


class TestIssue:
    """Payslip issuance."""

    def test_net_pay_derived(self, issue):
        """30000 + 1000 - 3600 = 27400, status issued."""
        payslip = issue()

        assert payslip.net_pay == Decimal("27400")
        assert payslip.total_deductions == Decimal("3600")
        assert payslip.status == "issued"
        assert payslip.kind == "regular"
        assert payslip.id.startswith("PS-")
        assert payslip.other_deductions == Decimal("0")

    def test_matching_net_pay_accepted(self, issue):
        payslip = issue(net_pay=Decimal("27400.00"))
        assert payslip.net_pay == Decimal("27400")

    def test_net_pay_mismatch_rejected(self, ledger, issue):
        with pytest.raises(NetPayMismatchError) as exc_info:
            issue(net_pay=Decimal("27000"))

        assert exc_info.value.expected == Decimal("27400")
        assert ledger.get_pending_payslips() == []

    def test_issued_at_defaults_to_today(self, issue):
        payslip = issue(issued_at=None)
        assert payslip.issued_at == date.today()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"gross_pay": Decimal("-1")},
            {"allowances": Decimal("-0.01")},
            {"deductions": {"withholding_tax": Decimal("-5")}},
            {"deductions": {"union_dues": Decimal("5")}},
            {"employee_id": "  "},
            {"period_start": PERIOD_END, "period_end": PERIOD_START},
            {"gross_pay": "not-a-number"},
        ],
    )
    def test_malformed_input_rejected(self, ledger, issue, overrides):
        """Validation fails before anything is written."""
        with pytest.raises(PayrollValidationError):
            issue(**overrides)
        assert ledger.get_payslips_by_employee("EMP-1") == []

    def test_computed_deductions(self, ledger):
        """Statutory deductions come from the current rule set."""
        payslip = ledger.issue_computed_payslip(
            employee_id="EMP-1",
            period_start=PERIOD_START,
            period_end=PERIOD_END,
            gross_pay=Decimal("30000"),
            loan_deduction=Decimal("500"),
            issued_at=RUN_DATE,
        )

        assert payslip.social_insurance == Decimal("1350")
        assert payslip.health_insurance == Decimal("750")
        assert payslip.housing_fund == Decimal("100")
        assert payslip.withholding_tax == Decimal("1045")
        assert payslip.loan_deduction == Decimal("500")
        assert payslip.net_pay == Decimal("26255")


class TestLifecycle:
    """issued → confirmed → published → paid → acknowledged."""

    def test_full_scenario(self, ledger, issue):
        payslip = issue()

        assert ledger.confirm_payslip(payslip.id).status == "confirmed"
        assert ledger.publish_payslip(payslip.id).status == "published"

        paid = ledger.record_payment(payslip.id, "bank_transfer", "REF-1")
        assert paid.applied is True
        assert paid.status == "paid"

        signed = ledger.sign_payslip(payslip.id, "sig-data")
        assert signed.applied is True
        assert signed.status == "paid"
        assert ledger.get_payslip(payslip.id).signed_at is not None

        acked = ledger.acknowledge_payslip(payslip.id, "EMP-1")
        assert acked.applied is True
        assert acked.status == "acknowledged"

        stored = ledger.get_payslip(payslip.id)
        assert stored.status == "acknowledged"
        assert stored.acknowledged_by == "EMP-1"
        assert stored.payment_method == "bank_transfer"
        assert stored.payment_reference == "REF-1"
        assert stored.confirmed_at is not None
        assert stored.published_at is not None
        assert stored.paid_at is not None

    def test_out_of_order_transition_is_refused(self, ledger, issue):
        """Publishing an issued payslip leaves it untouched."""
        payslip = issue()

        result = ledger.publish_payslip(payslip.id)

        assert result.applied is False
        assert result.status == "issued"
        assert "issued" in result.reason
        stored = ledger.get_payslip(payslip.id)
        assert stored.status == "issued"
        assert stored.published_at is None

    def test_confirm_twice_is_noop(self, ledger, issue):
        payslip = issue()
        ledger.confirm_payslip(payslip.id)
        first_stamp = ledger.get_payslip(payslip.id).confirmed_at

        again = ledger.confirm_payslip(payslip.id)

        assert again.applied is False
        assert ledger.get_payslip(payslip.id).confirmed_at == first_stamp

    def test_payment_confirmation_recorded(self, paid_payslip):
        assert paid_payslip.paid_confirmed_by == "FIN-1"
        assert paid_payslip.paid_confirmed_at is not None

    def test_payment_requires_reference(self, ledger, issue):
        payslip = issue()
        with pytest.raises(PayrollValidationError):
            ledger.record_payment(payslip.id, "bank_transfer", "")

    def test_unknown_payslip(self, ledger):
        with pytest.raises(PayslipNotFoundError):
            ledger.confirm_payslip("PS-MISSING")
        with pytest.raises(PayslipNotFoundError):
            ledger.get_payslip("PS-MISSING")


class TestSignAndAcknowledge:
    """Signature and acknowledgement guards."""

    def test_sign_before_publish_refused(self, ledger, issue):
        payslip = issue()
        ledger.confirm_payslip(payslip.id)

        result = ledger.sign_payslip(payslip.id, "sig-data")

        assert result.applied is False
        assert ledger.get_payslip(payslip.id).signed_at is None

    def test_sign_published_keeps_status(self, ledger, issue):
        payslip = issue()
        ledger.confirm_payslip(payslip.id)
        ledger.publish_payslip(payslip.id)

        result = ledger.sign_payslip(payslip.id, "sig-data")

        assert result.applied is True
        stored = ledger.get_payslip(payslip.id)
        assert stored.status == "published"
        assert stored.signature_artifact == "sig-data"

    def test_second_signature_refused(self, ledger, paid_payslip):
        ledger.sign_payslip(paid_payslip.id, "first")

        result = ledger.sign_payslip(paid_payslip.id, "second")

        assert result.applied is False
        assert result.reason == "payslip is already signed"
        assert ledger.get_payslip(paid_payslip.id).signature_artifact == "first"

    def test_acknowledge_requires_signature(self, ledger, paid_payslip):
        result = ledger.acknowledge_payslip(paid_payslip.id, "EMP-1")

        assert result.applied is False
        assert result.reason == "payslip must be signed before acknowledgement"
        assert ledger.get_payslip(paid_payslip.id).status == "paid"

    def test_acknowledge_requires_paid(self, ledger, issue):
        payslip = issue()
        ledger.confirm_payslip(payslip.id)
        ledger.publish_payslip(payslip.id)
        ledger.sign_payslip(payslip.id, "sig-data")

        result = ledger.acknowledge_payslip(payslip.id, "EMP-1")

        assert result.applied is False
        assert ledger.get_payslip(payslip.id).acknowledged_at is None

    def test_acknowledge_twice_refused(self, ledger, paid_payslip):
        ledger.sign_payslip(paid_payslip.id, "sig-data")
        ledger.acknowledge_payslip(paid_payslip.id, "EMP-1")

        again = ledger.acknowledge_payslip(paid_payslip.id, "HR-1")

        assert again.applied is False
        assert ledger.get_payslip(paid_payslip.id).acknowledged_by == "EMP-1"


class TestPaidImmutability:
    """Monetary fields freeze once a payslip is paid."""

    def test_direct_edit_of_paid_money_rejected(self, ledger, paid_payslip):
        with pytest.raises(ImmutablePayslipError) as exc_info:
            with ledger.session_factory.begin() as session:
                payslip = session.get(Payslip, paid_payslip.id)
                payslip.net_pay = Decimal("1")

        assert exc_info.value.fields == ["net_pay"]
        assert ledger.get_payslip(paid_payslip.id).net_pay == Decimal("27400")

    def test_non_monetary_fields_still_editable(self, ledger, paid_payslip):
        with ledger.session_factory.begin() as session:
            session.get(Payslip, paid_payslip.id).notes = "reissued copy sent"

        assert ledger.get_payslip(paid_payslip.id).notes == "reissued copy sent"

    def test_unpaid_money_editable(self, ledger, issue):
        payslip = issue()
        with ledger.session_factory.begin() as session:
            stored = session.get(Payslip, payslip.id)
            stored.allowances = Decimal("0")
            stored.net_pay = Decimal("26400")

        assert ledger.get_payslip(payslip.id).net_pay == Decimal("26400")


class TestQueries:
    def test_by_status_and_pending(self, ledger, issue):
        first = issue()
        second = issue(employee_id="EMP-2")
        ledger.confirm_payslip(second.id)

        assert [p.id for p in ledger.get_pending_payslips()] == [first.id]
        assert [p.id for p in ledger.get_payslips_by_status("confirmed")] == [second.id]

    def test_unknown_status_rejected(self, ledger):
        with pytest.raises(PayrollValidationError):
            ledger.get_payslips_by_status("voided")

    def test_signed_and_unsigned_published(self, ledger, issue):
        signed = issue()
        unsigned = issue(employee_id="EMP-2")
        for payslip in (signed, unsigned):
            ledger.confirm_payslip(payslip.id)
            ledger.publish_payslip(payslip.id)
        ledger.sign_payslip(signed.id, "sig-data")

        assert [p.id for p in ledger.get_signed_payslips()] == [signed.id]
        assert [p.id for p in ledger.get_unsigned_published()] == [unsigned.id]

    def test_by_employee_newest_first(self, ledger, issue):
        older = issue(issued_at=date(2026, 1, 20))
        newer = issue(issued_at=date(2026, 2, 5))

        assert [p.id for p in ledger.get_payslips_by_employee("EMP-1")] == [newer.id, older.id]
