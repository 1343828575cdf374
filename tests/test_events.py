"""Tests for ledger domain events.

Tests verify:
1. Event types are structured and serializable
2. The emitter routes to matching handlers only
3. Events are dispatched after commit and discarded on rollback
4. Handler errors are isolated
"""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.orm.exc import StaleDataError

from payroll_ledger.events import (
    AdjustmentApproved,
    EventCategory,
    EventEmitter,
    EventMetadata,
    PayrollRunLocked,
    PayslipConfirmed,
    PayslipIssued,
)
from payroll_ledger.exceptions import ConcurrentModificationError
from payroll_ledger.services import PayslipService


def _confirmed(payslip_id="PS-1"):
    return PayslipConfirmed(
        metadata=EventMetadata.create(actor_id="HR-1"),
        payslip_id=payslip_id,
        employee_id="EMP-1",
    )


class TestEventTypes:
    def test_metadata_auto_generates_fields(self):
        correlation_id = uuid4()
        meta = EventMetadata.create(correlation_id=correlation_id, actor_id="HR-1")

        assert meta.event_id is not None
        assert meta.timestamp.tzinfo is not None
        assert meta.correlation_id == correlation_id
        assert meta.source_service == "payroll_ledger"
        assert meta.version == 1

    def test_event_is_immutable(self):
        event = _confirmed()
        with pytest.raises(AttributeError):
            event.payslip_id = "PS-2"

    def test_categories(self):
        meta = EventMetadata.create()
        assert _confirmed().category == EventCategory.PAYSLIP
        assert (
            PayrollRunLocked(
                metadata=meta,
                run_id="RUN-2026-02-05",
                run_date=date(2026, 2, 5),
                payslip_count=2,
                rule_set_version="RS-DEFAULT-v1",
                locked_by="ADMIN-1",
            ).category
            == EventCategory.PAYROLL_RUN
        )
        assert (
            AdjustmentApproved(
                metadata=meta, adjustment_id="ADJ-1", employee_id="EMP-1", approved_by="MGR-1"
            ).category
            == EventCategory.ADJUSTMENT
        )

    def test_serialization(self):
        event = PayslipIssued(
            metadata=EventMetadata.create(),
            payslip_id="PS-1",
            employee_id="EMP-1",
            net_pay=Decimal("27400.00"),
            issued_at=date(2026, 2, 5),
        )

        data = json.loads(event.to_json())

        assert data["event_type"] == "PayslipIssued"
        assert data["category"] == "payslip"
        assert data["net_pay"] == "27400.00"
        assert data["issued_at"] == "2026-02-05"
        assert isinstance(data["metadata"]["event_id"], str)


class TestEventEmitter:
    def test_type_filter(self):
        emitter = EventEmitter()
        received = []
        emitter.on(PayslipIssued, received.append)

        emitter.emit(_confirmed())

        assert received == []

    def test_category_and_list_registration(self):
        emitter = EventEmitter()
        by_category, by_types = [], []
        emitter.on_category(EventCategory.PAYSLIP, by_category.append)
        emitter.on([PayslipIssued, PayslipConfirmed], by_types.append)

        event = _confirmed()
        emitter.emit(event)

        assert by_category == [event]
        assert by_types == [event]

    def test_off(self):
        emitter = EventEmitter()
        received = []

        def handler(event):
            received.append(event)

        emitter.on_all(handler)
        emitter.off(handler)

        emitter.emit(_confirmed())

        assert received == []

    def test_handler_errors_isolated(self):
        emitter = EventEmitter()
        received = []

        def broken(event):
            raise RuntimeError("notification service down")

        emitter.on_all(broken)
        emitter.on_all(received.append)

        errors = emitter.emit(_confirmed())

        assert len(errors) == 1
        assert isinstance(errors[0], RuntimeError)
        assert len(received) == 1

    def test_batch_holds_until_exit(self):
        emitter = EventEmitter()
        received = []
        emitter.on_all(received.append)

        with emitter.batch() as batch:
            batch.add(_confirmed())
            assert received == []
            assert len(batch.pending) == 1

        assert len(received) == 1
        assert batch.errors == []
        assert batch.pending == []

    def test_batch_discarded_on_exception(self):
        emitter = EventEmitter()
        received = []
        emitter.on_all(received.append)

        with pytest.raises(ValueError):
            with emitter.batch() as batch:
                batch.add(_confirmed())
                raise ValueError("boom")

        assert received == []


class TestTransactionalDispatch:
    """Events leave the ledger only once their transaction commits."""

    def test_emitted_after_commit(self, ledger, issue, events):
        payslip = issue()
        events.clear()

        with ledger.transaction() as (session, batch):
            PayslipService(session, batch).confirm(payslip.id, "HR-1")
            assert events == []

        assert [e.event_type for e in events] == ["PayslipConfirmed"]
        assert events[0].metadata.actor_id == "HR-1"

    def test_rollback_discards_events(self, ledger, issue, events):
        payslip = issue()
        events.clear()

        with pytest.raises(RuntimeError):
            with ledger.transaction() as (session, batch):
                PayslipService(session, batch).confirm(payslip.id)
                raise RuntimeError("crash mid-operation")

        assert events == []
        assert ledger.get_payslip(payslip.id).status == "issued"

    def test_refused_transition_emits_nothing(self, ledger, issue, events):
        payslip = issue()
        events.clear()

        ledger.publish_payslip(payslip.id)

        assert events == []

    def test_failing_handler_does_not_undo_commit(self, ledger, issue, events):
        payslip = issue()

        def broken(event):
            raise RuntimeError("mailer down")

        ledger.emitter.on(PayslipConfirmed, broken)

        result = ledger.confirm_payslip(payslip.id)

        assert result.applied is True
        assert ledger.get_payslip(payslip.id).status == "confirmed"
        assert events[-1].event_type == "PayslipConfirmed"

    def test_stale_write_maps_to_conflict(self, ledger, events):
        with pytest.raises(ConcurrentModificationError):
            with ledger.transaction() as (_, batch):
                batch.add(_confirmed())
                raise StaleDataError("UPDATE statement on table 'payslip' expected to update 1 row(s)")

        assert events == []
