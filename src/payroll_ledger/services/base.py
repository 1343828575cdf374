"""Shared plumbing for ledger services."""

from __future__ import annotations

from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_ledger.events import DomainEvent, EventBatch, EventMetadata
from payroll_ledger.exceptions import PayrollValidationError

M = TypeVar("M")


def new_id(prefix: str) -> str:
    """PREFIX-XXXXXXXX with eight upper-case hex characters."""
    return f"{prefix}-{uuid4().hex[:8].upper()}"


def require_text(field: str, value: str | None) -> str:
    if value is None or not str(value).strip():
        raise PayrollValidationError(field, "must not be blank")
    return str(value).strip()


class LedgerService:
    """Base for services bound to one session (one transaction).

    Events recorded here are held in the caller's batch and dispatched
    only once the transaction commits.
    """

    def __init__(
        self,
        session: Session,
        events: EventBatch | None = None,
        correlation_id: UUID | None = None,
    ):
        self.session = session
        self.events = events
        self.correlation_id = correlation_id or uuid4()

    def _metadata(self, actor_id: str | None = None) -> EventMetadata:
        return EventMetadata.create(correlation_id=self.correlation_id, actor_id=actor_id)

    def _record(self, event: DomainEvent) -> None:
        if self.events is not None:
            self.events.add(event)

    def _lock(self, model: type[M], entity_id: Any) -> M | None:
        """Load one aggregate row with SELECT ... FOR UPDATE."""
        stmt = select(model).where(model.id == entity_id).with_for_update()  # type: ignore[attr-defined]
        return self.session.execute(stmt).scalar_one_or_none()
