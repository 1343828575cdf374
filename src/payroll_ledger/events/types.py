"""Domain event types for ledger lifecycle transitions.

All events are:
- Immutable (frozen dataclasses)
- Typed with explicit payloads
- Traceable via metadata
- Serializable for notification dispatch and audit

Events are only dispatched after the transaction that produced them
commits; a rolled-back operation never emits.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from payroll_ledger.models.base import utcnow


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    PAYSLIP = "payslip"
    PAYROLL_RUN = "payroll_run"
    ADJUSTMENT = "adjustment"
    SETTLEMENT = "settlement"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    correlation_id: UUID  # Links events from one operation
    actor_id: str | None  # Caller identity supplied by the boundary layer
    source_service: str
    version: int = 1

    @classmethod
    def create(
        cls,
        correlation_id: UUID | None = None,
        actor_id: str | None = None,
        source_service: str = "payroll_ledger",
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=utcnow(),
            correlation_id=correlation_id or uuid4(),
            actor_id=actor_id,
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        """Event category for filtering."""
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        data = _serialize(asdict(self))
        data["event_type"] = self.event_type
        data["category"] = self.category.value
        return data

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict(), default=str)


def _serialize(obj: Any) -> Any:
    """Recursively serialize objects for JSON compatibility."""
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    elif isinstance(obj, UUID):
        return str(obj)
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Payslip Events
# =============================================================================


@dataclass(frozen=True)
class PayslipIssued(DomainEvent):
    """A payslip (regular or correction) was created."""

    payslip_id: str
    employee_id: str
    net_pay: Decimal
    issued_at: date

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYSLIP


@dataclass(frozen=True)
class PayslipConfirmed(DomainEvent):
    payslip_id: str
    employee_id: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYSLIP


@dataclass(frozen=True)
class PayslipPublished(DomainEvent):
    """Payslip became visible to the employee."""

    payslip_id: str
    employee_id: str
    via_run_id: str | None = None

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYSLIP


@dataclass(frozen=True)
class PayslipPaid(DomainEvent):
    payslip_id: str
    employee_id: str
    payment_method: str
    payment_reference: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYSLIP


@dataclass(frozen=True)
class PayslipSigned(DomainEvent):
    payslip_id: str
    employee_id: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYSLIP


@dataclass(frozen=True)
class PayslipAcknowledged(DomainEvent):
    payslip_id: str
    employee_id: str
    acknowledged_by: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYSLIP


# =============================================================================
# Payroll Run Events
# =============================================================================


@dataclass(frozen=True)
class PayrollRunLocked(DomainEvent):
    """Run membership and policy versions were frozen."""

    run_id: str
    run_date: date
    payslip_count: int
    rule_set_version: str
    locked_by: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL_RUN


@dataclass(frozen=True)
class PayrollRunPublished(DomainEvent):
    run_id: str
    published_payslip_ids: tuple[str, ...]

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL_RUN


@dataclass(frozen=True)
class PayrollRunPaid(DomainEvent):
    run_id: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL_RUN


# =============================================================================
# Adjustment Events
# =============================================================================


@dataclass(frozen=True)
class AdjustmentApproved(DomainEvent):
    adjustment_id: str
    employee_id: str
    approved_by: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.ADJUSTMENT


@dataclass(frozen=True)
class AdjustmentRejected(DomainEvent):
    adjustment_id: str
    employee_id: str
    rejected_by: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.ADJUSTMENT


@dataclass(frozen=True)
class AdjustmentApplied(DomainEvent):
    """An approved adjustment minted its correction payslip."""

    adjustment_id: str
    employee_id: str
    correction_payslip_id: str
    applied_run_id: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.ADJUSTMENT


# =============================================================================
# Settlement Events
# =============================================================================


@dataclass(frozen=True)
class FinalPayComputed(DomainEvent):
    computation_id: str
    employee_id: str
    net_final_pay: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.SETTLEMENT


@dataclass(frozen=True)
class ThirteenthMonthGenerated(DomainEvent):
    payslip_ids: tuple[str, ...]
    total_payout: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.SETTLEMENT
