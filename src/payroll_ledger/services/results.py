"""Result values returned by ledger operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a guarded lifecycle transition.

    IMPORTANT: a refused transition is not an error. Check `applied`;
    when it is False nothing was written and `reason` says why.
    """

    entity_id: str
    applied: bool
    previous_status: str
    status: str
    reason: str | None = None

    @classmethod
    def ok(cls, entity_id: str, previous_status: str, status: str) -> TransitionResult:
        return cls(entity_id=entity_id, applied=True, previous_status=previous_status, status=status)

    @classmethod
    def refused(cls, entity_id: str, status: str, reason: str) -> TransitionResult:
        return cls(
            entity_id=entity_id,
            applied=False,
            previous_status=status,
            status=status,
            reason=reason,
        )


@dataclass(frozen=True)
class ComputationResult(Generic[T]):
    """Result of an idempotent computation.

    If `is_new=False` the record already existed and was returned as-is.
    """

    record: T
    is_new: bool
