"""Employee directory lookups consumed by settlements and bank export.

Employee records are owned elsewhere; the ledger only reads them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class EmployeeRecord:
    """The slice of an employee the ledger needs."""

    id: str
    name: str | None = None
    monthly_salary: Decimal = Decimal("0")
    join_date: date | None = None
    account_reference: str | None = None


class EmployeeDirectory(Protocol):
    def get(self, employee_id: str) -> EmployeeRecord | None: ...


class InMemoryEmployeeDirectory:
    """Directory backed by a dict; used by the HTTP layer and tests."""

    def __init__(self, employees: Iterable[EmployeeRecord] = ()):
        self._employees = {e.id: e for e in employees}

    def get(self, employee_id: str) -> EmployeeRecord | None:
        return self._employees.get(employee_id)
