"""Pay schedule configuration and cutoff bucketing."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from payroll_ledger.exceptions import PayrollValidationError
from payroll_ledger.models import PayScheduleConfig, utcnow
from payroll_ledger.services.base import LedgerService

logger = logging.getLogger(__name__)

FREQUENCIES = ("monthly", "semi_monthly", "bi_weekly", "weekly")

# Inclusive ranges for the day fields; weekly_pay_day counts from Monday=0
DAY_RANGES: dict[str, tuple[int, int]] = {
    "semi_monthly_first_cutoff": (1, 28),
    "semi_monthly_first_pay_day": (1, 31),
    "semi_monthly_second_pay_day": (1, 31),
    "monthly_pay_day": (1, 31),
    "weekly_pay_day": (0, 6),
}

SCHEDULE_FIELDS = ("default_frequency", *DAY_RANGES)


class ScheduleService(LedgerService):
    """Service for the process-wide pay schedule singleton."""

    def get(self) -> PayScheduleConfig:
        """Current schedule, or the unsaved defaults until the first update."""
        config = self.session.get(PayScheduleConfig, 1)
        return config if config is not None else PayScheduleConfig.defaults()

    def update(self, patch: Mapping[str, Any], updated_by: str | None = None) -> PayScheduleConfig:
        """Apply a partial update; fields not in ``patch`` keep their values."""
        unknown = sorted(set(patch) - set(SCHEDULE_FIELDS))
        if unknown:
            raise PayrollValidationError("schedule", f"unknown fields {unknown}")

        if "default_frequency" in patch and patch["default_frequency"] not in FREQUENCIES:
            raise PayrollValidationError("default_frequency", f"must be one of {list(FREQUENCIES)}")
        for field, (low, high) in DAY_RANGES.items():
            if field not in patch:
                continue
            value = patch[field]
            if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
                raise PayrollValidationError(field, f"must be an integer between {low} and {high}")

        config = self._lock(PayScheduleConfig, 1)
        if config is None:
            # First update; a concurrent first writer fails on the primary key
            config = PayScheduleConfig.defaults()
            self.session.add(config)
        for field, value in patch.items():
            setattr(config, field, value)
        config.updated_at = utcnow()
        config.updated_by = updated_by
        logger.info("Pay schedule updated by %s: %s", updated_by or "system", dict(patch))
        return config

    def cutoff_for(self, day: date) -> str:
        """'first' up to and including the first cutoff day, else 'second'."""
        return "second" if day.day > self.get().semi_monthly_first_cutoff else "first"
