"""Versioned statutory rule sets.

A rule set is never edited in place: new tables ship as a new version and
are registered alongside the old ones, so ``resolve(version)`` always
returns exactly what a locked run was computed under.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from payroll_ledger.calculators.types import (
    WHOLE,
    ContributionSchedule,
    PolicyVersions,
    StatutoryRuleSet,
    TaxBracket,
)
from payroll_ledger.exceptions import RuleSetNotFoundError

DEFAULT_RULE_SET_VERSION = "RS-DEFAULT-v1"

RULE_SET_2026 = StatutoryRuleSet(
    versions=PolicyVersions(
        tax_table="2026-TRAIN-v1",
        social_insurance="2026-SSS-v1",
        health_insurance="2026-PhilHealth-v1",
        housing_fund="2026-PagIBIG-v1",
        holiday_calendar="2026-DOLE-v1",
        formula="2026-PH-PAYROLL-v1",
        rule_set=DEFAULT_RULE_SET_VERSION,
    ),
    # 4.5% of the monthly salary credit (nearest 500), 180 floor, 1350 ceiling
    social_insurance=ContributionSchedule(
        rate=Decimal("0.045"),
        floor_wage=Decimal("4250"),
        floor_amount=Decimal("180"),
        ceiling_wage=Decimal("29750"),
        ceiling_amount=Decimal("1350"),
        credit_step=Decimal("500"),
    ),
    # 2.5% employee half of 5%, 250 floor, 2500 ceiling
    health_insurance=ContributionSchedule(
        rate=Decimal("0.025"),
        floor_wage=Decimal("10000"),
        floor_amount=Decimal("250"),
        ceiling_wage=Decimal("100000"),
        ceiling_amount=Decimal("2500"),
    ),
    # 1% up to 1500, flat 100 above
    housing_fund=ContributionSchedule(
        rate=Decimal("0.01"),
        ceiling_wage=Decimal("1500"),
        ceiling_amount=Decimal("100"),
        ceiling_inclusive=False,
        quantum=WHOLE,
    ),
    withholding_brackets=(
        TaxBracket(Decimal("0"), Decimal("20833"), Decimal("0")),
        TaxBracket(Decimal("20833"), Decimal("33333"), Decimal("0.15")),
        TaxBracket(Decimal("33333"), Decimal("66667"), Decimal("0.20"), Decimal("1875")),
        TaxBracket(Decimal("66667"), Decimal("166667"), Decimal("0.25"), Decimal("8542")),
        TaxBracket(Decimal("166667"), Decimal("666667"), Decimal("0.30"), Decimal("33542")),
        TaxBracket(Decimal("666667"), None, Decimal("0.35"), Decimal("183542")),
    ),
)


class RuleSetRegistry:
    """Lookup of immutable rule sets by version identifier."""

    def __init__(
        self,
        rule_sets: list[StatutoryRuleSet] | None = None,
        current_version: str = DEFAULT_RULE_SET_VERSION,
    ):
        self._rule_sets: dict[str, StatutoryRuleSet] = {}
        for rule_set in rule_sets if rule_sets is not None else [RULE_SET_2026]:
            self.register(rule_set)
        self._current_version = current_version

    def register(self, rule_set: StatutoryRuleSet) -> None:
        """Add a rule set; re-registering a version with different rules is refused."""
        existing = self._rule_sets.get(rule_set.version)
        if existing is not None and existing != rule_set:
            raise ValueError(
                f"Rule set '{rule_set.version}' is already registered with different tables"
            )
        self._rule_sets[rule_set.version] = rule_set

    def resolve(self, version: str) -> StatutoryRuleSet:
        try:
            return self._rule_sets[version]
        except KeyError:
            raise RuleSetNotFoundError(version) from None

    def current(self) -> StatutoryRuleSet:
        return self.resolve(self._current_version)

    def set_current(self, version: str) -> None:
        self.resolve(version)
        self._current_version = version

    @property
    def versions(self) -> list[str]:
        return sorted(self._rule_sets)


@lru_cache(maxsize=1)
def default_registry() -> RuleSetRegistry:
    """Process-wide registry seeded with the shipped rule sets."""
    return RuleSetRegistry()
