"""Load demo seed data into the database.

Usage:
    python -m scripts.load_seed [--database-url URL] [--reset]

Creates the ledger schema if needed, then inserts the January 2026
seed payslips and the default pay schedule. Useful for setting up a
development or demo environment.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from sqlalchemy import func, select

from payroll_ledger.config import configure_logging, get_settings
from payroll_ledger.ledger import PayrollLedger
from payroll_ledger.models import Payslip
from payroll_ledger.seed import load_seed

logger = logging.getLogger(__name__)


class SeedRefusedError(RuntimeError):
    """Raised when the target ledger already holds payslips."""


def load(database_url: str, reset: bool = False) -> int:
    """Load the seed into ``database_url``. Returns the number of payslips loaded."""
    settings = replace(get_settings(), database_url=database_url, allow_reset=True)
    ledger = PayrollLedger.from_settings(settings)

    if reset:
        return ledger.reset_to_seed()

    with ledger.transaction() as (session, _):
        existing = session.scalar(select(func.count()).select_from(Payslip))
        if existing:
            raise SeedRefusedError(
                f"ledger already holds {existing} payslips; pass --reset to replace them"
            )
        count = load_seed(session)

    logger.info("Loaded %d seed payslips", count)
    return count


def main() -> None:
    """Main entry point."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Load demo seed data into the database")
    parser.add_argument(
        "--database-url",
        type=str,
        default=settings.database_url,
        help="Database URL (default: from settings)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear every ledger table before loading",
    )
    args = parser.parse_args()

    configure_logging(settings.log_level)
    target = args.database_url.split("@")[-1]
    print(f"Target database: {target}")

    try:
        count = load(args.database_url, reset=args.reset)
    except SeedRefusedError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Loaded {count} seed payslips")


if __name__ == "__main__":
    main()
