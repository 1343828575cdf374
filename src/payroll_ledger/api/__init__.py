"""HTTP boundary for the payroll ledger."""
