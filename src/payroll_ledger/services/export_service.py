"""Bank payment-instruction export."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date

from payroll_ledger.calculators.types import round_money
from payroll_ledger.services.base import LedgerService
from payroll_ledger.services.directory import EmployeeDirectory
from payroll_ledger.services.payslip_service import PayslipService

logger = logging.getLogger(__name__)

BANK_FILE_HEADER = ["Account Reference", "Employee Name", "Net Pay", "Payment Date", "Payslip ID"]


class ExportService(LedgerService):
    """Service for generating bank transfer files."""

    def bank_file_csv(self, run_date: date, directory: EmployeeDirectory) -> str | None:
        """One row per payslip issued on ``run_date``.

        Returns None when no payslip was issued that day. Employees missing
        from the directory export under their id.
        """
        payslips = PayslipService(self.session).issued_on(run_date)
        if not payslips:
            logger.info("No payslips issued on %s; bank file skipped", run_date)
            return None

        output = io.StringIO()
        # LF line endings; fields holding commas or quotes are quoted
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(BANK_FILE_HEADER)

        for payslip in payslips:
            employee = directory.get(payslip.employee_id)
            writer.writerow([
                (employee and employee.account_reference) or payslip.employee_id,
                (employee and employee.name) or payslip.employee_id,
                f"{round_money(payslip.net_pay):.2f}",
                run_date.isoformat(),
                payslip.id,
            ])

        logger.info("Bank file for %s: %d rows", run_date, len(payslips))
        return output.getvalue()

    @staticmethod
    def bank_file_name(run_date: date) -> str:
        return f"bank-transfer-{run_date.isoformat()}.csv"
