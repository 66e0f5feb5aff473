from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds, now_local
from ..common.money import round_money
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..importing.directory import EmployeeDirectory
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import BulkPayrollResult, LineItem, PayrollResult, SalarySlip
from .repository import CompensationRepository, PayrollResultRepository

logger = logging.getLogger(__name__)


def build_salary_slip(result: PayrollResult, *, generated_at: datetime) -> SalarySlip:
    earnings = [
        LineItem("base", "Basic Salary", result.base_pay),
        LineItem("overtime", "Overtime Pay", result.overtime_pay),
        *result.allowances,
        *result.bonuses,
    ]
    return SalarySlip(
        slip_number=f"SAL-{result.year}{result.month:02d}-{result.employee_id}",
        employee_id=result.employee_id,
        pay_period=result.period_label,
        generated_at=generated_at,
        earnings=tuple(earnings),
        deductions=tuple(result.deductions),
        gross_earnings=round_money(sum(i.amount for i in earnings)),
        total_deductions=result.total_deductions,
        net_pay=result.net_pay,
    )


class PayrollService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        compensation: CompensationRepository,
        *,
        results: Optional[PayrollResultRepository] = None,
        directory: Optional[EmployeeDirectory] = None,
        calculator: Optional[PayrollCalculator] = None,
        tz: Optional[ZoneInfo] = None,
    ):
        self._attendance = attendance
        self._compensation = compensation
        self._results = results
        self._directory = directory
        self._calculator = calculator or StandardPayrollCalculator()
        self._tz = tz

    @staticmethod
    def _validate_period(year: int, month: int) -> tuple[int, int]:
        try:
            year, month = int(year), int(month)
        except (TypeError, ValueError):
            raise ValidationError("year and month must be integers", details={"year": year, "month": month})
        if not 1 <= month <= 12 or not 1900 <= year <= 9999:
            raise ValidationError("Invalid pay period", details={"year": year, "month": month})
        return year, month

    def calculate_monthly(self, employee_id: str, year: int, month: int) -> PayrollResult:
        year, month = self._validate_period(year, month)
        config = self._compensation.get_for_employee(str(employee_id))
        if config is None:
            raise NotFoundError(
                "No compensation record configured for this employee",
                details={"employee_id": str(employee_id)},
            )

        start, end = month_bounds(year, month)
        records = self._attendance.list_for_employee(str(employee_id), start_date=start, end_date=end)
        result = self._calculator.calculate(
            str(employee_id), year, month, config, records, calculated_at=now_local(self._tz)
        )
        if self._results is not None:
            self._results.save(result)
        logger.info("payroll %04d-%02d for %s: net %.2f", year, month, employee_id, result.net_pay)
        return result

    def calculate_bulk(self, employee_ids: Optional[Iterable[str]], year: int, month: int) -> BulkPayrollResult:
        """Each employee is computed independently; one failure never aborts the run."""
        year, month = self._validate_period(year, month)
        ids = list(employee_ids or [])
        if not ids and self._directory is not None:
            ids = list(self._directory.list_ids())

        successful: list[PayrollResult] = []
        failed: list[dict] = []
        for employee_id in ids:
            try:
                successful.append(self.calculate_monthly(employee_id, year, month))
            except DomainError as exc:
                failed.append({"employee_id": str(employee_id), "error": exc.message})
            except Exception as exc:
                logger.exception("payroll failed for %s", employee_id)
                failed.append({"employee_id": str(employee_id), "error": str(exc)})

        total = round_money(sum(r.net_pay for r in successful))
        average = round_money(total / len(successful)) if successful else 0.0
        logger.info("bulk payroll %04d-%02d: %d ok, %d failed", year, month, len(successful), len(failed))
        return BulkPayrollResult(successful=tuple(successful), failed=tuple(failed), total_payroll=total, average_net_pay=average)

    def salary_slip(self, employee_id: str, year: int, month: int) -> SalarySlip:
        result = self.calculate_monthly(employee_id, year, month)
        return build_salary_slip(result, generated_at=now_local(self._tz))
