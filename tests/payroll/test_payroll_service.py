from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.attendance_payroll.attendance_payroll.attendance.memory_repository import InMemoryAttendanceRepository
from src.attendance_payroll.attendance_payroll.attendance.model import BiometricObservation
from src.attendance_payroll.attendance_payroll.attendance.reconciliation import ReconciliationEngine
from src.attendance_payroll.attendance_payroll.core.exceptions import NotFoundError, ValidationError
from src.attendance_payroll.attendance_payroll.importing.directory import Employee, InMemoryEmployeeDirectory
from src.attendance_payroll.attendance_payroll.payroll.model import CompensationConfig
from src.attendance_payroll.attendance_payroll.payroll.repository import (
    InMemoryCompensationRepository,
    InMemoryPayrollResultRepository,
)
from src.attendance_payroll.attendance_payroll.payroll.service import PayrollService


class BrokenCompensationRepo(InMemoryCompensationRepository):
    def get_for_employee(self, employee_id):
        if employee_id == "E3":
            raise RuntimeError("connection reset")
        return super().get_for_employee(employee_id)


def seed_month(engine: ReconciliationEngine, employee_id: str, days: int = 26) -> None:
    current = date(2024, 1, 1)
    seeded = 0
    while seeded < days:
        if current.weekday() != 6:
            start = datetime(current.year, current.month, current.day, 9, 0)
            engine.reconcile(employee_id, current, BiometricObservation(check_in=start, check_out=start + timedelta(hours=8)))
            seeded += 1
        current += timedelta(days=1)


def make_service(compensation=None):
    repo = InMemoryAttendanceRepository()
    engine = ReconciliationEngine(repo)
    compensation = compensation or InMemoryCompensationRepository()
    compensation.put(CompensationConfig("E1", 26000, allowances={"housing": 1000}))
    compensation.put(CompensationConfig("E2", 52000))
    results = InMemoryPayrollResultRepository()
    directory = InMemoryEmployeeDirectory([Employee("E1", "Asha"), Employee("E2", "Ravi"), Employee("E3", "Meera")])
    service = PayrollService(repo, compensation, results=results, directory=directory)
    return service, engine, results


def test_monthly_payroll_is_computed_and_stored():
    service, engine, results = make_service()
    seed_month(engine, "E1")

    result = service.calculate_monthly("E1", 2024, 1)

    assert result.net_pay == 26000 + 1000 + 1300
    assert result.calculated_at is not None
    stored = results.list_for_period(2024, 1)
    assert [r["employee_id"] for r in stored] == ["E1"]
    assert stored[0]["period"]["label"] == "January 2024"


def test_missing_compensation_is_not_found():
    service, _, _ = make_service()
    with pytest.raises(NotFoundError) as exc_info:
        service.calculate_monthly("E9", 2024, 1)
    assert exc_info.value.message == "No compensation record configured for this employee"


@pytest.mark.parametrize("year, month", [(2024, 13), (2024, 0), ("x", 1)])
def test_invalid_period(year, month):
    service, _, _ = make_service()
    with pytest.raises(ValidationError):
        service.calculate_monthly("E1", year, month)


def test_bulk_collects_failures_without_aborting():
    service, engine, _ = make_service(BrokenCompensationRepo())
    seed_month(engine, "E1")
    seed_month(engine, "E2", days=13)

    bulk = service.calculate_bulk(["E1", "E2", "E3", "E9"], 2024, 1)

    assert [r.employee_id for r in bulk.successful] == ["E1", "E2"]
    assert [f["employee_id"] for f in bulk.failed] == ["E3", "E9"]
    assert bulk.failed[1]["error"] == "No compensation record configured for this employee"
    assert bulk.total_payroll == pytest.approx(sum(r.net_pay for r in bulk.successful))
    summary = bulk.to_dict()["summary"]
    assert summary["success_count"] == 2
    assert summary["failure_count"] == 2


def test_bulk_defaults_to_every_active_employee():
    service, _, _ = make_service()
    bulk = service.calculate_bulk([], 2024, 1)
    assert {r.employee_id for r in bulk.successful} == {"E1", "E2"}
    assert [f["employee_id"] for f in bulk.failed] == ["E3"]


def test_salary_slip():
    service, engine, _ = make_service()
    seed_month(engine, "E1")

    slip = service.salary_slip("E1", 2024, 1)

    assert slip.slip_number == "SAL-202401-E1"
    assert slip.pay_period == "January 2024"
    earnings = {e.description: e.amount for e in slip.earnings}
    assert earnings["Basic Salary"] == 26000.0
    assert earnings["Housing Allowance"] == 1000.0
    assert earnings["Perfect Attendance"] == 1300.0
    assert slip.gross_earnings == 28300.0
    assert slip.net_pay == 28300.0
    assert slip.to_dict()["slip_number"] == "SAL-202401-E1"
