from __future__ import annotations

import calendar
from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord, BiometricObservation
from src.attendance_payroll.attendance_payroll.attendance.reconciliation import derive, merge_observation
from src.attendance_payroll.attendance_payroll.core.enums import AdjustmentKind, LeaveKind
from src.attendance_payroll.attendance_payroll.core.exceptions import ValidationError
from src.attendance_payroll.attendance_payroll.payroll.calculator.standard_calculator import StandardPayrollCalculator
from src.attendance_payroll.attendance_payroll.payroll.model import Adjustment, CompensationConfig


def working_days(year: int, month: int, count: int) -> list[date]:
    days = []
    current = date(year, month, 1)
    while len(days) < count:
        if current.weekday() != calendar.SUNDAY:
            days.append(current)
        current += timedelta(days=1)
    return days


def worked(day: date, start=(9, 0), hours: float = 8.0) -> AttendanceRecord:
    check_in = datetime(day.year, day.month, day.day, *start)
    observation = BiometricObservation(check_in=check_in, check_out=check_in + timedelta(hours=hours))
    return derive(merge_observation(AttendanceRecord(employee_id="E1", work_date=day), observation))


def on_leave(day: date) -> AttendanceRecord:
    return derive(AttendanceRecord(employee_id="E1", work_date=day, is_leave=True, leave_kind=LeaveKind.VACATION))


def config(**kwargs) -> CompensationConfig:
    return CompensationConfig(employee_id="E1", base_salary=kwargs.pop("base_salary", 26000), **kwargs)


def calculate(records, cfg=None, year=2024, month=1):
    return StandardPayrollCalculator().calculate("E1", year, month, cfg or config(), records)


def test_full_month_at_standard_hours():
    result = calculate([worked(d) for d in working_days(2024, 1, 26)])

    summary = result.attendance
    assert summary.working_days_in_month == 27
    assert summary.required_days == 26
    assert summary.attendance_rate == pytest.approx(100.0)
    assert result.daily_wage == 1000.0
    assert result.hourly_rate == 125.0
    assert result.base_pay == 26000.0
    assert result.overtime_pay == 0.0
    assert [(b.description, b.amount) for b in result.bonuses] == [("Perfect Attendance", 1300.0)]
    assert result.deductions == ()
    assert result.net_pay == 27300.0


def test_short_month_uses_its_own_working_days():
    # February 2023 has 24 days that are not Sundays.
    result = calculate([worked(d) for d in working_days(2023, 2, 24)], year=2023, month=2)
    assert result.attendance.required_days == 24
    assert result.base_pay == 26000.0


def test_pay_grows_with_hours_worked():
    days = working_days(2024, 1, 20)
    shorter = calculate([worked(d, hours=7) for d in days])
    standard = calculate([worked(d) for d in days])
    longer = calculate([worked(d, hours=9) for d in days])

    assert shorter.base_pay < standard.base_pay < longer.base_pay
    assert shorter.net_pay < standard.net_pay < longer.net_pay
    assert longer.overtime_pay == pytest.approx(20 * 125 * 1.5)


def test_late_arrivals_beyond_threshold_are_penalized():
    days = working_days(2024, 1, 26)
    records = [worked(d, start=(9, 30)) if i < 4 else worked(d) for i, d in enumerate(days)]

    result = calculate(records)

    assert result.attendance.late_days == 4
    assert ("Late Arrival", 200.0) in [(d.description, d.amount) for d in result.deductions]
    assert result.net_pay == 27100.0


def test_three_late_days_are_tolerated():
    days = working_days(2024, 1, 26)
    records = [worked(d, start=(9, 30)) if i < 3 else worked(d) for i, d in enumerate(days)]
    assert calculate(records).net_pay == 27300.0


def test_poor_attendance_penalty():
    result = calculate([worked(d) for d in working_days(2024, 1, 20)])

    assert result.attendance.attendance_rate < 80
    assert result.base_pay == 20000.0
    assert [(d.description, d.amount) for d in result.deductions] == [("Poor Attendance", 1000.0)]
    assert result.bonuses == ()
    assert result.net_pay == 19000.0


def test_discrepancies_beyond_threshold_are_penalized():
    days = working_days(2024, 1, 26)
    records = [worked(d) for d in days]
    records[:3] = [replace(r, has_discrepancy=True) for r in records[:3]]
    result = calculate(records)
    assert ("Data Discrepancy", 300.0) in [(d.description, d.amount) for d in result.deductions]


def test_overtime_bonuses():
    result = calculate([worked(d, hours=9) for d in working_days(2024, 1, 26)])

    bonuses = {b.description: b.amount for b in result.bonuses}
    assert result.attendance.overtime_hours == pytest.approx(26.0)
    assert bonuses["Overtime Excellence"] == 500.0
    assert bonuses["Efficiency Bonus"] == pytest.approx(round(result.base_pay * 0.03, 2))
    assert "Perfect Attendance" in bonuses


def test_leave_days_count_for_attendance_but_add_no_hours():
    days = working_days(2024, 1, 26)
    records = [worked(d) for d in days[:-1]] + [on_leave(days[-1])]

    result = calculate(records)

    assert result.attendance.present_days == 26
    assert result.attendance.leave_days == 1
    assert result.base_pay == 25000.0
    assert result.net_pay == 25000.0 + 1250.0


def test_allowances_deductions_and_adjustments():
    cfg = config(
        allowances={"housing": 2000, "transport_fee": 500, "meal": 0},
        deductions={"income_tax": 1500},
        adjustments=(
            Adjustment(kind=AdjustmentKind.BONUS, percentage=10, reason="Quarterly bonus"),
            Adjustment(kind=AdjustmentKind.DEDUCTION, amount=-250, reason="Advance recovery"),
            Adjustment(kind=AdjustmentKind.ALLOWANCE, amount=300),
            Adjustment(kind=AdjustmentKind.BONUS, amount=999, active=False),
            Adjustment(kind=AdjustmentKind.BONUS, amount=999, effective_to=date(2023, 12, 31)),
            Adjustment(kind=AdjustmentKind.INCREMENT, amount=400, is_recurring=True, effective_from=date(2023, 6, 1), effective_to=date(2023, 7, 1)),
        ),
    )

    result = calculate([worked(d) for d in working_days(2024, 1, 26)], cfg)

    assert [(a.description, a.amount) for a in result.allowances] == [
        ("Housing Allowance", 2000.0),
        ("Transport Fee Allowance", 500.0),
        ("Special Allowance", 300.0),
    ]
    assert result.total_allowances == 2800.0
    assert ("Quarterly bonus", 2600.0) in [(b.description, b.amount) for b in result.bonuses]
    assert ("Increment", 400.0) in [(b.description, b.amount) for b in result.bonuses]
    assert result.total_bonuses == 1300.0 + 2600.0 + 400.0
    assert result.total_deductions == 1500.0 + 250.0
    assert result.gross_pay == 26000.0 + 2800.0
    assert result.net_pay == 28800.0 + 4300.0 - 1750.0


def test_no_attendance_means_no_base_pay():
    result = calculate([])
    assert result.base_pay == 0
    assert result.attendance.attendance_rate == 0
    categories = {r.category for r in result.recommendations}
    assert {"Attendance", "Productivity"} <= categories


def test_negative_base_salary_is_rejected():
    with pytest.raises(ValidationError):
        config(base_salary=-1)


def test_adjustment_from_dict():
    adj = Adjustment.from_dict({"kind": "Bonus", "amount": "150", "effective_from": "2024-01-01T00:00:00"})
    assert adj.kind is AdjustmentKind.BONUS
    assert adj.amount == 150.0
    assert adj.effective_from == date(2024, 1, 1)
    with pytest.raises(ValidationError):
        Adjustment.from_dict({"kind": "Raise"})
