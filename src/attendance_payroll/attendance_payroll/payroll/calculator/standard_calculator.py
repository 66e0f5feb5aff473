from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ...attendance.model import AttendanceRecord
from ...common.datetime_utils import month_bounds, working_days_in_month
from ...common.money import round_money
from ..adjustments import ALLOWANCE, BONUS, DEDUCTION, evaluate_adjustments
from ..model import AttendanceSummary, CompensationConfig, LineItem, PayrollPolicy, PayrollResult
from ..recommendations import build_recommendations
from .base import PayrollCalculator


def _label(key: str, suffix: str = "") -> str:
    words = str(key).replace("_", " ").strip().title()
    return f"{words} {suffix}".strip()


def _itemize(items, category: str, suffix: str = "") -> list[LineItem]:
    lines = []
    for key, value in (items or {}).items():
        amount = round_money(float(value or 0))
        if amount:
            lines.append(LineItem(category, _label(key, suffix), amount))
    return lines


def _total(lines: Sequence[LineItem]) -> float:
    return round_money(sum(line.amount for line in lines))


class StandardPayrollCalculator(PayrollCalculator):
    """Day-equivalence payroll: pay follows hours worked, not whole days.

    ``base_pay = (total_hours / 8) * (base_salary / required_days)``;
    attendance rules then add bonuses and penalties on top.
    """

    def __init__(self, policy: PayrollPolicy | None = None):
        self._policy = policy or PayrollPolicy()

    @property
    def policy(self) -> PayrollPolicy:
        return self._policy

    def summarize(self, year: int, month: int, records: Sequence[AttendanceRecord]) -> AttendanceSummary:
        p = self._policy
        working_days = working_days_in_month(year, month, weekly_off=p.weekly_off)
        required_days = min(working_days, p.required_days_ceiling)

        present_days = sum(1 for r in records if r.is_present)
        leave_days = sum(1 for r in records if r.is_leave)
        late_days = sum(1 for r in records if r.is_late and not r.is_leave)
        discrepancies = sum(1 for r in records if r.has_discrepancy)
        total_hours = sum(r.hours_worked for r in records)
        regular_hours = sum(r.regular_hours for r in records)
        overtime_hours = sum(r.overtime_hours for r in records)

        expected_hours = required_days * p.standard_hours
        return AttendanceSummary(
            working_days_in_month=working_days,
            required_days=required_days,
            total_records=len(records),
            present_days=present_days,
            leave_days=leave_days,
            late_days=late_days,
            discrepancy_count=discrepancies,
            total_hours=total_hours,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            effective_days_present=total_hours / p.standard_hours,
            attendance_rate=(present_days / required_days * 100) if required_days else 0.0,
            hours_efficiency=(total_hours / expected_hours * 100) if expected_hours else 0.0,
        )

    def _rule_bonuses(self, s: AttendanceSummary, base_pay: float) -> list[LineItem]:
        p = self._policy
        lines = []
        if s.attendance_rate >= 100:
            lines.append(LineItem(BONUS, "Perfect Attendance", round_money(base_pay * p.perfect_attendance_rate)))
        if s.overtime_hours > p.overtime_excellence_hours:
            lines.append(LineItem(BONUS, "Overtime Excellence", round_money(p.overtime_excellence_bonus)))
        if s.hours_efficiency >= 110:
            lines.append(LineItem(BONUS, "Efficiency Bonus", round_money(base_pay * p.efficiency_bonus_rate)))
        return lines

    def _rule_penalties(self, s: AttendanceSummary, base_pay: float) -> list[LineItem]:
        p = self._policy
        lines = []
        if s.late_days > p.late_days_threshold:
            lines.append(LineItem(DEDUCTION, "Late Arrival", round_money(s.late_days * p.late_penalty_per_day)))
        if s.attendance_rate < 80:
            lines.append(LineItem(DEDUCTION, "Poor Attendance", round_money(base_pay * p.poor_attendance_rate)))
        if s.discrepancy_count > p.discrepancy_count_threshold:
            lines.append(LineItem(DEDUCTION, "Data Discrepancy", round_money(s.discrepancy_count * p.discrepancy_penalty_each)))
        return lines

    def calculate(
        self,
        employee_id: str,
        year: int,
        month: int,
        config: CompensationConfig,
        records: Sequence[AttendanceRecord],
        *,
        calculated_at: Optional[datetime] = None,
    ) -> PayrollResult:
        p = self._policy
        summary = self.summarize(year, month, records)

        daily_wage = float(config.base_salary) / summary.required_days if summary.required_days else 0.0
        hourly_rate = daily_wage / p.standard_hours
        base_pay = round_money(summary.effective_days_present * daily_wage)
        overtime_pay = round_money(summary.overtime_hours * hourly_rate * p.overtime_multiplier)

        allowances = _itemize(config.allowances, ALLOWANCE, "Allowance")
        bonuses = self._rule_bonuses(summary, base_pay)
        deductions = self._rule_penalties(summary, base_pay) + _itemize(config.deductions, DEDUCTION)

        period_start, period_end = month_bounds(year, month)
        for effect in evaluate_adjustments(config.adjustments, base_pay=base_pay, period_start=period_start, period_end=period_end):
            if effect.bucket == ALLOWANCE:
                allowances.append(effect.line)
            elif effect.bucket == BONUS:
                bonuses.append(effect.line)
            else:
                deductions.append(effect.line)

        total_allowances = _total(allowances)
        total_bonuses = _total(bonuses)
        total_deductions = _total(deductions)
        gross_pay = round_money(base_pay + overtime_pay + total_allowances)
        net_pay = round_money(gross_pay + total_bonuses - total_deductions)

        return PayrollResult(
            employee_id=str(employee_id),
            year=year,
            month=month,
            attendance=summary,
            daily_wage=round_money(daily_wage),
            hourly_rate=round_money(hourly_rate),
            base_pay=base_pay,
            overtime_pay=overtime_pay,
            allowances=tuple(allowances),
            total_allowances=total_allowances,
            gross_pay=gross_pay,
            bonuses=tuple(bonuses),
            total_bonuses=total_bonuses,
            deductions=tuple(deductions),
            total_deductions=total_deductions,
            net_pay=net_pay,
            recommendations=tuple(build_recommendations(summary)),
            calculated_at=calculated_at,
        )
