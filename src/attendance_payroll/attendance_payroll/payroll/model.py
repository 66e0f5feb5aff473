from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..core.constants import (
    DISCREPANCY_COUNT_THRESHOLD,
    DISCREPANCY_PENALTY_EACH,
    EFFICIENCY_BONUS_RATE,
    LATE_DAYS_THRESHOLD,
    LATE_PENALTY_PER_DAY,
    OVERTIME_EXCELLENCE_BONUS,
    OVERTIME_EXCELLENCE_HOURS,
    OVERTIME_MULTIPLIER,
    PERFECT_ATTENDANCE_RATE,
    POOR_ATTENDANCE_RATE,
    REQUIRED_DAYS_CEILING,
    STANDARD_WORKING_HOURS,
)
from ..core.enums import AdjustmentKind
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class PayrollPolicy:
    """Organisation-wide payroll knobs."""

    required_days_ceiling: int = REQUIRED_DAYS_CEILING
    standard_hours: float = STANDARD_WORKING_HOURS
    overtime_multiplier: float = OVERTIME_MULTIPLIER
    perfect_attendance_rate: float = PERFECT_ATTENDANCE_RATE
    efficiency_bonus_rate: float = EFFICIENCY_BONUS_RATE
    poor_attendance_rate: float = POOR_ATTENDANCE_RATE
    overtime_excellence_hours: float = OVERTIME_EXCELLENCE_HOURS
    overtime_excellence_bonus: float = OVERTIME_EXCELLENCE_BONUS
    late_days_threshold: int = LATE_DAYS_THRESHOLD
    late_penalty_per_day: float = LATE_PENALTY_PER_DAY
    discrepancy_count_threshold: int = DISCREPANCY_COUNT_THRESHOLD
    discrepancy_penalty_each: float = DISCREPANCY_PENALTY_EACH
    weekly_off: int = calendar.SUNDAY


@dataclass(frozen=True)
class Adjustment:
    """One ad-hoc pay adjustment; ``percentage`` (of base pay) wins over ``amount``."""

    kind: AdjustmentKind
    amount: float = 0.0
    percentage: Optional[float] = None
    is_recurring: bool = False
    active: bool = True
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    reason: str = ""

    def applies_to(self, period_start: date, period_end: date) -> bool:
        if not self.active:
            return False
        if self.effective_from is not None and self.effective_from > period_end:
            return False
        if self.is_recurring:
            return True
        return self.effective_to is None or self.effective_to >= period_start

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Adjustment":
        try:
            kind = AdjustmentKind(data["kind"])
        except (KeyError, ValueError):
            raise ValidationError("Invalid adjustment kind", details={"adjustment": dict(data)})

        def as_date(value):
            if value in (None, ""):
                return None
            return value if isinstance(value, date) else date.fromisoformat(str(value)[:10])

        percentage = data.get("percentage")
        return cls(
            kind=kind,
            amount=float(data.get("amount") or 0),
            percentage=float(percentage) if percentage not in (None, "") else None,
            is_recurring=bool(data.get("is_recurring", False)),
            active=bool(data.get("active", True)),
            effective_from=as_date(data.get("effective_from")),
            effective_to=as_date(data.get("effective_to")),
            reason=str(data.get("reason") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "amount": self.amount,
            "percentage": self.percentage,
            "is_recurring": self.is_recurring,
            "active": self.active,
            "effective_from": self.effective_from.isoformat() if self.effective_from else None,
            "effective_to": self.effective_to.isoformat() if self.effective_to else None,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class CompensationConfig:
    employee_id: str
    base_salary: float
    allowances: Mapping[str, float] = field(default_factory=dict)
    deductions: Mapping[str, float] = field(default_factory=dict)
    adjustments: tuple[Adjustment, ...] = ()

    def __post_init__(self):
        if self.base_salary is None or float(self.base_salary) < 0:
            raise ValidationError("base_salary must be a non-negative number", details={"employee_id": self.employee_id})


@dataclass(frozen=True)
class LineItem:
    category: str
    description: str
    amount: float

    def to_dict(self) -> dict:
        return {"category": self.category, "description": self.description, "amount": self.amount}


@dataclass(frozen=True)
class AttendanceSummary:
    working_days_in_month: int
    required_days: int
    total_records: int
    present_days: int
    leave_days: int
    late_days: int
    discrepancy_count: int
    total_hours: float
    regular_hours: float
    overtime_hours: float
    effective_days_present: float
    attendance_rate: float
    hours_efficiency: float

    def to_dict(self) -> dict:
        return {
            "working_days_in_month": self.working_days_in_month,
            "required_days": self.required_days,
            "total_records": self.total_records,
            "present_days": self.present_days,
            "leave_days": self.leave_days,
            "late_days": self.late_days,
            "discrepancy_count": self.discrepancy_count,
            "total_hours": round(self.total_hours, 2),
            "regular_hours": round(self.regular_hours, 2),
            "overtime_hours": round(self.overtime_hours, 2),
            "effective_days_present": round(self.effective_days_present, 4),
            "attendance_rate": round(self.attendance_rate, 2),
            "hours_efficiency": round(self.hours_efficiency, 2),
        }


@dataclass(frozen=True)
class Recommendation:
    category: str
    severity: str
    message: str
    action: str

    def to_dict(self) -> dict:
        return {"category": self.category, "severity": self.severity, "message": self.message, "action": self.action}


@dataclass(frozen=True)
class PayrollResult:
    employee_id: str
    year: int
    month: int
    attendance: AttendanceSummary
    daily_wage: float
    hourly_rate: float
    base_pay: float
    overtime_pay: float
    allowances: tuple[LineItem, ...]
    total_allowances: float
    gross_pay: float
    bonuses: tuple[LineItem, ...]
    total_bonuses: float
    deductions: tuple[LineItem, ...]
    total_deductions: float
    net_pay: float
    recommendations: tuple[Recommendation, ...] = ()
    calculated_at: Optional[datetime] = None

    @property
    def period_label(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "period": {"year": self.year, "month": self.month, "label": self.period_label},
            "attendance": self.attendance.to_dict(),
            "daily_wage": self.daily_wage,
            "hourly_rate": self.hourly_rate,
            "base_pay": self.base_pay,
            "overtime_pay": self.overtime_pay,
            "allowances": [i.to_dict() for i in self.allowances],
            "total_allowances": self.total_allowances,
            "gross_pay": self.gross_pay,
            "bonuses": [i.to_dict() for i in self.bonuses],
            "total_bonuses": self.total_bonuses,
            "deductions": [i.to_dict() for i in self.deductions],
            "total_deductions": self.total_deductions,
            "net_pay": self.net_pay,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "calculated_at": self.calculated_at.isoformat() if self.calculated_at else None,
        }


@dataclass(frozen=True)
class SalarySlip:
    slip_number: str
    employee_id: str
    pay_period: str
    generated_at: datetime
    earnings: tuple[LineItem, ...]
    deductions: tuple[LineItem, ...]
    gross_earnings: float
    total_deductions: float
    net_pay: float

    def to_dict(self) -> dict:
        return {
            "slip_number": self.slip_number,
            "employee_id": self.employee_id,
            "pay_period": self.pay_period,
            "generated_at": self.generated_at.isoformat(),
            "earnings": [i.to_dict() for i in self.earnings],
            "deductions": [i.to_dict() for i in self.deductions],
            "gross_earnings": self.gross_earnings,
            "total_deductions": self.total_deductions,
            "net_pay": self.net_pay,
        }


@dataclass(frozen=True)
class BulkPayrollResult:
    successful: tuple[PayrollResult, ...]
    failed: tuple[dict, ...]
    total_payroll: float
    average_net_pay: float

    def to_dict(self) -> dict:
        return {
            "successful": [r.to_dict() for r in self.successful],
            "failed": list(self.failed),
            "summary": {
                "total_employees": len(self.successful) + len(self.failed),
                "success_count": len(self.successful),
                "failure_count": len(self.failed),
                "total_payroll": self.total_payroll,
                "average_net_pay": self.average_net_pay,
            },
        }
