from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..common.datetime_utils import minutes_between
from ..core.constants import EXPECTED_CHECKIN_HOUR, LOCATION_DRIFT_METERS
from ..core.enums import VerificationMethod
from ..geolocation.validator import haversine_meters
from .model import AttendanceRecord


@dataclass(frozen=True)
class VerificationReport:
    employee_id: str
    work_date: str
    is_verified: bool
    method: VerificationMethod
    has_discrepancy: bool
    score: float
    recommendations: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "date": self.work_date,
            "is_verified": self.is_verified,
            "method": self.method.value,
            "has_discrepancy": self.has_discrepancy,
            "score": self.score,
            "recommendations": list(self.recommendations),
        }


def score_verification(record: AttendanceRecord) -> VerificationReport:
    """Confidence score (0-100) for the presence claim of one record."""
    notes: list[str] = []

    if record.is_leave:
        return VerificationReport(
            employee_id=record.employee_id,
            work_date=record.work_date.isoformat(),
            is_verified=True,
            method=VerificationMethod.LEAVE,
            has_discrepancy=False,
            score=100.0,
            recommendations=(f"Employee was on {record.leave_kind.value if record.leave_kind else 'approved'} leave",),
        )

    if record.has_biometric and record.has_self_reported:
        diff = minutes_between(record.biometric_in, record.self_reported_in)
        if record.has_discrepancy:
            score = max(0.0, 100.0 - diff * 2)
            notes.append(f"Time difference of {round(diff)} minutes detected")
        else:
            score = 100.0
            notes.append("Both sources agree")
    elif record.has_biometric or record.has_self_reported:
        score = 75.0
        notes.append("Single source verification - consider dual verification")
    else:
        score = 0.0
        notes.append("No attendance data available - manual verification required")

    first_in = record.first_check_in
    if first_in is not None and abs(first_in.hour - EXPECTED_CHECKIN_HOUR) > 2:
        notes.append("Unusual check-in time detected")
        score = max(score - 10, 0.0)

    start, end = record.self_reported_in_location, record.self_reported_out_location
    if start is not None and end is not None:
        if haversine_meters(start.latitude, start.longitude, end.latitude, end.longitude) > LOCATION_DRIFT_METERS:
            notes.append("Significant location difference between check-in and check-out")
            score = max(score - 5, 0.0)

    if record.hours_worked > 12:
        notes.append("Excessive working hours detected - verify overtime")
    elif 0 < record.hours_worked < 4:
        notes.append("Insufficient working hours - check for half day or early departure")
        score = max(score - 20, 0.0)

    return VerificationReport(
        employee_id=record.employee_id,
        work_date=record.work_date.isoformat(),
        is_verified=record.is_verified,
        method=record.verification_method,
        has_discrepancy=record.has_discrepancy,
        score=round(score, 2),
        recommendations=tuple(notes),
    )


def reliability_grade(verification_rate: float, score_rate: float) -> str:
    combined = (verification_rate + score_rate) / 2
    if combined >= 0.9:
        return "A+"
    if combined >= 0.8:
        return "A"
    if combined >= 0.7:
        return "B"
    if combined >= 0.6:
        return "C"
    return "D"


def summarize_verification(reports: Sequence[VerificationReport]) -> dict:
    total = len(reports)
    if total == 0:
        return {"total_days": 0, "verified_days": 0, "discrepancies": 0, "verification_rate": 0, "average_score": 0, "reliability": "D"}

    verified = sum(1 for r in reports if r.is_verified)
    discrepancies = sum(1 for r in reports if r.has_discrepancy)
    avg_score = sum(r.score for r in reports) / total
    return {
        "total_days": total,
        "verified_days": verified,
        "discrepancies": discrepancies,
        "verification_rate": round(verified / total * 100),
        "average_score": round(avg_score),
        "reliability": reliability_grade(verified / total, avg_score / 100),
    }
