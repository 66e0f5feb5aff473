from datetime import date, datetime

import pytest

from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord, GeoPoint
from src.attendance_payroll.attendance_payroll.attendance.reconciliation import derive
from src.attendance_payroll.attendance_payroll.attendance.rules.aim_completion_rule import AimCompletionRule
from src.attendance_payroll.attendance_payroll.attendance.rules.base import CheckoutRequest
from src.attendance_payroll.attendance_payroll.attendance.rules.factory import checkout_rule_for
from src.attendance_payroll.attendance_payroll.attendance.rules.no_requirement_rule import NoRequirementRule
from src.attendance_payroll.attendance_payroll.attendance.rules.notes_required_rule import NotesRequiredRule
from src.attendance_payroll.attendance_payroll.attendance.scoring import (
    reliability_grade,
    score_verification,
    summarize_verification,
)
from src.attendance_payroll.attendance_payroll.core.enums import LeaveKind, VerificationMethod, WorkLocation
from src.attendance_payroll.attendance_payroll.core.exceptions import ValidationError

DAY = date(2024, 1, 15)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 15, hour, minute)


def record(**fields) -> AttendanceRecord:
    return derive(AttendanceRecord(employee_id="E1", work_date=DAY, **fields))


def test_both_sources_in_agreement_score_full():
    r = record(biometric_in=at(9, 0), biometric_out=at(17, 0), self_reported_in=at(9, 5))
    report = score_verification(r)
    assert report.score == 100.0
    assert report.method is VerificationMethod.BOTH


def test_discrepancy_costs_two_points_per_minute():
    r = record(biometric_in=at(9, 0), biometric_out=at(17, 0), self_reported_in=at(9, 20))
    report = score_verification(r)
    assert report.has_discrepancy
    assert report.score == 60.0


def test_single_source_scores_75():
    assert score_verification(record(biometric_in=at(9, 0), biometric_out=at(17, 0))).score == 75.0


def test_no_data_scores_zero():
    report = score_verification(record())
    assert report.score == 0.0
    assert not report.is_verified


def test_leave_scores_full():
    r = record(is_leave=True, leave_kind=LeaveKind.SICK)
    report = score_verification(r)
    assert report.score == 100.0
    assert report.method is VerificationMethod.LEAVE
    assert "Sick" in report.recommendations[0]


def test_unusual_hours_and_short_day_penalties():
    r = record(biometric_in=at(13, 0), biometric_out=at(15, 0))
    # 75 - 10 (check-in far from 09:00) - 20 (under four hours)
    assert score_verification(r).score == 45.0


def test_location_drift_between_check_in_and_out():
    r = record(
        self_reported_in=at(9, 0),
        self_reported_out=at(17, 0),
        self_reported_in_location=GeoPoint(19.16, 72.83),
        self_reported_out_location=GeoPoint(19.20, 72.83),
    )
    assert score_verification(r).score == 70.0


def test_summary_and_grade():
    reports = [
        score_verification(record(biometric_in=at(9, 0), biometric_out=at(17, 0), self_reported_in=at(9, 0))),
        score_verification(record()),
    ]
    summary = summarize_verification(reports)
    assert summary == {
        "total_days": 2,
        "verified_days": 1,
        "discrepancies": 0,
        "verification_rate": 50,
        "average_score": 50,
        "reliability": "D",
    }
    assert reliability_grade(1.0, 0.95) == "A+"
    assert summarize_verification([])["total_days"] == 0


@pytest.mark.parametrize(
    "name, cls",
    [("none", NoRequirementRule), ("notes", NotesRequiredRule), ("AIM", AimCompletionRule), ("", NoRequirementRule)],
)
def test_checkout_rule_factory(name, cls):
    assert isinstance(checkout_rule_for(name), cls)


def test_checkout_rule_factory_rejects_unknown_names():
    with pytest.raises(ValidationError):
        checkout_rule_for("manager-approval")


def test_aim_rule_requires_notes_on_remote_days():
    rule = AimCompletionRule()
    office = record(self_reported_in=at(9, 0))
    home = record(self_reported_in=at(9, 0), work_location=WorkLocation.HOME)

    assert rule.evaluate(record=office, request=CheckoutRequest(aim_completed=True)).allowed
    assert not rule.evaluate(record=home, request=CheckoutRequest(aim_completed=True)).allowed
    assert rule.evaluate(record=home, request=CheckoutRequest(notes="shipped it", aim_completed=True)).allowed
    assert not NotesRequiredRule().evaluate(record=office, request=CheckoutRequest(notes="  ")).allowed
