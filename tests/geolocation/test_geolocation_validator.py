from __future__ import annotations

import math
from datetime import datetime, timedelta

import pytest

from src.attendance_payroll.attendance_payroll.core.constants import EARTH_RADIUS_METERS
from src.attendance_payroll.attendance_payroll.core.enums import RiskLevel, WorkLocation
from src.attendance_payroll.attendance_payroll.geolocation.model import (
    DeviceInfo,
    GeoSettings,
    LocationPolicy,
    Office,
    PriorFix,
    SecurityCheck,
)
from src.attendance_payroll.attendance_payroll.geolocation.validator import GeolocationValidator, haversine_meters

MAIN = Office("main", "Main Office", 19.1628987, 72.8355871, 100, "Main Office Location")
NOON = datetime(2024, 1, 15, 12, 0)


def north(office: Office, meters: float) -> tuple[float, float]:
    return office.latitude + math.degrees(meters / EARTH_RADIUS_METERS), office.longitude


def validate(lat, lng, *, offices=(MAIN,), policy=None, accuracy=None, **kwargs):
    return GeolocationValidator().validate(lat, lng, accuracy, offices, policy or LocationPolicy(), at=kwargs.pop("at", NOON), **kwargs)


def test_haversine_known_distance():
    # One degree of latitude on the mean-radius sphere.
    assert haversine_meters(0, 0, 1, 0) == pytest.approx(111_195, abs=1)
    assert haversine_meters(10, 20, 10, 20) == 0


def test_at_office_is_admitted():
    decision = validate(MAIN.latitude, MAIN.longitude)
    assert decision.admit
    assert decision.distance_meters == pytest.approx(0)
    assert decision.matched_office is MAIN
    assert decision.work_location is WorkLocation.OFFICE


def test_radius_boundary():
    assert validate(*north(MAIN, 99.5)).admit
    rejected = validate(*north(MAIN, 101))
    assert not rejected.admit
    assert rejected.required_radius == 100
    assert rejected.distance_meters == pytest.approx(101, abs=0.01)


def test_employee_radius_overrides_office_radius():
    decision = validate(*north(MAIN, 250), policy=LocationPolicy(office_radius=300))
    assert decision.admit
    assert decision.required_radius == 300


def test_best_matching_office_wins():
    annex = Office("annex", "Annex", *north(MAIN, 150), radius_meters=200)
    lat, lng = north(MAIN, 90)

    decision = validate(lat, lng, offices=(MAIN, annex))

    assert decision.admit
    assert decision.matched_office is annex
    assert decision.distance_meters == pytest.approx(60, abs=0.5)


def test_rejection_reports_nearest_office_and_remote_fallback():
    decision = validate(*north(MAIN, 500), policy=LocationPolicy(allow_remote=True))
    assert not decision.admit
    assert decision.nearest_office is MAIN
    assert decision.remote_fallback
    assert decision.to_dict()["distance_meters"] == pytest.approx(500, abs=0.1)


def test_no_offices_configured():
    decision = validate(*north(MAIN, 0), offices=())
    assert not decision.admit
    assert decision.reason == "No office locations configured"


def test_remote_without_strict_check_skips_distance():
    decision = validate(0.0, 0.0, policy=LocationPolicy(allow_remote=True, strict_location_check=False))
    assert decision.admit
    assert decision.work_location is WorkLocation.HOME


def test_spoofing_heuristics_raise_risk_but_do_not_block_by_default():
    decision = validate(MAIN.latitude, MAIN.longitude, accuracy=3, device=DeviceInfo(user_agent="Android Emulator"))
    assert decision.admit
    assert decision.risk_level is RiskLevel.MEDIUM
    assert decision.suspicious


def test_high_risk_blocks_when_policy_says_so():
    late_night = datetime(2024, 1, 15, 23, 30)
    policy = LocationPolicy(block_on_high_risk=True)

    decision = validate(MAIN.latitude, MAIN.longitude, accuracy=3, at=late_night, policy=policy)

    assert decision.risk_level is RiskLevel.HIGH
    assert not decision.admit
    assert decision.reason == "Location flagged as suspicious"


def test_velocity_check():
    validator = GeolocationValidator()
    prior = PriorFix(MAIN.latitude, MAIN.longitude, NOON - timedelta(minutes=10))
    far_lat, far_lng = north(MAIN, 100_000)

    assert validator.check_velocity(far_lat, far_lng, NOON, prior).suspicious
    assert not validator.check_velocity(*north(MAIN, 500), NOON, prior).suspicious
    assert not validator.check_velocity(far_lat, far_lng, NOON, None).suspicious


@pytest.mark.parametrize(
    "hour, minute, suspicious",
    [(5, 59, True), (6, 0, False), (22, 0, False), (22, 1, True)],
)
def test_business_hours_are_inclusive(hour, minute, suspicious):
    check = GeolocationValidator().check_time_of_day(datetime(2024, 1, 15, hour, minute))
    assert check.suspicious is suspicious


def test_after_hours_allowance():
    check = GeolocationValidator().check_time_of_day(datetime(2024, 1, 15, 23, 0), allow_after_hours=True)
    assert not check.suspicious


@pytest.mark.parametrize(
    "flags, level",
    [
        ((), RiskLevel.LOW),
        (("time_of_day",), RiskLevel.LOW),
        (("velocity",), RiskLevel.MEDIUM),
        (("spoofing",), RiskLevel.MEDIUM),
        (("spoofing", "time_of_day"), RiskLevel.HIGH),
        (("velocity", "time_of_day"), RiskLevel.MEDIUM),
    ],
)
def test_risk_level_weights(flags, level):
    checks = [SecurityCheck(name=n, suspicious=n in flags, reason="") for n in ("spoofing", "velocity", "time_of_day")]
    assert GeolocationValidator.risk_level(checks) is level


def test_settings_from_config_defaults():
    settings = GeoSettings.from_config([{"latitude": "19.1", "longitude": 72.8}, {"id": "b", "latitude": 1, "longitude": 2, "radius": 250}])
    first, second = settings.offices
    assert (first.office_id, first.name, first.radius_meters) == ("office_1", "Office 1", 100)
    assert second.office_id == "b"
    assert second.radius_meters == 250
