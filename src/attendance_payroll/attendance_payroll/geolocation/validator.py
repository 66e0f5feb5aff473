from __future__ import annotations

import logging
import re
from datetime import datetime, time
from math import asin, cos, radians, sin, sqrt
from typing import Optional, Sequence

from ..core.constants import (
    BUSINESS_HOURS_END,
    BUSINESS_HOURS_START,
    EARTH_RADIUS_METERS,
    MAX_REASONABLE_VELOCITY_MPS,
    SUSPICIOUS_ACCURACY_METERS,
)
from ..core.enums import RiskLevel, WorkLocation
from .model import DeviceInfo, GeoDecision, LocationPolicy, Office, OfficeDistance, PriorFix, SecurityCheck

logger = logging.getLogger(__name__)

_EMULATOR_PATTERN = re.compile(r"emulator|simulator|fake|mock", re.IGNORECASE)

# Weight of each advisory check in the overall risk score.
_RISK_WEIGHTS = {"spoofing": 3, "velocity": 2, "time_of_day": 1}


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS84 points, in meters."""
    lat1_rad, lng1_rad, lat2_rad, lng2_rad = map(radians, [float(lat1), float(lng1), float(lat2), float(lng2)])
    dlat = lat2_rad - lat1_rad
    dlng = lng2_rad - lng1_rad
    a = sin(dlat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * asin(min(1.0, sqrt(a)))


class GeolocationValidator:
    """Admission control for self-reported check-ins.

    Only the distance test is a hard gate by default; the anti-spoofing
    checks produce a risk level that callers may surface for review.
    """

    def __init__(
        self,
        *,
        max_velocity_mps: float = MAX_REASONABLE_VELOCITY_MPS,
        business_hours: tuple[int, int] = (BUSINESS_HOURS_START, BUSINESS_HOURS_END),
        suspicious_accuracy_meters: float = SUSPICIOUS_ACCURACY_METERS,
    ):
        self._max_velocity = float(max_velocity_mps)
        self._business_hours = business_hours
        self._suspicious_accuracy = float(suspicious_accuracy_meters)

    def distances(self, latitude: float, longitude: float, offices: Sequence[Office], policy: LocationPolicy) -> list[OfficeDistance]:
        out = []
        for office in offices:
            radius = policy.office_radius if policy.office_radius is not None else office.radius_meters
            distance = haversine_meters(office.latitude, office.longitude, latitude, longitude)
            out.append(OfficeDistance(office=office, distance_meters=distance, radius_meters=float(radius)))
        return out

    def validate(
        self,
        latitude: float,
        longitude: float,
        accuracy: Optional[float],
        offices: Sequence[Office],
        policy: LocationPolicy,
        *,
        at: Optional[datetime] = None,
        prior: Optional[PriorFix] = None,
        device: Optional[DeviceInfo] = None,
        work_from_home: bool = False,
    ) -> GeoDecision:
        at = at or datetime.now()
        checks = (
            self.check_spoofing(accuracy, device),
            self.check_velocity(latitude, longitude, at, prior),
            self.check_time_of_day(at, allow_after_hours=policy.allow_after_hours),
        )
        risk = self.risk_level(checks)

        if work_from_home:
            if not policy.allow_remote:
                return GeoDecision(
                    admit=False,
                    reason="Work from home is not allowed for this employee",
                    risk_level=risk,
                    checks=checks,
                    work_location=WorkLocation.HOME,
                )
            return self._gate(GeoDecision(admit=True, reason="Work from home", work_location=WorkLocation.HOME, risk_level=risk, checks=checks), policy)

        if policy.allow_remote and not policy.strict_location_check:
            return self._gate(
                GeoDecision(admit=True, reason="Remote work allowed without location check", work_location=WorkLocation.HOME, risk_level=risk, checks=checks),
                policy,
            )

        if not offices:
            return GeoDecision(
                admit=False,
                reason="No office locations configured",
                risk_level=risk,
                checks=checks,
                remote_fallback=policy.allow_remote,
            )

        measured = self.distances(latitude, longitude, offices, policy)
        nearest = min(measured, key=lambda m: m.distance_meters)
        within = [m for m in measured if m.within_radius]

        if within:
            best = min(within, key=lambda m: m.distance_meters)
            return self._gate(
                GeoDecision(
                    admit=True,
                    reason=f"Within {best.radius_meters:g}m of {best.office.name}",
                    distance_meters=best.distance_meters,
                    matched_office=best.office,
                    nearest_office=nearest.office,
                    required_radius=best.radius_meters,
                    risk_level=risk,
                    checks=checks,
                ),
                policy,
            )

        logger.warning(
            "check-in outside office radius: %.1fm from %s (radius %gm)",
            nearest.distance_meters,
            nearest.office.office_id,
            nearest.radius_meters,
        )
        return GeoDecision(
            admit=False,
            reason=f"You must be within {nearest.radius_meters:g}m of an office location",
            distance_meters=nearest.distance_meters,
            nearest_office=nearest.office,
            required_radius=nearest.radius_meters,
            risk_level=risk,
            checks=checks,
            remote_fallback=policy.allow_remote,
        )

    def _gate(self, decision: GeoDecision, policy: LocationPolicy) -> GeoDecision:
        if policy.block_on_high_risk and decision.risk_level == RiskLevel.HIGH:
            logger.warning("check-in blocked on high spoofing risk")
            return GeoDecision(
                admit=False,
                reason="Location flagged as suspicious",
                distance_meters=decision.distance_meters,
                nearest_office=decision.matched_office or decision.nearest_office,
                required_radius=decision.required_radius,
                work_location=decision.work_location,
                risk_level=decision.risk_level,
                checks=decision.checks,
            )
        return decision

    def check_spoofing(self, accuracy: Optional[float], device: Optional[DeviceInfo]) -> SecurityCheck:
        too_precise = accuracy is not None and 0 <= float(accuracy) < self._suspicious_accuracy
        emulated = bool(device) and bool(
            _EMULATOR_PATTERN.search(device.user_agent or "") or _EMULATOR_PATTERN.search(device.device_type or "")
        )
        if emulated:
            reason = "Emulated or mocked device reported"
        elif too_precise:
            reason = f"Reported accuracy below {self._suspicious_accuracy:g}m"
        else:
            reason = "No spoofing indicators"
        return SecurityCheck(name="spoofing", suspicious=too_precise or emulated, reason=reason, value=accuracy)

    def check_velocity(self, latitude: float, longitude: float, at: datetime, prior: Optional[PriorFix]) -> SecurityCheck:
        if prior is None:
            return SecurityCheck(name="velocity", suspicious=False, reason="No previous location data")

        distance = haversine_meters(prior.latitude, prior.longitude, latitude, longitude)
        elapsed = (at - prior.timestamp).total_seconds()
        if elapsed <= 0:
            suspicious = distance > 0
            return SecurityCheck(
                name="velocity",
                suspicious=suspicious,
                reason="Movement without elapsed time" if suspicious else "Normal movement",
            )

        velocity = distance / elapsed
        suspicious = velocity > self._max_velocity
        return SecurityCheck(
            name="velocity",
            suspicious=suspicious,
            reason="Impossible movement velocity detected" if suspicious else "Normal movement",
            value=velocity,
        )

    def check_time_of_day(self, at: datetime, *, allow_after_hours: bool = False) -> SecurityCheck:
        start, end = self._business_hours
        in_hours = time(start) <= at.time() <= time(end)
        return SecurityCheck(
            name="time_of_day",
            suspicious=not in_hours and not allow_after_hours,
            reason="Within business hours" if in_hours else "Outside business hours",
            value=float(at.hour),
        )

    @staticmethod
    def risk_level(checks: Sequence[SecurityCheck]) -> RiskLevel:
        score = sum(_RISK_WEIGHTS.get(c.name, 1) for c in checks if c.suspicious)
        if score >= 4:
            return RiskLevel.HIGH
        if score >= 2:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW
