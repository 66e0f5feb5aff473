from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence
from zoneinfo import ZoneInfo

from ..common.datetime_utils import hours_between, iter_dates, month_bounds, now_local, to_local
from ..common.validators import optional_float, require_coordinates, require_non_empty
from ..core.constants import DEFAULT_MAX_WORKING_HOURS
from ..core.enums import LeaveKind, RiskLevel
from ..core.events import DAY_AUTO_CLOSED, DAY_STARTED, EventBus
from ..core.exceptions import ConflictError, NotFoundError, PolicyViolation, ValidationError
from ..geolocation.model import DeviceInfo, GeoDecision, GeoSettings, LocationPolicy, PriorFix
from ..geolocation.repository import LocationPolicyRepository
from ..geolocation.validator import GeolocationValidator
from .model import AttendanceRecord, AutoCloseEvent, GeoPoint, SelfReportedObservation
from .reconciliation import ReconciliationEngine
from .repository import AttendanceRepository
from .rules.base import CheckoutRequest, CheckoutRule
from .rules.no_requirement_rule import NoRequirementRule
from .scoring import VerificationReport, score_verification, summarize_verification

logger = logging.getLogger(__name__)

# How far back to look for the previous location fix used by the velocity check.
_PRIOR_FIX_LOOKBACK_DAYS = 7


@dataclass(frozen=True)
class CheckInResult:
    record: AttendanceRecord
    geolocation: GeoDecision

    def to_dict(self) -> dict:
        return {"record": self.record.to_dict(), "geolocation": self.geolocation.to_dict()}


class AttendanceService:
    """Self-reported check-in/check-out, leave signals and the auto-close sweep."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        engine: ReconciliationEngine,
        *,
        geo: GeoSettings,
        validator: GeolocationValidator | None = None,
        policies: LocationPolicyRepository | None = None,
        checkout_rule: CheckoutRule | None = None,
        events: EventBus | None = None,
        tz: ZoneInfo | None = None,
        max_working_hours: float = DEFAULT_MAX_WORKING_HOURS,
        auto_close_enabled: bool = True,
    ):
        self._attendance = attendance
        self._engine = engine
        self._geo = geo
        self._validator = validator or GeolocationValidator()
        self._policies = policies
        self._checkout_rule = checkout_rule or NoRequirementRule()
        self._events = events or EventBus()
        self._tz = tz
        self._max_working_hours = float(max_working_hours)
        self._auto_close_enabled = bool(auto_close_enabled)

    def _now(self, timestamp: Optional[datetime]) -> datetime:
        if timestamp is None:
            return now_local(self._tz)
        return to_local(timestamp, self._tz)

    def _policy_for(self, employee_id: str) -> LocationPolicy:
        if self._policies is not None:
            policy = self._policies.get_for_employee(employee_id)
            if policy is not None:
                return policy
        return self._geo.default_policy

    def _prior_fix(self, employee_id: str, today: date) -> Optional[PriorFix]:
        records = self._attendance.list_for_employee(
            employee_id,
            start_date=today - timedelta(days=_PRIOR_FIX_LOOKBACK_DAYS),
            end_date=today,
        )
        fixes = []
        for r in records:
            if r.self_reported_in is not None and r.self_reported_in_location is not None:
                loc = r.self_reported_in_location
                fixes.append(PriorFix(loc.latitude, loc.longitude, r.self_reported_in))
            if r.self_reported_out is not None and r.self_reported_out_location is not None:
                loc = r.self_reported_out_location
                fixes.append(PriorFix(loc.latitude, loc.longitude, r.self_reported_out))
        return max(fixes, key=lambda f: f.timestamp) if fixes else None

    def check_in(
        self,
        employee_id: str,
        *,
        latitude: Any,
        longitude: Any,
        timestamp: Optional[datetime] = None,
        accuracy: Any = None,
        address: Optional[str] = None,
        work_from_home: bool = False,
        device: Optional[DeviceInfo] = None,
        prior: Optional[PriorFix] = None,
    ) -> CheckInResult:
        employee_id = require_non_empty(employee_id, "employee_id")
        lat, lng = require_coordinates(latitude, longitude)
        accuracy = optional_float(accuracy, "accuracy")
        now = self._now(timestamp)
        today = now.date()

        def guard(current: Optional[AttendanceRecord]) -> None:
            if current is None:
                return
            if current.is_leave:
                raise ConflictError(
                    "Cannot check in on a leave day",
                    details={"date": today.isoformat(), "leave_reference_id": current.leave_reference_id},
                )
            if current.self_reported_in is not None:
                raise ConflictError(
                    "Already checked in today",
                    details={"check_in": current.self_reported_in.isoformat()},
                )

        # Fail fast on duplicates; the guard runs again under the key lock.
        guard(self._attendance.get_for_employee_and_date(employee_id, today))

        policy = self._policy_for(employee_id)
        decision = self._validator.validate(
            lat,
            lng,
            accuracy,
            self._geo.offices,
            policy,
            at=now,
            prior=prior or self._prior_fix(employee_id, today),
            device=device,
            work_from_home=work_from_home,
        )
        if not decision.admit:
            raise PolicyViolation(decision.reason, details=decision.to_dict())
        if decision.risk_level is not RiskLevel.LOW:
            logger.warning("check-in for %s admitted with %s spoofing risk", employee_id, decision.risk_level.value)

        observation = SelfReportedObservation(
            check_in=now,
            check_in_location=GeoPoint(lat, lng, accuracy, address),
            work_location=decision.work_location,
            risk_level=decision.risk_level,
        )
        record = self._engine.apply(employee_id, today, observation, guard=guard).record

        self._events.publish(
            DAY_STARTED,
            {
                "employee_id": employee_id,
                "date": today.isoformat(),
                "check_in": now.isoformat(),
                "work_location": record.work_location.value,
            },
        )
        return CheckInResult(record=record, geolocation=decision)

    def check_out(
        self,
        employee_id: str,
        *,
        timestamp: Optional[datetime] = None,
        latitude: Any = None,
        longitude: Any = None,
        accuracy: Any = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
        aim_completed: bool = False,
    ) -> AttendanceRecord:
        employee_id = require_non_empty(employee_id, "employee_id")
        now = self._now(timestamp)
        today = now.date()

        location = None
        if latitude is not None or longitude is not None:
            lat, lng = require_coordinates(latitude, longitude)
            location = GeoPoint(lat, lng, optional_float(accuracy, "accuracy"), address)

        request = CheckoutRequest(notes=notes, aim_completed=bool(aim_completed))

        def guard(current: Optional[AttendanceRecord]) -> None:
            if current is None or current.self_reported_in is None:
                raise NotFoundError("No check-in found for today", details={"date": today.isoformat()})
            if current.self_reported_out is not None:
                raise ConflictError(
                    "Already checked out today",
                    details={"check_out": current.self_reported_out.isoformat()},
                )
            decision = self._checkout_rule.evaluate(record=current, request=request)
            if not decision.allowed:
                raise ValidationError(decision.reason or "Check-out not allowed", details={"rule": self._checkout_rule.name})

        observation = SelfReportedObservation(check_out=now, check_out_location=location, notes=notes)
        return self._engine.apply(employee_id, today, observation, guard=guard).record

    def apply_leave(
        self,
        employee_id: str,
        start: date,
        end: date,
        *,
        leave_kind: LeaveKind | str,
        leave_reference_id: Optional[str] = None,
    ) -> list[AttendanceRecord]:
        """Mark every date in [start, end] as leave (approved by an external workflow)."""
        employee_id = require_non_empty(employee_id, "employee_id")
        if end < start:
            raise ValidationError("Leave end date is before start date", details={"start": start.isoformat(), "end": end.isoformat()})
        try:
            kind = LeaveKind(leave_kind)
        except ValueError:
            raise ValidationError(f"Unknown leave kind: {leave_kind!r}", details={"known": [k.value for k in LeaveKind]})

        records = [
            self._engine.apply_leave(employee_id, d, leave_kind=kind, leave_reference_id=leave_reference_id)
            for d in iter_dates(start, end)
        ]
        logger.info("leave %s applied for %s: %s..%s", kind.value, employee_id, start, end)
        return records

    def auto_close_tick(self, now: Optional[datetime] = None, *, max_working_hours: Optional[float] = None) -> list[AutoCloseEvent]:
        """Close open self-reported days older than the working-hours ceiling.

        Meant to be triggered by an external scheduler; safe to run repeatedly.
        """
        if not self._auto_close_enabled:
            return []
        now = self._now(now)
        limit = float(max_working_hours if max_working_hours is not None else self._max_working_hours)
        note = f"Auto-closed after {limit:g} hours of work"

        closed: list[AutoCloseEvent] = []
        for record in self._attendance.list_open(on_or_before=now.date()):
            if hours_between(record.self_reported_in, now) < limit:
                continue
            updated = self._engine.force_close(record.employee_id, record.work_date, closed_at=now, note=note)
            if updated is None:
                continue
            event = AutoCloseEvent(
                employee_id=updated.employee_id,
                work_date=updated.work_date,
                hours_worked=updated.hours_worked,
                closed_at=now,
                reason=note,
            )
            logger.info("auto-closed %s on %s after %.2fh", event.employee_id, event.work_date, event.hours_worked)
            self._events.publish(DAY_AUTO_CLOSED, event.to_dict())
            closed.append(event)
        return closed

    def get_record(self, employee_id: str, work_date: date) -> AttendanceRecord:
        record = self._attendance.get_for_employee_and_date(str(employee_id), work_date)
        if record is None:
            raise NotFoundError("No attendance record for this date", details={"employee_id": employee_id, "date": work_date.isoformat()})
        return record

    def verification(self, employee_id: str, work_date: date) -> VerificationReport:
        return score_verification(self.get_record(employee_id, work_date))

    def verification_summary(self, employee_id: str, year: int, month: int) -> dict:
        start, end = month_bounds(year, month)
        records: Sequence[AttendanceRecord] = self._attendance.list_for_employee(str(employee_id), start_date=start, end_date=end)
        return summarize_verification([score_verification(r) for r in records])
